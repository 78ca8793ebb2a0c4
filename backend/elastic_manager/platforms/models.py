"""
Platform configurations and the application aggregate

A platform configuration is an immutable value describing how to reach one
elastic application. The set of variants is closed: KubernetesConfig and
OpenNebulaConfig. Each variant knows its PlatformKind discriminant and can open
an independent AppClient from its own fields.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Type, Union

from elastic_manager.core.exceptions import InvariantViolationException
from elastic_manager.platforms.base import AppClient


class PlatformKind(str, Enum):
    """Supported virtualization platforms"""
    KUBERNETES = "kubernetes"
    OPENNEBULA = "opennebula"


@dataclass(frozen=True)
class KubernetesConfig:
    """Deployment in a Kubernetes namespace, reached through a kubeconfig"""
    kubeconfig: str = field(repr=False)
    namespace: str
    deployment: str

    kind: ClassVar[PlatformKind] = PlatformKind.KUBERNETES

    def open_client(self) -> AppClient:
        from elastic_manager.platforms.kubernetes import KubernetesAppClient
        return KubernetesAppClient.connect(self.kubeconfig, self.namespace, self.deployment)


@dataclass(frozen=True)
class OpenNebulaConfig:
    """Role of an OpenNebula VM group, scaled by instantiating a VM template"""
    address: str
    login: str
    password: str = field(repr=False)
    role: int
    template: int
    vmgroup: int

    kind: ClassVar[PlatformKind] = PlatformKind.OPENNEBULA

    def open_client(self) -> AppClient:
        from elastic_manager.platforms.opennebula import OpenNebulaAppClient
        return OpenNebulaAppClient.connect(
            self.address, self.login, self.password,
            vmgroup_id=self.vmgroup, role_id=self.role, template_id=self.template
        )


PlatformConfig = Union[KubernetesConfig, OpenNebulaConfig]

PLATFORM_CONFIG_TYPES: Dict[PlatformKind, Type] = {
    PlatformKind.KUBERNETES: KubernetesConfig,
    PlatformKind.OPENNEBULA: OpenNebulaConfig,
}


def build_platform_config(kind: Union[PlatformKind, str], **fields) -> PlatformConfig:
    """Construct the variant registered for ``kind`` from its field values"""
    try:
        config_type = PLATFORM_CONFIG_TYPES[PlatformKind(kind)]
    except ValueError:
        raise InvariantViolationException(f"Unknown platform kind: {kind!r}", platform=str(kind))
    return config_type(**fields)


def open_client(config: PlatformConfig) -> AppClient:
    return config.open_client()


@dataclass(frozen=True)
class Application:
    """A registration: a stable id bound to exactly one platform configuration"""
    id: int
    config: PlatformConfig

    def __post_init__(self):
        if self.id is None:
            raise InvariantViolationException("Id for the application was not generated")
        if not isinstance(self.config, tuple(PLATFORM_CONFIG_TYPES.values())):
            raise InvariantViolationException(
                f"Application {self.id} must reference exactly one platform configuration",
                application_id=self.id
            )

    @property
    def kind(self) -> PlatformKind:
        return self.config.kind


@dataclass(frozen=True)
class InstanceSnapshot:
    """Point-in-time view of one running instance"""
    name: str
    cpu_load: float
    ram_load: float
