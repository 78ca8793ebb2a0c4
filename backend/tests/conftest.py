"""
Elastic Application Manager - Test Configuration & Fixtures
===========================================================

Shared fixtures:
- fake platform clients standing in for Kubernetes/OpenNebula
- in-memory and SQLite-backed registration stores
- registration service wired to the fake platforms
"""

import pytest
from typing import Dict, List, Optional, Set

from elastic_manager.platforms.base import AppClient, AppClientError, AppInstance
from elastic_manager.platforms.models import KubernetesConfig, OpenNebulaConfig, PlatformConfig
from elastic_manager.services.registration_service import RegistrationService
from elastic_manager.services.validator import ConfigValidator
from elastic_manager.storage import InMemoryApplicationStore, SqlApplicationStore
from elastic_manager.db.session import init_db


# ==================== Fake platform ====================

class FakeAppInstance(AppInstance):
    """Instance with fixed metrics; ``broken`` makes every field read fail"""

    def __init__(self, name: str, cpu_load: float = 0.5, ram_load: float = 0.25, broken: bool = False):
        self.name = name
        self.cpu_load = cpu_load
        self.ram_load = ram_load
        self.broken = broken

    def get_name(self) -> str:
        if self.broken:
            raise AppClientError(f"malformed metadata for {self.name}")
        return self.name

    def get_cpu_load(self) -> float:
        if self.broken:
            raise AppClientError(f"no metrics for {self.name}")
        return self.cpu_load

    def get_ram_load(self) -> float:
        if self.broken:
            raise AppClientError(f"no metrics for {self.name}")
        return self.ram_load


class FakeAppClient(AppClient):
    """Elastic application whose instance list grows and shrinks on scale"""

    def __init__(self, prefix: str, count: int = 2, broken: bool = False):
        self.prefix = prefix
        self.instances: List[FakeAppInstance] = [
            FakeAppInstance(f"{prefix}-{i}", broken=broken) for i in range(count)
        ]
        self.scale_calls: List[int] = []
        self.fail_listing = False
        self.fail_scaling = False

    def get_app_instances(self) -> List[AppInstance]:
        if self.fail_listing:
            raise AppClientError("instances cannot be listed")
        return list(self.instances)

    def scale_instances(self, increment_by: int) -> None:
        self.scale_calls.append(increment_by)
        if self.fail_scaling:
            raise AppClientError("scale request rejected")
        if increment_by > 0:
            start = len(self.instances)
            self.instances.extend(
                FakeAppInstance(f"{self.prefix}-{start + i}") for i in range(increment_by)
            )
        elif increment_by < 0:
            del self.instances[max(0, len(self.instances) + increment_by):]


class FakePlatforms:
    """Client opener keyed by configuration value"""

    def __init__(self):
        self.clients: Dict[PlatformConfig, FakeAppClient] = {}
        self.unreachable: Set[PlatformConfig] = set()
        self.opened: List[PlatformConfig] = []

    def add(self, config: PlatformConfig, count: int = 2, broken: bool = False,
            prefix: Optional[str] = None) -> FakeAppClient:
        client = FakeAppClient(prefix or config.kind.value, count=count, broken=broken)
        self.clients[config] = client
        return client

    def open(self, config: PlatformConfig) -> AppClient:
        self.opened.append(config)
        if config in self.unreachable:
            raise AppClientError("connection refused")
        try:
            return self.clients[config]
        except KeyError:
            raise AppClientError("credentials rejected")


# ==================== Configurations ====================

KUBECONFIG = """apiVersion: v1
kind: Config
clusters:
- cluster:
    server: https://10.0.0.1:6443
  name: test
contexts:
- context:
    cluster: test
    user: admin
  name: test
current-context: test
users:
- name: admin
  user:
    token: abcdefghijklmnop
"""

BAD_CA_KUBECONFIG = KUBECONFIG.replace(
    "    server: https://10.0.0.1:6443\n",
    "    server: https://10.0.0.1:6443\n    certificate-authority-data: \"not*base64!\"\n"
)


@pytest.fixture
def kubernetes_config() -> KubernetesConfig:
    return KubernetesConfig(kubeconfig=KUBECONFIG, namespace="default", deployment="web")


@pytest.fixture
def other_kubernetes_config() -> KubernetesConfig:
    return KubernetesConfig(kubeconfig=KUBECONFIG, namespace="staging", deployment="api")


@pytest.fixture
def opennebula_config() -> OpenNebulaConfig:
    return OpenNebulaConfig(
        address="http://one.example.com:2633/RPC2",
        login="oneadmin",
        password="s3cret-pass",
        role=0,
        template=7,
        vmgroup=3
    )


@pytest.fixture
def platforms() -> FakePlatforms:
    return FakePlatforms()


# ==================== Stores & service ====================

@pytest.fixture
def memory_store() -> InMemoryApplicationStore:
    return InMemoryApplicationStore()


async def _open_sql_store(tmp_path) -> SqlApplicationStore:
    store = SqlApplicationStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'registrations.db'}")
    await init_db(store.engine)
    return store


@pytest.fixture
async def sql_store(tmp_path):
    """SQLite-backed store in a temporary database file"""
    store = await _open_sql_store(tmp_path)

    yield store

    await store.close()


@pytest.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    """Each store-dependent test runs against both store implementations"""
    if request.param == "memory":
        yield InMemoryApplicationStore()
        return

    store = await _open_sql_store(tmp_path)

    yield store

    await store.close()


@pytest.fixture
def service(store, platforms) -> RegistrationService:
    return RegistrationService(store, ConfigValidator(opener=platforms.open))
