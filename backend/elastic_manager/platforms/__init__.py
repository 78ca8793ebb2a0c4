from .base import AppClient, AppClientError, AppInstance
from .models import (
    Application,
    InstanceSnapshot,
    KubernetesConfig,
    OpenNebulaConfig,
    PlatformConfig,
    PlatformKind,
    PLATFORM_CONFIG_TYPES,
    build_platform_config,
    open_client,
)

__all__ = [
    "AppClient",
    "AppClientError",
    "AppInstance",
    "Application",
    "InstanceSnapshot",
    "KubernetesConfig",
    "OpenNebulaConfig",
    "PlatformConfig",
    "PlatformKind",
    "PLATFORM_CONFIG_TYPES",
    "build_platform_config",
    "open_client",
]
