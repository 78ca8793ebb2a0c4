from .registration_service import RegistrationService
from .validator import ConfigValidator, connect, snapshot_instances

__all__ = [
    "RegistrationService",
    "ConfigValidator",
    "connect",
    "snapshot_instances"
]
