from elastic_manager.db.session import Base
from .models import ApplicationRecord, KubernetesConfigRecord, OpenNebulaConfigRecord

__all__ = [
    "Base",
    "ApplicationRecord",
    "KubernetesConfigRecord",
    "OpenNebulaConfigRecord"
]
