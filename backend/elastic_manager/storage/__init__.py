from .base import ApplicationStore
from .memory import InMemoryApplicationStore
from .sql import SqlApplicationStore

__all__ = [
    "ApplicationStore",
    "InMemoryApplicationStore",
    "SqlApplicationStore"
]
