"""
Registration store contract

The store owns the durable Application and PlatformConfig records and
generates identifiers. Absence is reported as None/False; deciding that
absence means "not found" is the caller's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

from elastic_manager.platforms.models import Application, PlatformConfig


class ApplicationStore(ABC):
    """Persistence for registered applications, keyed by store-generated id"""

    @abstractmethod
    async def save(self, config: PlatformConfig) -> Application:
        """Persist a new application bound to ``config`` and return it with its id"""

    @abstractmethod
    async def find_by_id(self, application_id: int) -> Optional[Application]:
        ...

    @abstractmethod
    async def exists_by_id(self, application_id: int) -> bool:
        ...

    @abstractmethod
    async def replace_config(self, application_id: int, config: PlatformConfig) -> Optional[Application]:
        """
        Atomically swap the configuration of an existing application.

        Returns None when the application is gone or currently holds a
        configuration of a different platform kind.
        """

    @abstractmethod
    async def delete_by_id(self, application_id: int) -> bool:
        """Remove the application and its configuration; False if it did not exist"""

    @abstractmethod
    async def count(self) -> int:
        ...

    async def ping(self) -> bool:
        """Report whether the backing storage is reachable"""
        return True

    async def close(self) -> None:
        pass
