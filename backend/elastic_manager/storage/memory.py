import asyncio
import itertools
import logging
from typing import Dict, Optional

from elastic_manager.platforms.models import Application, PlatformConfig
from elastic_manager.storage.base import ApplicationStore


class InMemoryApplicationStore(ApplicationStore):
    """
    Process-local store.
    A single lock serializes every read-modify-write; ids come from a counter
    and are never handed out twice.
    """

    def __init__(self):
        self._applications: Dict[int, Application] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    async def save(self, config: PlatformConfig) -> Application:
        async with self._lock:
            application = Application(id=next(self._ids), config=config)
            self._applications[application.id] = application
        self.logger.debug(f"Saved application {application.id} ({config.kind.value})")
        return application

    async def find_by_id(self, application_id: int) -> Optional[Application]:
        async with self._lock:
            return self._applications.get(application_id)

    async def exists_by_id(self, application_id: int) -> bool:
        async with self._lock:
            return application_id in self._applications

    async def replace_config(self, application_id: int, config: PlatformConfig) -> Optional[Application]:
        async with self._lock:
            current = self._applications.get(application_id)
            if current is None or current.kind != config.kind:
                return None
            replacement = Application(id=application_id, config=config)
            self._applications[application_id] = replacement
        self.logger.debug(f"Replaced configuration of application {application_id}")
        return replacement

    async def delete_by_id(self, application_id: int) -> bool:
        async with self._lock:
            removed = self._applications.pop(application_id, None)
        return removed is not None

    async def count(self) -> int:
        async with self._lock:
            return len(self._applications)
