"""
SQLAlchemy-backed registration store

Each write runs in its own transaction. The application row is read FOR
UPDATE before it is modified or deleted, so an update racing a delete on the
same id ends with either the new config committed or the row gone. SQLite has
no row locks, so writes on SQLite are additionally serialized in-process.
"""

import asyncio
import contextlib
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Type

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from elastic_manager.core.exceptions import InvariantViolationException
from elastic_manager.db.session import create_engine, create_session_factory, is_postgres_url, validate_db_setup
from elastic_manager.models.models import ApplicationRecord, KubernetesConfigRecord, OpenNebulaConfigRecord
from elastic_manager.platforms.models import (
    PLATFORM_CONFIG_TYPES,
    Application,
    PlatformConfig,
    PlatformKind,
    build_platform_config,
)
from elastic_manager.storage.base import ApplicationStore

logger = logging.getLogger(__name__)

_RECORD_TYPES: Dict[PlatformKind, Type] = {
    PlatformKind.KUBERNETES: KubernetesConfigRecord,
    PlatformKind.OPENNEBULA: OpenNebulaConfigRecord,
}

_RELATIONSHIPS: Dict[PlatformKind, str] = {
    PlatformKind.KUBERNETES: "kubernetes_config",
    PlatformKind.OPENNEBULA: "opennebula_config",
}


def _config_fields(config: PlatformConfig) -> Dict[str, object]:
    return {f.name: getattr(config, f.name) for f in dataclasses.fields(config)}


def _to_domain(record: ApplicationRecord) -> Application:
    """Rehydrate an application, checking it references exactly one matching config"""
    attached = {
        kind: getattr(record, attr)
        for kind, attr in _RELATIONSHIPS.items()
        if getattr(record, attr) is not None
    }
    if len(attached) != 1:
        raise InvariantViolationException(
            f"Application {record.id} references {len(attached)} configurations",
            application_id=record.id
        )

    kind, child = next(iter(attached.items()))
    if record.platform != kind.value:
        raise InvariantViolationException(
            f"Application {record.id} is tagged {record.platform!r} but holds a {kind.value} configuration",
            application_id=record.id
        )

    field_names = [f.name for f in dataclasses.fields(PLATFORM_CONFIG_TYPES[kind])]
    config = build_platform_config(kind, **{name: getattr(child, name) for name in field_names})
    return Application(id=record.id, config=config)


class SqlApplicationStore(ApplicationStore):
    """Registration store on a relational database"""

    def __init__(self, engine: AsyncEngine, session_factory: Optional[async_sessionmaker] = None):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)
        self._serialize_writes = not is_postgres_url(str(engine.url))
        self._write_lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "SqlApplicationStore":
        return cls(create_engine(database_url))

    def _writing(self):
        return self._write_lock if self._serialize_writes else contextlib.nullcontext()

    async def save(self, config: PlatformConfig) -> Application:
        kind = config.kind
        async with self._writing():
            async with self.session_factory() as session:
                async with session.begin():
                    record = ApplicationRecord(platform=kind.value)
                    setattr(record, _RELATIONSHIPS[kind], _RECORD_TYPES[kind](**_config_fields(config)))
                    session.add(record)
                    await session.flush()
                    if record.id is None:
                        raise InvariantViolationException("Id for a new application was not generated")
                    application = Application(id=record.id, config=config)

        logger.info(f"Stored application {application.id} ({kind.value})")
        return application

    async def find_by_id(self, application_id: int) -> Optional[Application]:
        async with self.session_factory() as session:
            record = await session.get(ApplicationRecord, application_id)
            if record is None:
                return None
            return _to_domain(record)

    async def exists_by_id(self, application_id: int) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ApplicationRecord.id).where(ApplicationRecord.id == application_id)
            )
            return result.scalar_one_or_none() is not None

    async def replace_config(self, application_id: int, config: PlatformConfig) -> Optional[Application]:
        kind = config.kind
        async with self._writing():
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(ApplicationRecord)
                        .where(ApplicationRecord.id == application_id)
                        .with_for_update()
                    )
                    record = result.scalar_one_or_none()
                    if record is None or record.platform != kind.value:
                        return None

                    # Update the existing config row in place to keep its id
                    child = getattr(record, _RELATIONSHIPS[kind])
                    if child is None:
                        raise InvariantViolationException(
                            f"Application {application_id} has no {kind.value} configuration row",
                            application_id=application_id
                        )
                    for name, value in _config_fields(config).items():
                        setattr(child, name, value)
                    record.updated_at = datetime.now(timezone.utc)
                    await session.flush()
                    application = _to_domain(record)

        logger.info(f"Replaced configuration of application {application_id} ({kind.value})")
        return application

    async def delete_by_id(self, application_id: int) -> bool:
        async with self._writing():
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(ApplicationRecord)
                        .where(ApplicationRecord.id == application_id)
                        .with_for_update()
                    )
                    record = result.scalar_one_or_none()
                    if record is None:
                        return False
                    await session.delete(record)

        logger.info(f"Deleted application {application_id}")
        return True

    async def count(self) -> int:
        async with self.session_factory() as session:
            result = await session.execute(select(func.count()).select_from(ApplicationRecord))
            return result.scalar_one()

    async def ping(self) -> bool:
        return await validate_db_setup(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()
