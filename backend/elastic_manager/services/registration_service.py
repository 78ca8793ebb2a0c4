"""
Registration Service Module

Orchestrates the lifecycle of registered elastic applications:
create, update, delete, instance queries and scaling.
Validation always happens before the store is touched; the store is the only
shared state between requests.
"""

import asyncio
import logging
from typing import List, Optional

from elastic_manager.core.exceptions import ApplicationNotFoundException, PlatformConnectionException
from elastic_manager.platforms.base import AppClientError
from elastic_manager.platforms.models import Application, InstanceSnapshot, PlatformConfig
from elastic_manager.services.validator import ConfigValidator, connect, snapshot_instances
from elastic_manager.storage.base import ApplicationStore

logger = logging.getLogger(__name__)


class RegistrationService:
    """
    Service class for managing application registrations.

    Validator failures propagate unchanged; absence reported by the store
    becomes ApplicationNotFoundException here.
    """

    def __init__(self, store: ApplicationStore, validator: Optional[ConfigValidator] = None):
        """
        Initialize RegistrationService.

        Args:
            store: Registration store holding applications and their configs
            validator: Validator used on create/update; its client opener is
                also used for instance queries
        """
        self.store = store
        self.validator = validator or ConfigValidator()

    async def create(self, config: PlatformConfig) -> int:
        """
        Validate ``config`` against its platform and register it.

        Returns:
            Id of the new application

        Raises:
            PlatformConnectionException: Platform unreachable
            InvalidPlatformConfigException: Platform instances unreadable
        """
        logger.info(f"create(config = {config!r})")

        await self.validator.validate(config)
        application = await self.store.save(config)

        logger.info(f"create result: id = {application.id}")
        return application.id

    async def update(self, application_id: int, config: PlatformConfig) -> None:
        """
        Replace the configuration of an application, keeping its id.

        The application must currently hold a configuration of the same
        platform kind; cross-platform replacement is rejected as not found.
        """
        logger.info(f"update(id = {application_id}, config = {config!r})")

        current = await self._get_application(application_id)
        if current.kind != config.kind:
            raise ApplicationNotFoundException(application_id, platform=config.kind.value)

        await self.validator.validate(config)

        updated = await self.store.replace_config(application_id, config)
        if updated is None:
            # Deleted or re-registered while the new config was being validated
            raise ApplicationNotFoundException(application_id, platform=config.kind.value)

        logger.info(f"update result: id = {application_id} now uses {config!r}")

    async def delete(self, application_id: int) -> int:
        logger.info(f"delete(id = {application_id})")

        if not await self.store.delete_by_id(application_id):
            raise ApplicationNotFoundException(application_id)

        logger.info(f"delete result: id = {application_id}")
        return application_id

    async def get_instances(self, application_id: int) -> List[InstanceSnapshot]:
        """Fetch a fresh snapshot of the application's running instances"""
        logger.info(f"get_instances(id = {application_id})")

        application = await self._get_application(application_id)
        client = await connect(application.config, self.validator.opener)
        instances = await snapshot_instances(client, platform=application.kind.value)

        logger.info(f"get_instances result: {instances}")
        return instances

    async def scale(self, application_id: int, increment_by: int) -> List[InstanceSnapshot]:
        """Forward a scale-by-delta request once, then return the post-scale snapshot"""
        logger.info(f"scale(id = {application_id}, increment_by = {increment_by})")

        application = await self._get_application(application_id)
        platform = application.kind.value
        client = await connect(application.config, self.validator.opener)

        try:
            await asyncio.to_thread(client.scale_instances, increment_by)
        except AppClientError as e:
            logger.error(f"Unable to scale application {application_id}: {e}")
            raise PlatformConnectionException(e, platform=platform, application_id=application_id) from e

        instances = await snapshot_instances(client, platform=platform)

        logger.info(f"scale result: {instances}")
        return instances

    async def _get_application(self, application_id: int) -> Application:
        application = await self.store.find_by_id(application_id)
        if application is None:
            logger.debug(f"Application not found: {application_id}")
            raise ApplicationNotFoundException(application_id)
        return application
