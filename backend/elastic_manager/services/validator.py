"""
Validator Module

Proves a platform configuration is actionable before it is trusted for
persistence. Failures are classified as:

- PlatformConnectionException: the client could not be opened or the
  instances could not be listed at all.
- InvalidPlatformConfigException: the platform answered, but an instance's
  name or load could not be read.

Platform libraries are blocking, so every call runs in a worker thread.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from elastic_manager.core.exceptions import InvalidPlatformConfigException, PlatformConnectionException
from elastic_manager.platforms.base import AppClient, AppClientError, AppInstance
from elastic_manager.platforms.models import InstanceSnapshot, PlatformConfig, open_client

logger = logging.getLogger(__name__)

ClientOpener = Callable[[PlatformConfig], AppClient]


def _read_instance(instance: AppInstance) -> InstanceSnapshot:
    return InstanceSnapshot(
        name=instance.get_name(),
        cpu_load=instance.get_cpu_load(),
        ram_load=instance.get_ram_load(),
    )


async def connect(config: PlatformConfig, opener: ClientOpener = open_client) -> AppClient:
    """Open a client for ``config``"""
    try:
        return await asyncio.to_thread(opener, config)
    except AppClientError as e:
        logger.error(f"No connection to {config.kind.value} platform: {e}")
        raise PlatformConnectionException(e, platform=config.kind.value) from e


async def snapshot_instances(client: AppClient, platform: Optional[str] = None) -> List[InstanceSnapshot]:
    """List the client's instances and read each one's identity and load"""
    try:
        instances = await asyncio.to_thread(client.get_app_instances)
    except AppClientError as e:
        logger.error(f"Unable to list instances: {e}")
        raise PlatformConnectionException(e, platform=platform) from e

    snapshots = []
    for position, instance in enumerate(instances):
        try:
            snapshots.append(await asyncio.to_thread(_read_instance, instance))
        except AppClientError as e:
            logger.error(f"Unable to get info of instance #{position}: {e}")
            raise InvalidPlatformConfigException(e, platform=platform, instance=position) from e
    return snapshots


class ConfigValidator:
    """Runs a configuration against the live platform"""

    def __init__(self, opener: ClientOpener = open_client):
        self.opener = opener

    async def validate(self, config: PlatformConfig) -> List[InstanceSnapshot]:
        """Open a client for ``config`` and return the instances it reports"""
        logger.info(f"Validating {config!r}")

        client = await connect(config, self.opener)
        instances = await snapshot_instances(client, platform=config.kind.value)

        logger.info(f"Validated {config.kind.value} configuration: instances count = {len(instances)}")
        for instance in instances:
            logger.info(
                f"Instance(name = \"{instance.name}\", CPU = {instance.cpu_load}, RAM = {instance.ram_load})"
            )

        return instances
