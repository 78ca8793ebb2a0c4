"""
Dependency injection for the elastic application manager
Builds the registration store and service and exposes them to request handlers
"""

import logging
from fastapi import Request

from elastic_manager.core.config import Settings
from elastic_manager.db.session import init_db
from elastic_manager.services.registration_service import RegistrationService
from elastic_manager.storage import ApplicationStore, InMemoryApplicationStore, SqlApplicationStore

logger = logging.getLogger(__name__)


async def build_store(settings: Settings) -> ApplicationStore:
    """Create the configured registration store, creating tables for the sql backend"""
    if settings.STORE_BACKEND == "memory":
        logger.info("Using in-memory registration store")
        return InMemoryApplicationStore()

    store = SqlApplicationStore.from_url(settings.ASYNC_DATABASE_URL)
    await init_db(store.engine)
    logger.info("Using SQL registration store")
    return store


def get_registration_service(request: Request) -> RegistrationService:
    """FastAPI dependency returning the service created at startup"""
    return request.app.state.registration_service
