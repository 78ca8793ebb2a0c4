# elastic_manager/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import logging
from datetime import datetime
from contextlib import asynccontextmanager
from dotenv import load_dotenv

load_dotenv()

from .core.config import Settings, settings as default_settings
from .core.exceptions import (
    ElasticManagerException,
    elastic_manager_exception_handler,
    validation_exception_handler,
    http_exception_handler
)
from .core.dependencies import build_store
from .api.middleware import LoggingMiddleware
from .api.v1 import applications, kubernetes, opennebula
from .services.registration_service import RegistrationService
from .utils.logging_filter import setup_secure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application for the given settings"""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle: open the registration store, close it on shutdown"""
        logger.info("Application starting...")

        store = await build_store(settings)
        app.state.registration_service = RegistrationService(store)

        logger.info("Application startup completed - ready to accept requests")

        yield

        logger.info("Application shutting down...")
        await store.close()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        description="Registration, validation and scaling of elastic applications on Kubernetes and OpenNebula",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan
    )
    app.state.distinct_error_status = settings.DISTINCT_ERROR_STATUS

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"]
    )
    app.add_middleware(LoggingMiddleware)

    # Exception handlers
    app.add_exception_handler(ElasticManagerException, elastic_manager_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": f"Welcome to {settings.APP_NAME} API",
            "version": settings.APP_VERSION,
            "status": "running",
            "api_base": settings.API_PREFIX,
            "store_backend": settings.STORE_BACKEND,
            "timestamp": datetime.now().isoformat()
        }

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint"""
        service = getattr(app.state, "registration_service", None)
        if service is None:
            store_status = "not_initialized"
        else:
            store_status = "connected" if await service.store.ping() else "error"

        return {
            "status": "healthy" if store_status == "connected" else "degraded",
            "store": store_status,
            "timestamp": datetime.now().isoformat()
        }

    # API router registration
    app.include_router(kubernetes.router, prefix=f"{settings.API_PREFIX}/kubernetes", tags=["kubernetes"])
    app.include_router(opennebula.router, prefix=f"{settings.API_PREFIX}/opennebula", tags=["opennebula"])
    app.include_router(applications.router, prefix=f"{settings.API_PREFIX}/app", tags=["applications"])

    return app


setup_secure_logging(default_settings.LOG_LEVEL)

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "elastic_manager.main:app",
        host="0.0.0.0",
        port=8080,
        log_level="info"
    )
