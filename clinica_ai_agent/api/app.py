"""
FastAPI application factory and configuration.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import get_settings
from ..utils.logging import get_logger, setup_logging
from .dependencies import Services, build_services
from .handlers import ChatHandler, HealthHandler
from .middleware import LoggingMiddleware


logger = get_logger("clinica.api")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    When ``services`` is given it is used as is; otherwise the service graph
    is built from settings at startup and closed at shutdown.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger.info(f"{settings.app_name} starting up", environment=settings.environment)
        owned = services is None
        app.state.services = services or await build_services(settings)
        yield
        logger.info(f"{settings.app_name} shutting down")
        if owned:
            await app.state.services.close()

    app = FastAPI(
        title=settings.app_name,
        description="Conversational appointment booking assistant for the clinic",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    health_handler = HealthHandler()
    chat_handler = ChatHandler()

    app.include_router(health_handler.router, prefix="/health", tags=["health"])
    app.include_router(chat_handler.router, prefix="/chat", tags=["chat"])

    return app
