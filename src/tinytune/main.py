"""Main FastAPI application for tinytune."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tinytune.auth.router import router as auth_router
from tinytune.constants import APP_DESCRIPTION, APP_TITLE, APP_VERSION, Routes, ServiceName
from tinytune.db import DatabaseManager
from tinytune.dependencies import build_services
from tinytune.logging import configure_logging
from tinytune.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from tinytune.playback.router import router as playback_router
from tinytune.settings import get_settings


class TinyTuneApp:
    """Application container — configures middleware, routers, and lifespan."""

    app: FastAPI

    def __init__(self) -> None:
        configure_logging(ServiceName.API)
        self.app = FastAPI(
            title=APP_TITLE,
            description=APP_DESCRIPTION,
            version=APP_VERSION,
            lifespan=self._lifespan,
        )
        self._setup_middleware()
        self._setup_routers()

    @staticmethod
    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """Application lifespan: build services on startup, dispose the engine on shutdown."""
        db_manager = DatabaseManager.from_env()
        app.state.services = build_services(get_settings(), db_manager.session)
        try:
            yield
        finally:
            await db_manager.dispose()

    def _setup_middleware(self) -> None:
        settings = get_settings()

        self.app.add_middleware(SecurityHeadersMiddleware)
        self.app.add_middleware(RequestIDMiddleware)

        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    def _setup_routers(self) -> None:
        self.app.include_router(auth_router, prefix=Routes.AUTH.prefix, tags=[Routes.AUTH.tag])
        self.app.include_router(playback_router, tags=["playback"])

        @self.app.get(Routes.HEALTH)
        async def health_check() -> dict[str, str]:
            """Health check endpoint."""
            return {"status": "healthy"}

        @self.app.get("/")
        async def root() -> dict[str, str]:
            """Root endpoint."""
            return {"message": APP_TITLE, "version": APP_VERSION, "login": f"{Routes.AUTH.prefix}/login"}


_application = TinyTuneApp()
app: FastAPI = _application.app
