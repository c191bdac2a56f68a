"""FastAPI application for the anifunnel daemon."""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from anifunnel import __version__
from anifunnel.anilist.client import AniListClient
from anifunnel.api import routes
from anifunnel.api.middleware import RequestLoggingMiddleware
from anifunnel.config import Config
from anifunnel.core.database import AnifunnelDatabase
from anifunnel.core.overrides import OverrideStore
from anifunnel.core.resolver import ScrobbleResolver
from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)


class AppState:
    """Application state container."""

    def __init__(
        self,
        config: Config,
        database: AnifunnelDatabase,
        override_store: Optional[OverrideStore] = None,
    ):
        self.config = config
        self.start_time = time.time()
        self.database = database
        self.override_store = override_store or database.overrides
        self.resolver = ScrobbleResolver(
            self.override_store,
            multi_season=config.scrobble.multi_season,
            plex_user=config.scrobble.plex_user,
        )
        # Replaced as a whole when a new token is submitted.
        self.anilist_client: Optional[AniListClient] = None
        self.client_lock = asyncio.Lock()
        # Replaced clients stay open for requests still holding them.
        self.retired_clients: List[AniListClient] = []

    def build_client(self, token: str, user_id: int = 0) -> AniListClient:
        """Create an AniList client using the configured endpoint."""
        return AniListClient(
            token,
            user_id,
            api_url=self.config.anilist.api_url,
            timeout=self.config.anilist.timeout_seconds,
        )

    async def set_client(self, client: Optional[AniListClient]) -> None:
        """Swap the AniList client.

        The previous client is not closed here: webhook requests that read it
        before the swap may still be using it. It is closed on shutdown.
        """
        async with self.client_lock:
            previous, self.anilist_client = self.anilist_client, client
            if previous is not None and previous is not client:
                self.retired_clients.append(previous)

    async def close_clients(self) -> None:
        """Close the current and every replaced AniList client."""
        async with self.client_lock:
            clients = [*self.retired_clients, self.anilist_client]
            self.retired_clients = []
            self.anilist_client = None
        for client in clients:
            if client is not None:
                await client.close()

    def load_user(self) -> None:
        """Clean up expired tokens and load the stored user's client."""
        logger.info("Removing expired AniList tokens")
        self.database.remove_expired_tokens()

        user = self.database.get_active_user()
        if user is None:
            logger.warning(
                "No valid user info found. Make sure to authenticate the "
                "application before usage."
            )
            return
        self.anilist_client = self.build_client(user.token, user.user_id)
        logger.info("Loaded user info", username=user.username, user_id=user.user_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    app_state: AppState = app.state.anifunnel

    logger.info("Starting anifunnel daemon", version=__version__)
    if app_state.anilist_client is None:
        app_state.load_user()

    yield

    logger.info("Shutting down anifunnel daemon")
    await app_state.close_clients()
    logger.info("Shutdown complete")


def create_app(
    config: Config,
    database: Optional[AnifunnelDatabase] = None,
    override_store: Optional[OverrideStore] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Application configuration
        database: Database to use instead of the configured one
        override_store: Override store to use instead of the database's

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="anifunnel",
        description="Plex scrobbling to AniList",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    # The management interface may be served from another origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if database is None:
        database = AnifunnelDatabase(config.database.path)
    app.state.anifunnel = AppState(config, database, override_store)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with detailed logging."""
        logger.error(
            "Request validation failed",
            path=request.url.path,
            method=request.method,
            errors=exc.errors(),
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=jsonable_encoder({"error": "Invalid request", "errors": exc.errors()}),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions."""
        logger.error(
            "Unhandled exception in request handler",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    app.include_router(routes.router)

    logger.info(
        "FastAPI application created",
        version=__version__,
        api_port=config.api.port,
        multi_season=config.scrobble.multi_season,
        plex_user=config.scrobble.plex_user,
    )

    return app
