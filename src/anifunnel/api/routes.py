"""API routes for the Plex webhook and the management interface."""

import sqlite3
import time
from typing import List, Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from anifunnel import __version__
from anifunnel.anilist.errors import AniListError, InvalidTokenError
from anifunnel.api.models import (
    AnimeResponse,
    AuthenticationRequest,
    ErrorResponse,
    HealthResponse,
    OverrideRequest,
    UserResponse,
)
from anifunnel.core.overrides import OverrideStoreError
from anifunnel.core.resolver import ScrobbleOutcome
from anifunnel.models.plex import PayloadError, PlexWebhook
from anifunnel.utils.logger import get_logger
from anifunnel.utils.token import TokenParsingError, get_token_expiry

logger = get_logger(__name__)
router = APIRouter()


def error_response(message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> JSONResponse:
    """Build the error body shown by the management interface."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


async def read_payload_field(request: Request) -> Optional[str]:
    """Read the ``payload`` form field Plex sends its JSON document in.

    Raises:
        PayloadError: If the form body or a file part cannot be decoded
    """
    try:
        form = await request.form()
    except (HTTPException, MultiPartException) as e:
        raise PayloadError(f"Unreadable form body: {e}") from e
    part = form.get("payload")
    if part is None:
        return None
    if hasattr(part, "read"):
        data = await part.read()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PayloadError(f"Payload is not UTF-8: {e}") from e
    return str(part)


@router.post("/", response_class=PlainTextResponse)
async def scrobble(request: Request):
    """Handle a Plex webhook.

    Plex posts multipart forms whose ``payload`` field holds the event JSON.
    The response body is ``OK``, ``NO OP`` or ``ERROR``.
    """
    app_state = request.app.state.anifunnel

    try:
        raw = await read_payload_field(request)
        if raw is None:
            logger.warning("Webhook without payload field")
            return PlainTextResponse(ScrobbleOutcome.ERROR.value)
        webhook = PlexWebhook.parse(raw)
    except PayloadError as e:
        logger.warning("Unable to parse payload")
        logger.debug("Payload error", error=str(e))
        return PlainTextResponse(ScrobbleOutcome.ERROR.value)

    result = await app_state.resolver.process(webhook, app_state.anilist_client)
    logger.debug(
        "Scrobble handled",
        outcome=result.outcome.value,
        reason=result.reason,
        entry_id=result.entry_id,
        updated=result.updated,
    )
    return PlainTextResponse(str(result))


@router.get("/api/anime", response_model=List[AnimeResponse])
async def anime_get(request: Request):
    """List the watching list together with stored overrides."""
    app_state = request.app.state.anifunnel

    client = app_state.anilist_client
    if client is None:
        logger.warning(
            "AniList token needs to be set through the management interface "
            "to get watching list"
        )
        return error_response("No Anilist token found.")

    try:
        watch_list = await client.get_watching_list()
    except AniListError as e:
        return error_response(f"Failed to fetch anime list: {e}")

    overrides = app_state.override_store.all()
    return AnimeResponse.build(watch_list, overrides)


@router.post("/api/anime/{id}/edit", status_code=status.HTTP_202_ACCEPTED)
async def anime_override(id: int, data: OverrideRequest, request: Request):
    """Set or clear the override for a watch list entry."""
    app_state = request.app.state.anifunnel

    try:
        app_state.override_store.set(id, data.title, data.episode_offset)
    except OverrideStoreError as e:
        return error_response(f"Failed to save anime override: {e}")

    logger.info("Anime override saved successfully", id=id)
    return Response(status_code=status.HTTP_202_ACCEPTED)


@router.get("/api/user", response_model=Optional[UserResponse])
async def user_get(request: Request):
    """Return basic information on the authenticated user."""
    user = request.app.state.anifunnel.database.get_active_user()
    if user is None:
        return None
    logger.debug("Loaded user from database", user_id=user.user_id)
    return UserResponse(id=user.user_id, name=user.username, expiry=user.expiry)


@router.post("/api/user", status_code=status.HTTP_202_ACCEPTED)
async def user_post(data: AuthenticationRequest, request: Request):
    """Authenticate with AniList and store the token."""
    app_state = request.app.state.anifunnel

    try:
        expiry = get_token_expiry(data.token)
    except TokenParsingError as e:
        return error_response(
            f"Failed to parse Anilist token: {e}. "
            "Ensure that you have a valid Anilist API token."
        )

    lookup_client = app_state.build_client(data.token)
    try:
        user = await lookup_client.get_user()
    except InvalidTokenError:
        return error_response(
            "Invalid token. Ensure that you have a valid token. "
            "Tokens are valid for up to one year from authorization."
        )
    except AniListError as e:
        logger.warning("Could not retrieve AniList user", error=str(e))
        return error_response("Could not retrieve Anilist user.")
    finally:
        await lookup_client.close()

    try:
        app_state.database.save_authentication(data.token, user.id, user.name, expiry)
    except sqlite3.Error as e:
        logger.error("Error while saving authentication data", error=str(e))
        return error_response("Error while saving authentication data")

    await app_state.set_client(app_state.build_client(data.token, user.id))
    logger.info("Application state updated with the new token", user_id=user.id)
    return Response(status_code=status.HTTP_202_ACCEPTED)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    app_state = request.app.state.anifunnel

    uptime = time.time() - app_state.start_time
    checks = {
        "api": True,
        "anilist_token": app_state.anilist_client is not None,
    }

    if all(checks.values()):
        health = "healthy"
    elif checks["api"]:
        health = "degraded"
    else:
        health = "unhealthy"

    return HealthResponse(
        status=health,
        version=__version__,
        uptime_seconds=uptime,
        checks=checks,
    )
