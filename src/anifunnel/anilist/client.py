"""AniList GraphQL API client."""

import json
from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from anifunnel.anilist import queries
from anifunnel.anilist.errors import (
    AniListConnectionError,
    AniListParsingError,
    InvalidTokenError,
    RequestDataError,
)
from anifunnel.models.anilist import (
    MediaList,
    MediaListCollectionData,
    MediaListGroup,
    SaveMediaListEntryData,
    User,
    UserIdentifier,
    ViewerData,
)
from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)

API_URL = "https://graphql.anilist.co/"
INVALID_TOKEN_MESSAGE = "Invalid token"

T = TypeVar("T", bound=BaseModel)


class AniListClient:
    """AniList API client bound to one access token."""

    def __init__(
        self,
        token: str,
        user_id: UserIdentifier = 0,
        api_url: str = API_URL,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize AniList client.

        Args:
            token: AniList access token
            user_id: AniList user ID; 0 when the client is only used to look
                up the token's owner
            api_url: GraphQL endpoint
            timeout: Request timeout in seconds
            http_client: HTTP client to use instead of a private one
        """
        self.token = token
        self.user_id = user_id
        self.api_url = api_url
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()

    async def _send_query(self, query: str, variables: Optional[dict[str, Any]] = None) -> httpx.Response:
        """Send a GraphQL document.

        Raises:
            RequestDataError: If the request body cannot be serialised
            AniListConnectionError: If the request fails in transport
        """
        try:
            body = json.dumps({"query": query, "variables": variables})
        except (TypeError, ValueError) as e:
            raise RequestDataError(str(e)) from e

        if self.client.is_closed:
            raise AniListConnectionError("HTTP client has been closed")

        try:
            return await self.client.post(
                self.api_url,
                content=body,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "Authorization": f"Bearer {self.token}",
                },
            )
        except httpx.HTTPError as e:
            logger.warning("AniList request failed", error=str(e))
            raise AniListConnectionError(str(e)) from e

    @staticmethod
    def _parse(response: httpx.Response, model: Type[T]) -> T:
        """Parse the ``data`` member of a GraphQL response.

        Raises:
            InvalidTokenError: If AniList rejected the token
            AniListParsingError: If the response does not match the model
        """
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug("Unparseable AniList response", body=response.text[:500])
            raise AniListParsingError(str(e)) from e

        if response.status_code in (400, 401) and isinstance(payload, dict):
            for error in payload.get("errors") or []:
                if isinstance(error, dict) and error.get("message") == INVALID_TOKEN_MESSAGE:
                    raise InvalidTokenError()

        data = payload.get("data") if isinstance(payload, dict) else None
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.debug(
                "Unexpected AniList response",
                status_code=response.status_code,
                body=response.text[:500],
                error=str(e),
            )
            raise AniListParsingError(str(e)) from e

    async def get_user(self) -> User:
        """Get the user owning the token."""
        response = await self._send_query(queries.USER_QUERY)
        viewer = self._parse(response, ViewerData).Viewer
        logger.debug("Found AniList user", name=viewer.name, user_id=viewer.id)
        return viewer

    async def get_watching_list(self) -> MediaListGroup:
        """Get the user's current and repeating anime, as one list."""
        response = await self._send_query(
            queries.MEDIALIST_QUERY, {"user_id": self.user_id}
        )
        collection = self._parse(response, MediaListCollectionData)
        watch_list = collection.flatten()
        logger.debug("Fetched watching list", entries=len(watch_list.entries))
        return watch_list

    async def update_progress(self, media_list: MediaList, progress: Optional[int] = None) -> bool:
        """Save an entry's episode progress.

        Args:
            media_list: Entry as fetched from AniList
            progress: New progress, defaults to one episode past the current one

        Returns:
            True if AniList confirmed the new progress
        """
        if progress is None:
            progress = media_list.progress + 1
        response = await self._send_query(
            queries.MEDIALIST_MUTATION, {"id": media_list.id, "progress": progress}
        )
        saved = self._parse(response, SaveMediaListEntryData).SaveMediaListEntry
        return saved.progress == progress
