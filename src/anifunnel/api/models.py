"""Pydantic models for API requests and responses."""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from anifunnel.core.overrides import Override
from anifunnel.models.anilist import MediaListGroup


class AuthenticationRequest(BaseModel):
    """AniList token submitted through the management interface."""

    token: str = Field(..., min_length=1, description="AniList access token")


class OverrideRequest(BaseModel):
    """Override edit. Empty title or zero offset clears the value."""

    title: Optional[str] = None
    episode_offset: Optional[int] = None


class AnimeResponse(BaseModel):
    """Watch list entry with its overrides."""

    id: int
    media_id: int
    title: str
    episode_offset: Optional[int] = None
    title_override: Optional[str] = None

    @classmethod
    def build(cls, watch_list: MediaListGroup, overrides: List[Override]) -> List["AnimeResponse"]:
        """Merge a watch list with stored overrides, sorted by title.

        Overrides for entries no longer on the list are left out.

        Args:
            watch_list: Current watch list
            overrides: All stored overrides

        Returns:
            One item per watch list entry
        """
        by_id: Dict[int, Override] = {override.id: override for override in overrides}
        result = []
        for entry in watch_list.entries:
            override = by_id.get(entry.id)
            result.append(
                cls(
                    id=entry.id,
                    media_id=entry.media.id,
                    title=entry.title,
                    episode_offset=override.episode_offset if override else None,
                    title_override=override.title if override else None,
                )
            )
        result.sort(key=lambda anime: anime.title)
        return result


class UserResponse(BaseModel):
    """Authenticated AniList user."""

    id: int
    name: str
    expiry: int


class ErrorResponse(BaseModel):
    """Error message shown in the management interface."""

    error: str


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded", "unhealthy"]
    version: str
    uptime_seconds: float
    checks: dict[str, bool] = Field(default_factory=dict)
