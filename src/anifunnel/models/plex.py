"""Plex webhook models and classification."""

import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

SCROBBLE_EVENT = "media.scrobble"
EPISODE_TYPE = "episode"


class PayloadError(Exception):
    """Inbound webhook payload could not be parsed."""

    pass


class WebhookState(str, Enum):
    """Disposition of an incoming Plex webhook."""

    ACTIONABLE = "actionable"
    NO_METADATA = "no_metadata"
    NON_SCROBBLE_EVENT = "non_scrobble_event"
    INCORRECT_TYPE = "incorrect_type"
    INCORRECT_SEASON = "incorrect_season"


class PlexAccount(BaseModel):
    """Plex account that triggered the event."""

    name: str = Field(..., alias="title")

    model_config = ConfigDict(populate_by_name=True)


class PlexMetadata(BaseModel):
    """Metadata of the played item.

    Movies, tracks and library events omit some of these fields.
    """

    media_type: Optional[str] = Field(default=None, alias="type")
    title: Optional[str] = Field(default=None, alias="grandparentTitle")
    season_number: Optional[int] = Field(default=None, alias="parentIndex")
    episode_number: Optional[int] = Field(default=None, alias="index")

    # Aliases only: Plex sends its own "title" key holding the episode title.
    model_config = ConfigDict(populate_by_name=False)

    @property
    def is_complete(self) -> bool:
        """Whether the fields needed to resolve an episode are present."""
        return None not in (self.title, self.season_number, self.episode_number)


class PlexWebhook(BaseModel):
    """Plex webhook payload.

    Only the fields anifunnel uses are modelled; Plex sends many more.
    Metadata is only guaranteed to be complete for episode scrobbles, so it is
    optional here and must not be used unless classify() returned ACTIONABLE.
    """

    event: str
    account: PlexAccount = Field(..., alias="Account")
    metadata: Optional[PlexMetadata] = Field(default=None, alias="Metadata")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def parse(cls, raw: str | bytes) -> "PlexWebhook":
        """Parse the JSON document sent in the ``payload`` form field.

        Raises:
            PayloadError: If the payload is not valid JSON or misses required fields
        """
        try:
            return cls.model_validate(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError, TypeError) as e:
            raise PayloadError(str(e)) from e

    def classify(self, multi_season: bool = False) -> WebhookState:
        """Decide whether this webhook should update AniList.

        Rules, in order:
        1. Only ``media.scrobble`` events are considered
        2. Scrobbles must carry metadata
        3. Only episodes are considered, and their show title, season and
           episode number must be present
        4. Season 1 only, or any season >= 1 with multi_season; specials
           (season 0) never qualify

        Args:
            multi_season: Accept seasons other than the first

        Returns:
            Webhook disposition
        """
        if self.event != SCROBBLE_EVENT:
            return WebhookState.NON_SCROBBLE_EVENT
        if self.metadata is None:
            return WebhookState.NO_METADATA
        if self.metadata.media_type != EPISODE_TYPE:
            return WebhookState.INCORRECT_TYPE
        if not self.metadata.is_complete:
            return WebhookState.NO_METADATA
        if multi_season:
            allowed_season = self.metadata.season_number >= 1
        else:
            allowed_season = self.metadata.season_number == 1
        if not allowed_season:
            return WebhookState.INCORRECT_SEASON
        return WebhookState.ACTIONABLE
