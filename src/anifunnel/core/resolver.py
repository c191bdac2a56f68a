"""Scrobble resolution: from a Plex webhook to an AniList progress update."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from anifunnel.anilist.errors import AniListError, AniListErrorKind
from anifunnel.core.overrides import Override, OverrideStore
from anifunnel.models.anilist import MediaList, MediaListGroup, MediaListIdentifier
from anifunnel.models.plex import PlexWebhook, WebhookState
from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)


class RemoteListClient(Protocol):
    """Watch list operations the resolver needs from AniList."""

    async def get_watching_list(self) -> MediaListGroup: ...

    async def update_progress(self, media_list: MediaList, progress: Optional[int] = None) -> bool: ...


class ScrobbleOutcome(str, Enum):
    """Response sent back to Plex."""

    OK = "OK"
    NO_OP = "NO OP"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ScrobbleResult:
    """Terminal outcome of handling one webhook."""

    outcome: ScrobbleOutcome
    reason: str
    entry_id: Optional[MediaListIdentifier] = None
    updated: bool = False
    error: Optional[AniListErrorKind] = None

    def __str__(self) -> str:
        return self.outcome.value


@dataclass(frozen=True)
class ResolvedEntry:
    """Watch list entry identified for a show, with its episode offset."""

    entry: MediaList
    episode_offset: int = 0
    via_override: bool = False


class OverrideResolver:
    """Identifies watch list entries, honouring user overrides."""

    def __init__(self, store: OverrideStore):
        self.store = store

    def by_title(self, title: str) -> Optional[Override]:
        """Override registered for an exact Plex show title."""
        return self.store.get_by_title(title)

    def by_id(self, id: MediaListIdentifier) -> Optional[Override]:
        """Override registered for a watch list entry."""
        return self.store.get_by_id(id)

    def resolve(self, title: str, watch_list: MediaListGroup) -> Optional[ResolvedEntry]:
        """Find the entry for a show title and its episode offset.

        A title override maps the raw Plex title straight to an entry ID and
        bypasses fuzzy matching. The episode offset is looked up by the
        resolved entry ID either way.

        Args:
            title: Show title exactly as reported by Plex
            watch_list: Current watch list

        Returns:
            Resolved entry, or None if no entry matches
        """
        override = self.by_title(title)
        via_override = override is not None
        if via_override:
            logger.debug("Title override found", title=title, id=override.id)
            entry = watch_list.find_by_id(override.id)
        else:
            entry = watch_list.find_best_match(title)

        if entry is None:
            return None

        if override is None:
            override = self.by_id(entry.id)
        episode_offset = override.get_episode_offset() if override else 0
        return ResolvedEntry(
            entry=entry,
            episode_offset=episode_offset,
            via_override=via_override,
        )


class ScrobbleResolver:
    """Decides whether a Plex scrobble advances AniList progress."""

    def __init__(
        self,
        override_store: OverrideStore,
        multi_season: bool = False,
        plex_user: Optional[str] = None,
    ):
        """Initialize scrobble resolver.

        Args:
            override_store: Title and episode offset overrides
            multi_season: Accept seasons other than the first
            plex_user: Only handle scrobbles from this Plex account
        """
        self.overrides = OverrideResolver(override_store)
        self.multi_season = multi_season
        self.plex_user = plex_user

    async def process(
        self, webhook: PlexWebhook, client: Optional[RemoteListClient]
    ) -> ScrobbleResult:
        """Handle one Plex webhook.

        Progress is only updated when the effective episode (Plex episode
        plus offset) is exactly one past the recorded progress, which makes
        replayed and out-of-order scrobbles no-ops.

        Args:
            webhook: Parsed Plex webhook
            client: AniList client of the authenticated user, if any

        Returns:
            Outcome of the webhook
        """
        state = webhook.classify(self.multi_season)
        if state == WebhookState.NO_METADATA:
            logger.warning("Scrobble event without metadata", plex_event=webhook.event)
        if state != WebhookState.ACTIONABLE:
            logger.info("Webhook is not actionable", plex_event=webhook.event, state=state.value)
            return ScrobbleResult(ScrobbleOutcome.NO_OP, state.value)

        if self.plex_user is not None:
            if webhook.account.name != self.plex_user:
                logger.info("Ignoring update for Plex user", plex_user=webhook.account.name)
                return ScrobbleResult(ScrobbleOutcome.NO_OP, "plex_user")
            logger.debug("Update matches Plex username restriction", plex_user=self.plex_user)

        if client is None:
            logger.warning(
                "AniList token needs to be set through the management interface "
                "to update progress"
            )
            return ScrobbleResult(ScrobbleOutcome.ERROR, "no_session")

        metadata = webhook.metadata
        try:
            watch_list = await client.get_watching_list()
        except AniListError as e:
            logger.error("Failed to fetch watching list", error=str(e), kind=e.kind.value)
            return ScrobbleResult(ScrobbleOutcome.OK, "fetch_failed", error=e.kind)

        resolved = self.overrides.resolve(metadata.title, watch_list)
        if resolved is None:
            logger.debug("Could not find a match", title=metadata.title)
            return ScrobbleResult(ScrobbleOutcome.NO_OP, "no_match")

        entry = resolved.entry
        effective_episode = metadata.episode_number + resolved.episode_offset
        logger.debug(
            "Processing entry",
            id=entry.id,
            title=entry.title,
            progress=entry.progress,
            episode=metadata.episode_number,
            episode_offset=resolved.episode_offset,
        )

        if effective_episode != entry.progress + 1:
            logger.info(
                "Episode is not the next one, skipping",
                title=entry.title,
                episode=effective_episode,
                progress=entry.progress,
            )
            return ScrobbleResult(ScrobbleOutcome.OK, "not_next_episode", entry_id=entry.id)

        try:
            confirmed = await client.update_progress(entry, entry.progress + 1)
        except AniListError as e:
            logger.error("Failed to update progress", title=entry.title, error=str(e))
            return ScrobbleResult(
                ScrobbleOutcome.OK, "update_failed", entry_id=entry.id, error=e.kind
            )

        if confirmed:
            logger.info("Updated progress", title=entry.title, progress=entry.progress + 1)
            return ScrobbleResult(ScrobbleOutcome.OK, "updated", entry_id=entry.id, updated=True)

        logger.error("Failed to update progress", title=entry.title)
        return ScrobbleResult(ScrobbleOutcome.OK, "update_unconfirmed", entry_id=entry.id)
