"""User-configured corrections for title matching and episode numbering."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from anifunnel.models.anilist import MediaListIdentifier
from anifunnel.utils.locks import ReadWriteLock
from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)


class OverrideStoreError(Exception):
    """Override could not be saved."""

    pass


@dataclass(frozen=True)
class Override:
    """Corrections for one watch list entry.

    ``title`` is the exact show title Plex reports for the entry and
    ``episode_offset`` is added to Plex episode numbers. Either may be unset.
    """

    id: MediaListIdentifier
    title: Optional[str] = None
    episode_offset: Optional[int] = None

    def get_episode_offset(self) -> int:
        """Episode offset, 0 when unset."""
        return self.episode_offset or 0


def normalise_override_values(
    title: Optional[str], episode_offset: Optional[int]
) -> Tuple[Optional[str], Optional[int]]:
    """Turn an empty title or zero offset into "no override"."""
    return (title or None), (episode_offset or None)


class OverrideStore(ABC):
    """Storage of overrides, keyed by entry ID and by title."""

    @abstractmethod
    def get_by_title(self, title: str) -> Optional[Override]:
        """Get the override whose title is exactly ``title``."""

    @abstractmethod
    def get_by_id(self, id: MediaListIdentifier) -> Optional[Override]:
        """Get the override for a watch list entry."""

    @abstractmethod
    def all(self) -> List[Override]:
        """Get every stored override, ordered by entry ID."""

    @abstractmethod
    def _replace(self, override: Override) -> None:
        """Store ``override``, dropping any other override holding its title."""

    @abstractmethod
    def _delete(self, id: MediaListIdentifier) -> None:
        """Remove the override for an entry if there is one."""

    def set(
        self,
        id: MediaListIdentifier,
        title: Optional[str] = None,
        episode_offset: Optional[int] = None,
    ) -> Optional[Override]:
        """Save the override for an entry.

        Both values replace what was stored before. An empty title or zero
        offset clears that value, and clearing both removes the override.

        Args:
            id: Watch list entry ID
            title: Plex show title to map to the entry
            episode_offset: Offset added to Plex episode numbers

        Returns:
            The stored override, or None if it was removed

        Raises:
            OverrideStoreError: If the override could not be saved
        """
        title, episode_offset = normalise_override_values(title, episode_offset)
        if title is None and episode_offset is None:
            self._delete(id)
            logger.info("Override removed", id=id)
            return None

        override = Override(id=id, title=title, episode_offset=episode_offset)
        self._replace(override)
        logger.info("Override saved", id=id, title=title, episode_offset=episode_offset)
        return override


class InMemoryOverrideStore(OverrideStore):
    """Process-local override store."""

    def __init__(self, overrides: Optional[List[Override]] = None):
        self._lock = ReadWriteLock()
        self._by_id: Dict[MediaListIdentifier, Override] = {}
        self._by_title: Dict[str, MediaListIdentifier] = {}
        for override in overrides or []:
            self.set(override.id, override.title, override.episode_offset)

    def get_by_title(self, title: str) -> Optional[Override]:
        with self._lock.read():
            id = self._by_title.get(title)
            return self._by_id.get(id) if id is not None else None

    def get_by_id(self, id: MediaListIdentifier) -> Optional[Override]:
        with self._lock.read():
            return self._by_id.get(id)

    def all(self) -> List[Override]:
        with self._lock.read():
            return [self._by_id[id] for id in sorted(self._by_id)]

    def _replace(self, override: Override) -> None:
        with self._lock.write():
            self._remove(override.id)
            if override.title is not None:
                previous_id = self._by_title.get(override.title)
                if previous_id is not None:
                    self._remove(previous_id)
                self._by_title[override.title] = override.id
            self._by_id[override.id] = override

    def _delete(self, id: MediaListIdentifier) -> None:
        with self._lock.write():
            self._remove(id)

    def _remove(self, id: MediaListIdentifier) -> None:
        # Caller holds the write lock.
        previous = self._by_id.pop(id, None)
        if previous is not None and previous.title is not None:
            self._by_title.pop(previous.title, None)
