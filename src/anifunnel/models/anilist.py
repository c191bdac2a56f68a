"""AniList data models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from anifunnel.core.matcher import MINIMUM_CONFIDENCE, score_titles
from anifunnel.utils.logger import get_logger

logger = get_logger(__name__)

MediaListIdentifier = int
UserIdentifier = int


class MediaTitle(BaseModel):
    """Title variants of an AniList media entry."""

    model_config = ConfigDict(frozen=True)

    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None
    userPreferred: str

    def variants(self) -> List[Optional[str]]:
        """Titles used for matching. userPreferred is display-only."""
        return [self.romaji, self.english, self.native]

    def find_match(self, query: str) -> float:
        """Score a lower-cased query against this title."""
        return score_titles(query, self.variants())

    def __str__(self) -> str:
        return self.userPreferred


class Media(BaseModel):
    """AniList media (the show itself)."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: MediaTitle


class MediaList(BaseModel):
    """An entry on the user's watch list."""

    model_config = ConfigDict(frozen=True)

    id: MediaListIdentifier
    progress: int = 0
    media: Media

    @property
    def title(self) -> str:
        """Display title."""
        return str(self.media.title)

    def __str__(self) -> str:
        return f"MediaList {{ id: {self.id} }}"


class MediaListGroup(BaseModel):
    """Watch list flattened from AniList's status-grouped lists."""

    entries: List[MediaList] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "MediaListGroup":
        """Create an empty watch list."""
        return cls(entries=[])

    def find_by_id(self, id: MediaListIdentifier) -> Optional[MediaList]:
        """Find an entry by its list entry ID."""
        logger.debug("Matching by ID", id=id)
        return next((entry for entry in self.entries if entry.id == id), None)

    def find_best_match(self, title: str) -> Optional[MediaList]:
        """Find the entry best matching a show title.

        The first exact match is returned immediately, so with duplicate
        titles the earlier entry wins. Otherwise the highest scoring entry is
        returned if it reaches MINIMUM_CONFIDENCE.

        Args:
            title: Show title as reported by Plex

        Returns:
            Matching entry, or None if no entry is similar enough
        """
        match_title = title.lower()
        logger.debug("Matching by title", title=match_title)

        best_confidence = 0.0
        best_entry: Optional[MediaList] = None
        for entry in self.entries:
            confidence = entry.media.title.find_match(match_title)
            if confidence == 1.0:
                logger.info("Exact title match", entry=entry.title, title=title)
                return entry
            if confidence > best_confidence:
                best_confidence = confidence
                best_entry = entry

        if best_entry is None:
            return None

        logger.info(
            "Best title match",
            entry=best_entry.title,
            title=title,
            confidence=round(best_confidence, 3),
        )
        if best_confidence >= MINIMUM_CONFIDENCE:
            return best_entry
        return None


class MediaListCollectionGroup(BaseModel):
    entries: List[MediaList] = Field(default_factory=list)


class CollectionLists(BaseModel):
    lists: List[MediaListCollectionGroup] = Field(default_factory=list)


class MediaListCollectionData(BaseModel):
    """Response data of the watching list query."""

    MediaListCollection: CollectionLists

    def flatten(self) -> MediaListGroup:
        """Collect the entries of every status group into one list."""
        entries = [entry for group in self.MediaListCollection.lists for entry in group.entries]
        return MediaListGroup(entries=entries)


class SavedProgress(BaseModel):
    progress: int


class SaveMediaListEntryData(BaseModel):
    """Response data of the progress mutation."""

    SaveMediaListEntry: SavedProgress


class User(BaseModel):
    """AniList viewer."""

    id: UserIdentifier
    name: str


class ViewerData(BaseModel):
    """Response data of the viewer query."""

    Viewer: User
