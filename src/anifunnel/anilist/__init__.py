"""AniList GraphQL client.

The client fetches the user's watching list and saves episode progress.
"""

from anifunnel.anilist.client import AniListClient
from anifunnel.anilist.errors import (
    AniListConnectionError,
    AniListError,
    AniListErrorKind,
    AniListParsingError,
    InvalidTokenError,
    RequestDataError,
)

__all__ = [
    "AniListClient",
    "AniListConnectionError",
    "AniListError",
    "AniListErrorKind",
    "AniListParsingError",
    "InvalidTokenError",
    "RequestDataError",
]
