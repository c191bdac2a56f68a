"""AniList error taxonomy."""

from enum import Enum


class AniListErrorKind(str, Enum):
    """Failure categories of an AniList request."""

    CONNECTION = "connection"
    PARSING = "parsing"
    INVALID_AUTH = "invalid_auth"
    REQUEST_DATA = "request_data"


class AniListError(Exception):
    """Base exception for AniList API errors."""

    kind: AniListErrorKind
    default_message = "AniList error"

    def __str__(self) -> str:
        return super().__str__() or self.default_message


class AniListConnectionError(AniListError):
    """Request could not be sent or the response could not be read."""

    kind = AniListErrorKind.CONNECTION
    default_message = "Connection error"


class AniListParsingError(AniListError):
    """Response did not have the expected shape."""

    kind = AniListErrorKind.PARSING
    default_message = "Parsing error"


class InvalidTokenError(AniListError):
    """AniList rejected the access token."""

    kind = AniListErrorKind.INVALID_AUTH
    default_message = "Invalid token"


class RequestDataError(AniListError):
    """Request body could not be serialised."""

    kind = AniListErrorKind.REQUEST_DATA
    default_message = "Request data error"
