"""AniList token helpers."""

import base64
import binascii
import json


class TokenParsingError(Exception):
    """Base exception for tokens whose expiry cannot be read."""

    pass


class MissingPayloadError(TokenParsingError):
    """Token does not have a header, payload and signature."""

    def __init__(self):
        super().__init__("No payload in token")


class PayloadDecodeError(TokenParsingError):
    """Token payload is not valid base64."""

    def __init__(self, error: Exception):
        super().__init__(f"Decode error: {error}")
        self.error = error


class PayloadParseError(TokenParsingError):
    """Token payload is not JSON with an integer expiry."""

    def __init__(self):
        super().__init__("Could not parse JWT payload")


def get_jwt_payload(token: str) -> str:
    """Return the payload segment of a JWT.

    Raises:
        MissingPayloadError: If the token does not have exactly three segments
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise MissingPayloadError()
    return parts[1]


def get_token_expiry(token: str) -> int:
    """Read the expiry timestamp from an AniList access token.

    AniList tokens are JWTs whose payload carries the ``exp`` claim. The
    signature is not verified; AniList does that for every request.

    Args:
        token: AniList access token

    Returns:
        Expiry as a UNIX timestamp

    Raises:
        TokenParsingError: If the expiry cannot be read
    """
    segment = get_jwt_payload(token)
    try:
        decoded = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError) as e:
        raise PayloadDecodeError(e) from e

    try:
        payload = json.loads(decoded)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadParseError() from e

    expiry = payload.get("exp") if isinstance(payload, dict) else None
    if not isinstance(expiry, int) or isinstance(expiry, bool):
        raise PayloadParseError()
    return expiry
