"""Confidence-scored title matching against AniList title variants."""

from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein

from anifunnel.utils.logger import get_logger
from anifunnel.utils.strings import massage_title

logger = get_logger(__name__)

MINIMUM_CONFIDENCE = 0.8
FALLBACK_PENALTY = 0.05


def normalized_similarity(a: str, b: str) -> float:
    """Levenshtein similarity scaled to [0, 1]; identical strings score 1.0."""
    return Levenshtein.normalized_similarity(a, b)


def score_titles(query: str, variants: Iterable[Optional[str]]) -> float:
    """Score a lower-cased query against the known titles of one entry.

    Resolution order:
    1. Exact match against any variant (returns 1.0)
    2. Case-insensitive Levenshtein similarity, returned if it reaches
       MINIMUM_CONFIDENCE
    3. Similarity of massaged titles (season/year/part decorations and
       surrounding characters removed) minus FALLBACK_PENALTY

    Args:
        query: Lower-cased title to look for
        variants: Title variants of the entry; None values are skipped

    Returns:
        Best confidence in [0, 1], 0.0 if there are no variants
    """
    titles = [variant.lower() for variant in variants if variant is not None]

    if query in titles:
        return 1.0

    best_match = 0.0
    for title in titles:
        confidence = normalized_similarity(query, title)
        logger.debug("Title similarity", title=title, confidence=confidence)
        best_match = max(best_match, confidence)

    if best_match >= MINIMUM_CONFIDENCE:
        return best_match

    # Local libraries and AniDB-style titles disagree on how seasons, years
    # and parts are spelled out, so compare with those stripped.
    massaged_query = massage_title(query)
    logger.debug("Matching fallback title", title=massaged_query)
    for title in titles:
        massaged = massage_title(title)
        confidence = max(normalized_similarity(massaged_query, massaged) - FALLBACK_PENALTY, 0.0)
        logger.debug("Fallback title similarity", title=massaged, confidence=confidence)
        best_match = max(best_match, confidence)

    return best_match
