"""Title massaging helpers used by fallback title matching."""

import re
from typing import Iterable, NamedTuple, Pattern


class MassagingRule(NamedTuple):
    """A trailing title decoration removed before fallback matching."""

    name: str
    pattern: Pattern[str]
    replacement: str = ""


# Applied in order, each to the output of the previous rule.
MASSAGING_RULES: tuple[MassagingRule, ...] = (
    MassagingRule("year", re.compile(r" \(?20[2-4]\d\)?$")),  # XXX (2023)
    MassagingRule("ordinal_season", re.compile(r" \d+(st|nd|rd|th) season$")),  # XXX 2nd Season
    MassagingRule("cour", re.compile(r" \(?cour \d\)?$")),  # XXX Cour 2, XXX (Cour 2)
    MassagingRule("season", re.compile(r" \(?season \d\)?$")),  # XXX Season 2, XXX (Season 2)
    MassagingRule("part", re.compile(r" \(?part \d\)?$")),  # XXX Part 2, XXX (Part 2)
    MassagingRule("trailing_digit", re.compile(r" \d$")),  # XXX 2
)


def remove_regexes(rules: Iterable[MassagingRule | Pattern[str]], value: str) -> str:
    """Apply each rule once, in order, to a string.

    Every rule replaces only its first match, and each rule sees the output
    of the previous one.

    Args:
        rules: Massaging rules or bare compiled patterns
        value: String to clean up

    Returns:
        The string with all matching parts removed
    """
    for rule in rules:
        if isinstance(rule, MassagingRule):
            value = rule.pattern.sub(rule.replacement, value, count=1)
        else:
            value = rule.sub("", value, count=1)
    return value


def _is_boundary(char: str, bracket: str) -> bool:
    return char.isalnum() or char == bracket


def remove_special_surrounding_characters(value: str) -> str:
    """Strip decorative characters from both ends of a title.

    Leading characters are dropped up to the first alphanumeric character or
    opening parenthesis, trailing characters back to the last alphanumeric
    character or closing parenthesis. Characters between words are kept.

    Examples:
        "[Oshi no Ko]" -> "Oshi no Ko"
        "(Oshi no Ko)" -> "(Oshi no Ko)"
        "【推しの子】" -> "推しの子"

    Args:
        value: Title to trim

    Returns:
        Trimmed title
    """
    if not value:
        return value

    start = len(value) - 1
    for pos, char in enumerate(value):
        if _is_boundary(char, "("):
            start = pos
            break

    end = 0
    for pos in range(len(value) - 1, -1, -1):
        if _is_boundary(value[pos], ")"):
            end = pos
            break

    return value[start : end + 1]


def massage_title(value: str) -> str:
    """Remove season/year/part decorations and surrounding special characters."""
    return remove_special_surrounding_characters(remove_regexes(MASSAGING_RULES, value))
