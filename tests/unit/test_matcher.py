"""Unit tests for title matching."""

import pytest

from anifunnel.core.matcher import (
    FALLBACK_PENALTY,
    MINIMUM_CONFIDENCE,
    normalized_similarity,
    score_titles,
)
from anifunnel.models.anilist import MediaListGroup

from conftest import make_entry


class TestScoreTitles:
    """Test scoring of a query against title variants."""

    def test_exact_match(self):
        assert score_titles("oshi no ko", ["Oshi no Ko", None, None]) == 1.0

    def test_exact_match_on_any_variant(self):
        variants = ["Sousou no Frieren", "Frieren: Beyond Journey's End", None]

        assert score_titles("frieren: beyond journey's end", variants) == 1.0

    def test_no_variants(self):
        assert score_titles("oshi no ko", [None, None, None]) == 0.0

    def test_direct_similarity_returned(self):
        """Test a close title is scored without the fallback penalty."""
        confidence = score_titles("to aru kagaku no railgun", ["To Aru Kagaku no Railgun S"])

        expected = normalized_similarity("to aru kagaku no railgun", "to aru kagaku no railgun s")
        assert confidence == pytest.approx(expected)
        assert confidence >= MINIMUM_CONFIDENCE

    def test_fallback_applies_penalty(self):
        """Test massaged titles that become identical score 1.0 minus the penalty."""
        confidence = score_titles("muv-luv alternative (2022)", ["Muv-Luv Alternative Season 2"])

        assert confidence == pytest.approx(1.0 - FALLBACK_PENALTY)

    def test_unrelated_title_scores_low(self):
        assert score_titles("sousou no frieren", ["Kanojo, Okarishimasu"]) < MINIMUM_CONFIDENCE


class TestFindBestMatch:
    """Test watch list title resolution."""

    def test_exact_match_precedence(self):
        """Test an exact title wins over a close title listed first."""
        watch_list = MediaListGroup(
            entries=[
                make_entry(2, "To Aru Kagaku no Railgun S"),
                make_entry(1, "To Aru Kagaku no Railgun"),
            ]
        )

        entry = watch_list.find_best_match("To Aru Kagaku no Railgun")

        assert entry.id == 1

    def test_exact_match_listed_first(self):
        watch_list = MediaListGroup(
            entries=[
                make_entry(1, "To Aru Kagaku no Railgun"),
                make_entry(2, "To Aru Kagaku no Railgun S"),
            ]
        )

        assert watch_list.find_best_match("To Aru Kagaku no Railgun").id == 1

    def test_season_decoration_fallback(self):
        watch_list = MediaListGroup(entries=[make_entry(7, "Muv-Luv Alternative Season 2")])

        entry = watch_list.find_best_match("Muv-Luv Alternative (2022)")

        assert entry is not None
        assert entry.id == 7

    def test_ordinal_season_fallback(self, watch_list):
        entry = watch_list.find_best_match("Kanojo, Okarishimasu (2023)")

        assert entry is not None
        assert entry.id == 2

    def test_case_insensitive(self, watch_list):
        assert watch_list.find_best_match("SOUSOU NO FRIEREN").id == 1

    def test_native_title_match(self, watch_list):
        assert watch_list.find_best_match("【推しの子】").id == 3

    def test_no_match_returns_none(self, watch_list):
        """Test a low-confidence best candidate is never returned."""
        assert watch_list.find_best_match("Cowboy Bebop") is None

    def test_empty_list(self):
        assert MediaListGroup.empty().find_best_match("Oshi no Ko") is None

    def test_duplicate_titles_first_entry_wins(self):
        """Test the earlier entry wins when two entries share a title.

        This pins current behaviour: a list holding the same title under two
        IDs always resolves to the first one.
        """
        watch_list = MediaListGroup(
            entries=[
                make_entry(10, "Oshi no Ko"),
                make_entry(11, "Oshi no Ko"),
            ]
        )

        assert watch_list.find_best_match("Oshi no Ko").id == 10


class TestFindById:
    """Test watch list ID lookup."""

    def test_found(self, watch_list):
        assert watch_list.find_by_id(2).title == "Kanojo, Okarishimasu 3rd Season"

    def test_not_found(self, watch_list):
        assert watch_list.find_by_id(99) is None
