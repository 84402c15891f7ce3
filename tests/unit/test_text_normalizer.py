"""Unit tests for text normalization utilities."""

from __future__ import annotations

import pytest

from psychic_homily.utils.text_normalizer import (
    headliners_match,
    normalize_name,
    parse_artists_from_title,
)


# ======================================================================
# normalize_name
# ======================================================================


class TestNormalizeName:
    def test_casefolds(self) -> None:
        assert normalize_name("The Black Keys") == "the black keys"

    def test_collapses_internal_whitespace(self) -> None:
        assert normalize_name("  The   Black\tKeys ") == "the black keys"

    def test_empty_string(self) -> None:
        assert normalize_name("") == ""


# ======================================================================
# headliners_match
# ======================================================================


class TestHeadlinersMatch:
    def test_exact_case_insensitive(self) -> None:
        assert headliners_match("The Black Keys", "the  black keys")

    def test_different_names_do_not_match(self) -> None:
        assert not headliners_match("The Black Keys", "The White Stripes")

    def test_exact_threshold_rejects_near_miss(self) -> None:
        assert not headliners_match("Black Keys", "The Black Keys", threshold=1.0)

    def test_fuzzy_threshold_accepts_reordered_tokens(self) -> None:
        assert headliners_match("Keys Black", "Black Keys", threshold=0.9)

    def test_blank_names_never_match(self) -> None:
        assert not headliners_match("", "")
        assert not headliners_match("   ", "Black Keys", threshold=0.5)


# ======================================================================
# parse_artists_from_title
# ======================================================================


class TestParseArtistsFromTitle:
    def test_commas_take_priority(self) -> None:
        assert parse_artists_from_title("Band A, Band B, Band C") == [
            "Band A",
            "Band B",
            "Band C",
        ]

    def test_with_separator_puts_headliner_first(self) -> None:
        assert parse_artists_from_title("Headliner with Opener") == ["Headliner", "Opener"]

    def test_with_separator_is_case_insensitive(self) -> None:
        assert parse_artists_from_title("Headliner WITH Opener") == ["Headliner", "Opener"]

    @pytest.mark.parametrize("separator", [" / ", " | ", " + "])
    def test_slash_pipe_plus(self, separator: str) -> None:
        assert parse_artists_from_title(f"Band A{separator}Band B") == ["Band A", "Band B"]

    def test_ampersand_splits_long_names(self) -> None:
        title = "The Long Band Name & Another Long Name"
        assert parse_artists_from_title(title) == ["The Long Band Name", "Another Long Name"]

    def test_ampersand_keeps_duo_names(self) -> None:
        assert parse_artists_from_title("Simon & Garfunkel") == ["Simon & Garfunkel"]

    def test_no_separator_is_single_artist(self) -> None:
        assert parse_artists_from_title("  Solo Artist  ") == ["Solo Artist"]

    def test_blank_title(self) -> None:
        assert parse_artists_from_title("   ") == []
