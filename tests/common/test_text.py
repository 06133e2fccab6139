"""
Unit Tests for Text Helpers

Tests for normalisation, loose keys, name splitting and option matching.
"""

import pytest

from markscheme_toolkit.common.text import (
    dedupe_casefold,
    loose_key,
    match_variants,
    normalize_text,
    split_name_candidates,
)


class TestNormalizeText:
    """Tests for normalize_text function."""

    def test_normalize_when_mixed_whitespace_then_collapsed_and_lowered(self):
        assert normalize_text("  Forces \t and\nMotion ") == "forces and motion"

    def test_normalize_when_compatibility_chars_then_nfkc(self):
        assert normalize_text("ｆｕｌｌ") == "full"

    def test_normalize_when_none_then_empty(self):
        assert normalize_text(None) == ""

    def test_normalize_when_number_then_string(self):
        assert normalize_text(12) == "12"


class TestLooseKey:
    """Tests for loose_key function."""

    @pytest.mark.parametrize("value,expected", [
        ("1.2 Forces & Motion!", "forces motion"),
        ("3) Energy", "energy"),
        ("Newton's laws", "newton s laws"),
        ("Waves", "waves"),
    ])
    def test_loose_key_when_called_then_numbering_and_punctuation_dropped(self, value, expected):
        assert loose_key(value) == expected


class TestSplitNameCandidates:
    """Tests for split_name_candidates function."""

    def test_split_when_delimited_string_then_trimmed_names(self):
        assert split_name_candidates("Forces, Motion / Energy") == ("Forces", "Motion", "Energy")

    def test_split_when_list_with_dicts_then_flattened_and_deduped(self):
        assert split_name_candidates(["Waves", {"name": "Light"}, "waves"]) == ("Waves", "Light")

    def test_split_when_title_dict_then_title_used(self):
        assert split_name_candidates({"title": "Cells"}) == ("Cells",)

    @pytest.mark.parametrize("value", [None, "", " , ", True, []])
    def test_split_when_empty_or_bool_then_empty(self, value):
        assert split_name_candidates(value) == ()

    def test_dedupe_when_blanks_and_case_duplicates_then_first_kept(self):
        assert dedupe_casefold(["A", " a ", "", "B"]) == ["A", "B"]


class TestMatchVariants:
    """Tests for match_variants function."""

    def test_variants_when_labelled_option_then_label_stripped(self):
        variants = match_variants("B. Mitochondria.")
        assert "mitochondria" in variants
        assert "b. mitochondria." in variants

    def test_variants_when_empty_then_empty_set(self):
        assert match_variants("  ") == set()
