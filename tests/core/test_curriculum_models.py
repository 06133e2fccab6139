"""
Unit Tests for Curriculum Models

Tests for CurriculumTables integrity checks and MappingResult.
"""

import pytest

from markscheme_toolkit.core.models import (
    CurriculumIntegrityError,
    CurriculumTables,
    MappingResult,
    Topic,
    Unit,
)


class TestCurriculumTables:
    """Tests for CurriculumTables construction and lookup."""

    def test_init_when_duplicate_unit_id_then_raises_error(self):
        with pytest.raises(CurriculumIntegrityError, match="duplicate unit id"):
            CurriculumTables(units=(Unit("1", "Biology"), Unit("1", "Chemistry")))

    def test_init_when_topic_references_unknown_unit_then_raises_error(self):
        with pytest.raises(CurriculumIntegrityError, match="unknown unit"):
            CurriculumTables(units=(Unit("1", "Biology"),), topics=(Topic("10", "Cells", "2"),))

    def test_init_when_subtopic_references_unknown_topic_then_raises_error(self):
        with pytest.raises(CurriculumIntegrityError, match="unknown topic"):
            CurriculumTables.from_dict({
                "units": [{"id": 1, "name": "Biology"}],
                "topics": [{"id": 10, "name": "Cells", "unit_id": 1}],
                "subtopics": [{"id": 100, "name": "Mitosis", "topic_id": 11}],
            })

    def test_integrity_error_when_raised_then_is_value_error(self):
        assert issubclass(CurriculumIntegrityError, ValueError)

    def test_from_dict_when_chapters_and_numeric_ids_then_normalised(self):
        """chapters/chapter_id aliases are accepted and IDs become strings."""
        tables = CurriculumTables.from_dict({
            "chapters": [{"id": 1, "name": "Biology"}],
            "topics": [{"id": 10, "name": "Cells", "chapter_id": 1}],
            "subtopics": [{"id": 100, "name": "Cell division", "topic_id": 10}],
        })

        assert tables.unit("1").name == "Biology"
        assert tables.topic("10").unit_id == "1"
        assert tables.unit_of_subtopic("100") == "1"

    def test_lookup_when_fixture_then_scoped_lists(self, curriculum):
        assert [t.id for t in curriculum.topics_in_unit("u-mech")] == ["t-forces", "t-motion"]
        assert [s.id for s in curriculum.subtopics_in_unit("u-waves")] == ["s-echo"]
        assert [s.id for s in curriculum.subtopics_in_topics(["t-forces"])] == ["s-newton", "s-friction"]
        assert curriculum.unit("missing") is None


class TestMappingResult:
    """Tests for MappingResult invariants."""

    def test_init_when_topics_without_unit_then_raises_error(self):
        with pytest.raises(ValueError, match="topics without a unit"):
            MappingResult("q-1", chapter_id=None, topic_ids=("t-forces",))

    def test_requires_manual_mapping_when_unmatched_names_then_true(self):
        result = MappingResult("q-1", chapter_id="u-mech", unmatched={"topic": ("Gravity",)})

        assert result.is_mapped
        assert result.requires_manual_mapping
        assert result.unmatched_names == [("topic", "Gravity")]

    def test_requires_manual_mapping_when_clean_then_false(self):
        result = MappingResult("q-1", chapter_id="u-mech", topic_ids=("t-forces",))
        assert not result.requires_manual_mapping

    def test_requires_manual_mapping_when_unresolved_then_true(self):
        assert MappingResult("q-1").requires_manual_mapping

    def test_to_dict_when_called_then_lists(self):
        data = MappingResult("q-1", "u-mech", ("t-forces",), ("s-newton",)).to_dict()
        assert data["topic_ids"] == ["t-forces"]
        assert data["subtopic_ids"] == ["s-newton"]
        assert data["requires_manual_mapping"] is False
