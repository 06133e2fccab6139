"""
Unit Tests for Node Models

Tests for raw and processed question trees.
"""

import pytest

from markscheme_toolkit.core.models import (
    Classification,
    NodeLevel,
    ProcessedNode,
    ProcessedQuestion,
    RawPart,
    RawQuestion,
    RawSubpart,
    RequirementDecision,
    ValidationIssue,
)


def _node(node_id: str, level: NodeLevel = NodeLevel.QUESTION, children=(), issues=(), marks=None, **kwargs) -> ProcessedNode:
    return ProcessedNode(
        id=node_id,
        label=node_id.rsplit("-", 1)[-1],
        level=level,
        text="",
        marks=marks,
        question_type="descriptive",
        answer_format="single_line",
        requirement=RequirementDecision(None),
        validation_issues=tuple(issues),
        children=tuple(children),
        **kwargs,
    )


class TestClassification:
    """Tests for Classification inheritance."""

    def test_inherit_when_child_empty_then_takes_parent_fields(self):
        parent = Classification(units=("Mechanics",), topics=("Forces",))
        child = Classification(topics=("Motion",))

        merged = child.inherit(parent)

        assert merged.units == ("Mechanics",)
        assert merged.topics == ("Motion",)
        assert merged.subtopics == ()

    def test_is_empty_when_no_names_then_true(self):
        assert Classification().is_empty
        assert not Classification(subtopics=("Speed",)).is_empty


class TestRawNodes:
    """Tests for raw node hierarchy."""

    def test_level_when_subclass_then_fixed_by_class(self):
        assert RawQuestion(id="q-1").level is NodeLevel.QUESTION
        assert RawPart(label="a").level is NodeLevel.PART
        assert RawSubpart(label="i").level is NodeLevel.SUBPART

    def test_children_when_part_has_subparts_then_returned(self):
        part = RawPart(label="a", subparts=(RawSubpart(label="i"), RawSubpart(label="ii")))
        question = RawQuestion(id="q-1", parts=(part,))

        assert question.children == (part,)
        assert [s.label for s in part.children] == ["i", "ii"]
        assert RawSubpart(label="i").children == ()

    def test_init_when_question_without_id_then_raises_error(self):
        with pytest.raises(ValueError, match="requires an id"):
            RawQuestion()


class TestProcessedNode:
    """Tests for ProcessedNode."""

    def test_init_when_empty_id_then_raises_error(self):
        with pytest.raises(ValueError, match="requires an id"):
            _node("")

    def test_init_when_negative_marks_then_raises_error(self):
        with pytest.raises(ValueError, match="non-negative"):
            _node("q-1", marks=-2)

    def test_find_when_descendant_then_returns_node(self):
        sub = _node("q-1-a-i", NodeLevel.SUBPART)
        part = _node("q-1-a", NodeLevel.PART, children=[sub])
        root = _node("q-1", children=[part])

        assert root.find("q-1-a-i") is sub
        assert root.find("q-9") is None
        assert [n.id for n in root.iter_all()] == ["q-1", "q-1-a", "q-1-a-i"]

    def test_to_dict_when_called_then_uses_enum_values(self):
        data = _node("q-1").to_dict()
        assert data["level"] == "question"
        assert data["answer_logic"] == "simple"
        assert data["answer_requirement"] is None
        assert data["options"] is None


class TestProcessedQuestion:
    """Tests for ProcessedQuestion."""

    def test_init_when_root_not_question_then_raises_error(self):
        with pytest.raises(ValueError, match="must be a question node"):
            ProcessedQuestion(id="q-1", number="1", node=_node("q-1", NodeLevel.PART))

    def test_all_issues_when_nested_then_collected_in_tree_order(self):
        # Arrange
        a = ValidationIssue("info", "A", "root")
        b = ValidationIssue("warning", "B", "part")
        part = _node("q-1-a", NodeLevel.PART, issues=[b])
        root = _node("q-1", children=[part], issues=[a])

        # Act
        question = ProcessedQuestion(id="q-1", number="1", node=root)

        # Assert
        assert [i.code for i in question.all_issues] == ["A", "B"]
        assert question.get_node("q-1-a") is part
        assert len(question.all_nodes) == 2

    def test_answer_nodes_when_contextual_root_then_excluded(self):
        part = _node("q-1-a", NodeLevel.PART)
        root = _node("q-1", children=[part], is_answer_bearing=False)
        question = ProcessedQuestion(id="q-1", number="1", node=root)

        assert question.answer_nodes == [part]
