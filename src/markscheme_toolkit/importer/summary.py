"""
Module: importer.summary

Purpose:
    Batch-level support summary: how many nodes expect answers, which
    option and context variants occur, and which structures (matching,
    sequencing, nested logic, linked alternatives) need attention.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence

from markscheme_toolkit.core.models import AnswerLogic, ProcessedNode, ProcessedQuestion


def _bump(counts: Dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def _option_variant(node: ProcessedNode) -> str:
    correct = sum(1 for o in node.options if o.is_correct)
    if correct == 0:
        return "no_correct_option"
    return "single_correct" if correct == 1 else "multiple_correct"


@dataclass(frozen=True)
class QuestionSupportSummary:
    """
    Counts and structure flags for a processed batch.

    Attributes:
        question_count / node_count: Sizes of the batch
        answer_bearing_count / contextual_count: Answer expectation split
        option_type_counts: "single_correct" / "multiple_correct" / "no_correct_option"
        context_type_counts: Answer context types ("unit", ...)
        requirement_counts: Requirement codes ("undetermined" for None)
        has_matching / has_sequencing: Question types present
        has_nested_logic: Any node with complex and/or logic
        has_linked_alternatives: Any alternative linked to siblings
        manual_marking_count: Nodes flagged for a human marker
    """

    question_count: int = 0
    node_count: int = 0
    answer_bearing_count: int = 0
    contextual_count: int = 0
    option_type_counts: Dict[str, int] = field(default_factory=dict)
    context_type_counts: Dict[str, int] = field(default_factory=dict)
    requirement_counts: Dict[str, int] = field(default_factory=dict)
    has_matching: bool = False
    has_sequencing: bool = False
    has_nested_logic: bool = False
    has_linked_alternatives: bool = False
    manual_marking_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_count": self.question_count,
            "node_count": self.node_count,
            "answer_bearing_count": self.answer_bearing_count,
            "contextual_count": self.contextual_count,
            "option_type_counts": dict(self.option_type_counts),
            "context_type_counts": dict(self.context_type_counts),
            "requirement_counts": dict(self.requirement_counts),
            "has_matching": self.has_matching,
            "has_sequencing": self.has_sequencing,
            "has_nested_logic": self.has_nested_logic,
            "has_linked_alternatives": self.has_linked_alternatives,
            "manual_marking_count": self.manual_marking_count,
        }


def build_support_summary(questions: Sequence[ProcessedQuestion]) -> QuestionSupportSummary:
    options: Dict[str, int] = {}
    contexts: Dict[str, int] = {}
    requirements: Dict[str, int] = {}
    nodes = [n for q in questions for n in q.all_nodes]

    for node in nodes:
        if node.options:
            _bump(options, _option_variant(node))
        for alt in node.correct_answers:
            if alt.context:
                _bump(contexts, alt.context.type)
        if node.is_answer_bearing:
            _bump(requirements, node.requirement.code or "undetermined")

    return QuestionSupportSummary(
        question_count=len(questions),
        node_count=len(nodes),
        answer_bearing_count=sum(1 for n in nodes if n.is_answer_bearing),
        contextual_count=sum(1 for n in nodes if not n.is_answer_bearing),
        option_type_counts=options,
        context_type_counts=contexts,
        requirement_counts=requirements,
        has_matching=any(n.question_type == "matching" for n in nodes),
        has_sequencing=any(n.question_type == "sequencing" for n in nodes),
        has_nested_logic=any(n.answer_logic is AnswerLogic.COMPLEX for n in nodes),
        has_linked_alternatives=any(a.is_linked for n in nodes for a in n.correct_answers),
        manual_marking_count=sum(1 for n in nodes if n.requires_manual_marking),
    )
