"""
Module: nodes

Purpose:
    Question tree models on both sides of the import pipeline.

    Raw side: RawQuestion / RawPart / RawSubpart are the typed, immutable
    form of one imported JSON record after ingestion. The level is carried
    by the class itself rather than by which keys happen to be present.

    Processed side: ProcessedNode is the normalised answer-bearing (or
    contextual) node, and ProcessedQuestion wraps the root node the same
    way the question tree is wrapped elsewhere (``node`` is the root,
    not "root").

Key Functions:
    - RawQuestion / RawPart / RawSubpart: ingested records
    - ProcessedNode.iter_all(): Depth-first iteration over the tree
    - ProcessedNode.find(node_id): Locate a node by ID
    - ProcessedQuestion.all_issues: Issues from every node in the tree

Dependencies:
    - dataclasses (std)
    - .answers

Used By:
    - importer.ingest
    - importer.pipeline
    - importer.summary
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cached_property
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple

from .answers import AnswerAlternative, AnswerContext, AnswerLogic, RequirementDecision, ValidationIssue


class NodeLevel(str, Enum):
    """Depth of a node in the question tree."""
    QUESTION = "question"  # Top-level question ("3")
    PART = "part"          # Letter part ("a")
    SUBPART = "subpart"    # Roman sub-part ("ii")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Classification:
    """Curriculum names attached to a node (free text, not yet mapped)."""

    units: Tuple[str, ...] = ()
    topics: Tuple[str, ...] = ()
    subtopics: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.units or self.topics or self.subtopics)

    def inherit(self, parent: Classification) -> Classification:
        """Fill each empty field from ``parent``."""
        return Classification(
            units=self.units or parent.units,
            topics=self.topics or parent.topics,
            subtopics=self.subtopics or parent.subtopics,
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "units": list(self.units),
            "topics": list(self.topics),
            "subtopics": list(self.subtopics),
        }


@dataclass(frozen=True)
class OptionChoice:
    """A multiple-choice option with its resolved correctness."""

    label: str
    text: str
    is_correct: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "text": self.text, "is_correct": self.is_correct}


@dataclass(frozen=True)
class RawAnswer:
    """One correct-answer entry exactly as imported (before splitting)."""

    text: str
    marks: Optional[int] = None
    alternative_id: Optional[int] = None
    linked_alternatives: Tuple[int, ...] = ()
    alternative_type: Optional[str] = None
    context: Optional[AnswerContext] = None
    unit: Optional[str] = None
    accepts_equivalent_phrasing: Optional[bool] = None
    accepts_reverse_argument: Optional[bool] = None
    error_carried_forward: Optional[bool] = None
    acceptable_variations: Tuple[str, ...] = ()


# ─────────────────────────────────────────────────────────────────────────────
# Raw (ingested) nodes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RawNode:
    """
    Fields shared by every imported node.

    Attributes:
        label: Part label as imported ("a", "ii"); empty for questions
        text: Question/part stem text
        marks: Declared marks, None when absent or unparseable
        type: Declared question type string, untouched
        options: MCQ options with correctness already resolved
        answers: Correct-answer entries as imported
        answer_format: Declared answer format, if any
        answer_requirement: Declared requirement code, if any
        total_alternatives: Declared alternative count, if any
        classification: Unit/topic/subtopic names on this node
        marking_criteria: Free-text marking guidance
        has_figure: Node references a figure/diagram
        attachment_count: Number of attachments (figures, tables)
        hint / explanation: Descriptive extras carried through
        parse_notes: Problems noticed while coercing this record
    """

    level: ClassVar[NodeLevel] = NodeLevel.QUESTION

    label: str = ""
    text: str = ""
    marks: Optional[int] = None
    type: Optional[str] = None
    options: Tuple[OptionChoice, ...] = ()
    answers: Tuple[RawAnswer, ...] = ()
    answer_format: Optional[str] = None
    answer_requirement: Optional[str] = None
    total_alternatives: Optional[int] = None
    classification: Classification = Classification()
    marking_criteria: str = ""
    has_figure: bool = False
    attachment_count: int = 0
    hint: str = ""
    explanation: str = ""
    parse_notes: Tuple[ValidationIssue, ...] = ()

    @property
    def children(self) -> Tuple[RawNode, ...]:
        return ()


@dataclass(frozen=True)
class RawSubpart(RawNode):
    """Roman-numeral sub-part ("i", "ii")."""

    level: ClassVar[NodeLevel] = NodeLevel.SUBPART


@dataclass(frozen=True)
class RawPart(RawNode):
    """Letter part ("a", "b") with optional sub-parts."""

    level: ClassVar[NodeLevel] = NodeLevel.PART

    subparts: Tuple[RawSubpart, ...] = ()

    @property
    def children(self) -> Tuple[RawNode, ...]:
        return self.subparts


@dataclass(frozen=True)
class RawQuestion(RawNode):
    """Top-level imported question."""

    level: ClassVar[NodeLevel] = NodeLevel.QUESTION

    id: str = ""
    number: str = ""
    mcq_type: Optional[str] = None
    subject: Optional[str] = None
    parts: Tuple[RawPart, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("RawQuestion requires an id")

    @property
    def children(self) -> Tuple[RawNode, ...]:
        return self.parts


# ─────────────────────────────────────────────────────────────────────────────
# Processed nodes
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ProcessedNode:
    """
    Normalised node in the processed question tree.

    Attributes:
        id: Stable node ID ("q-3", "q-3-a", "q-3-a-ii")
        label: Display label ("3", "a", "ii")
        level: QUESTION, PART or SUBPART
        text: Stem text
        marks: Declared marks (None when absent)
        question_type: Normalised question type
        answer_format: Normalised answer format (None for contextual nodes)
        requirement: Derived or declared requirement decision
        correct_answers: Expanded answer alternatives
        options: MCQ options (None when the node is not multiple choice)
        answer_logic: Operator logic of the combined answer text
        required_components / optional_components: Operator breakdown
        total_alternatives: Number of accepted alternatives
        is_answer_bearing: Whether the node expects an answer at all
        requires_manual_marking: Flagged for human marking
        classification: Effective (inherited) curriculum names
        validation_issues: Issues raised for this node only
        children: Child nodes in document order
    """

    id: str
    label: str
    level: NodeLevel
    text: str
    marks: Optional[int]
    question_type: str
    answer_format: Optional[str]
    requirement: RequirementDecision
    correct_answers: Tuple[AnswerAlternative, ...] = ()
    options: Optional[Tuple[OptionChoice, ...]] = None
    answer_logic: AnswerLogic = AnswerLogic.SIMPLE
    required_components: Tuple[str, ...] = ()
    optional_components: Tuple[str, ...] = ()
    total_alternatives: int = 0
    is_answer_bearing: bool = True
    requires_manual_marking: bool = False
    has_figure: bool = False
    attachment_count: int = 0
    hint: str = ""
    explanation: str = ""
    classification: Classification = Classification()
    validation_issues: Tuple[ValidationIssue, ...] = ()
    children: Tuple[ProcessedNode, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ProcessedNode requires an id")
        if self.marks is not None and self.marks < 0:
            raise ValueError(f"marks must be non-negative: {self.marks}")

    # ─────────────────────────────────────────────────────────────────────────
    # Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def answer_requirement(self) -> Optional[str]:
        return self.requirement.code

    @property
    def is_leaf(self) -> bool:
        return not self.children

    # ─────────────────────────────────────────────────────────────────────────
    # Traversal
    # ─────────────────────────────────────────────────────────────────────────

    def iter_all(self) -> Iterator[ProcessedNode]:
        """Iterate this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.iter_all()

    def find(self, node_id: str) -> Optional[ProcessedNode]:
        for node in self.iter_all():
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "level": self.level.value,
            "text": self.text,
            "marks": self.marks,
            "question_type": self.question_type,
            "answer_format": self.answer_format,
            "answer_requirement": self.requirement.code,
            "requirement": self.requirement.to_dict(),
            "correct_answers": [a.to_dict() for a in self.correct_answers],
            "options": [o.to_dict() for o in self.options] if self.options is not None else None,
            "answer_logic": self.answer_logic.value,
            "required_components": list(self.required_components),
            "optional_components": list(self.optional_components),
            "total_alternatives": self.total_alternatives,
            "is_answer_bearing": self.is_answer_bearing,
            "requires_manual_marking": self.requires_manual_marking,
            "has_figure": self.has_figure,
            "attachment_count": self.attachment_count,
            "hint": self.hint,
            "explanation": self.explanation,
            "classification": self.classification.to_dict(),
            "validation_issues": [i.to_dict() for i in self.validation_issues],
            "children": [c.to_dict() for c in self.children],
        }


@dataclass(frozen=True)
class ProcessedQuestion:
    """
    Normalised question (immutable).

    ``node`` is the root of the processed tree; question-level fields
    live there. Classification names are the question's own names.
    """

    id: str
    number: str
    node: ProcessedNode
    subject: Optional[str] = None

    def __post_init__(self) -> None:
        if self.node.level is not NodeLevel.QUESTION:
            raise ValueError(f"root node of {self.id} must be a question node, got {self.node.level}")

    @cached_property
    def all_nodes(self) -> List[ProcessedNode]:
        return list(self.node.iter_all())

    @cached_property
    def all_issues(self) -> List[ValidationIssue]:
        """Every node-level issue in tree order."""
        return [issue for n in self.all_nodes for issue in n.validation_issues]

    @cached_property
    def answer_nodes(self) -> List[ProcessedNode]:
        return [n for n in self.all_nodes if n.is_answer_bearing]

    @property
    def classification(self) -> Classification:
        return self.node.classification

    def get_node(self, node_id: str) -> Optional[ProcessedNode]:
        return self.node.find(node_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "subject": self.subject,
            "node": self.node.to_dict(),
        }
