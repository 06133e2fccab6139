"""
Module: answers

Purpose:
    Immutable answer-level models: individual accepted answer alternatives,
    the logical shape of an answer (and/or/any-N), the derived requirement
    decision, and the validation issue record shared by every stage of
    the import pipeline.

Key Functions:
    - AnswerAlternative: One accepted answer with marks and link metadata
    - AnswerContext: Unit / measurement context attached to an answer
    - AnswerLogic: simple / all_required / any_accepted / complex
    - RequirementDecision: Derived requirement code plus confidence/evidence
    - ValidationIssue: Severity-tagged issue raised while importing a node

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - answers.* (parsers, validators, requirement deriver)
    - importer.pipeline
    - core.models.nodes
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


SEVERITIES = ("error", "warning", "info")
ISSUE_KINDS = ("parse", "validation", "mapping", "node_failure")
CONFIDENCE_LEVELS = ("high", "medium", "low")


class AnswerLogic(str, Enum):
    """Logical shape of an answer's components."""
    SIMPLE = "simple"              # One unit, no recognised connective structure
    ALL_REQUIRED = "all_required"  # "A and B"
    ANY_ACCEPTED = "any_accepted"  # "A or B", "any two from: ..."
    COMPLEX = "complex"            # Nested and/or, needs human review

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ValidationIssue:
    """
    A single problem found while importing a node.

    Issues never abort processing; they travel with the node they
    describe and are aggregated per question.

    Attributes:
        severity: "error", "warning" or "info"
        code: Stable machine-readable identifier (e.g. "UNITS_MISSING")
        message: Human-readable description
        field: Which field the issue concerns (default "answer")
        kind: parse, validation, mapping or node_failure
        node_id: ID of the node the issue belongs to, once known
    """

    severity: str
    code: str
    message: str
    field: str = "answer"
    kind: str = "validation"
    node_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"severity must be one of {SEVERITIES}: {self.severity!r}")
        if self.kind not in ISSUE_KINDS:
            raise ValueError(f"kind must be one of {ISSUE_KINDS}: {self.kind!r}")

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def for_node(self, node_id: str) -> ValidationIssue:
        """Return a copy attached to ``node_id``."""
        return replace(self, node_id=node_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "kind": self.kind,
            "node_id": self.node_id,
        }


@dataclass(frozen=True)
class AnswerContext:
    """Unit or measurement context for an answer (e.g. type="unit", value="m/s")."""

    type: str
    value: str
    label: str = ""

    @classmethod
    def from_raw(cls, raw: Any) -> Optional[AnswerContext]:
        """
        Coerce an imported context value.

        Strings become unit contexts; dicts may carry type/value/label.
        Empty input yields None.
        """
        if raw is None:
            return None
        if isinstance(raw, dict):
            value = str(raw.get("value") or raw.get("unit") or "").strip()
            ctx_type = str(raw.get("type") or "unit").strip() or "unit"
            label = str(raw.get("label") or "").strip()
            if not value and not label:
                return None
            return cls(type=ctx_type, value=value, label=label)
        text = str(raw).strip()
        return cls(type="unit", value=text) if text else None

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "value": self.value, "label": self.label}


@dataclass(frozen=True)
class AnswerAlternative:
    """
    One accepted answer alternative.

    Attributes:
        text: Answer text as it should be accepted
        marks: Marks awarded for this alternative (non-negative)
        alternative_id: 1-based position among its node's alternatives
        linked_alternative_ids: IDs of sibling alternatives this one is
            grouped with (e.g. produced by the same delimiter split)
        alternative_type: Relationship label (one_required, all_required, ...)
        context: Optional unit / measurement context
        unit: Declared unit string, if any
        accepts_equivalent_phrasing: OWTTE-style leniency, None when unstated
        accepts_reverse_argument: ORA leniency, None when unstated
        error_carried_forward: ECF allowed, None when unstated
        acceptable_variations: Extra accepted spellings/forms

    Invariants:
        - alternative_id >= 1
        - marks >= 0
        - An alternative never links to itself
    """

    text: str
    marks: int = 1
    alternative_id: int = 1
    linked_alternative_ids: Tuple[int, ...] = ()
    alternative_type: Optional[str] = None
    context: Optional[AnswerContext] = None
    unit: Optional[str] = None
    accepts_equivalent_phrasing: Optional[bool] = None
    accepts_reverse_argument: Optional[bool] = None
    error_carried_forward: Optional[bool] = None
    acceptable_variations: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.alternative_id < 1:
            raise ValueError(f"alternative_id must be >= 1: {self.alternative_id}")
        if self.marks < 0:
            raise ValueError(f"marks must be non-negative: {self.marks}")
        if self.alternative_id in self.linked_alternative_ids:
            raise ValueError(f"alternative {self.alternative_id} cannot link to itself")

    @property
    def is_linked(self) -> bool:
        return bool(self.linked_alternative_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "marks": self.marks,
            "alternative_id": self.alternative_id,
            "linked_alternative_ids": list(self.linked_alternative_ids),
            "alternative_type": self.alternative_type,
            "context": self.context.to_dict() if self.context else None,
            "unit": self.unit,
            "accepts_equivalent_phrasing": self.accepts_equivalent_phrasing,
            "accepts_reverse_argument": self.accepts_reverse_argument,
            "error_carried_forward": self.error_carried_forward,
            "acceptable_variations": list(self.acceptable_variations),
        }


@dataclass(frozen=True)
class RequirementDecision:
    """
    Outcome of requirement derivation for one node.

    ``code`` is either a known requirement code or None ("undetermined");
    it is never an empty string.
    """

    code: Optional[str]
    confidence: str = "low"
    evidence: str = ""
    rule: Optional[str] = None

    def __post_init__(self) -> None:
        if self.code == "":
            raise ValueError("requirement code must be None or non-empty")
        if self.confidence not in CONFIDENCE_LEVELS:
            raise ValueError(f"confidence must be one of {CONFIDENCE_LEVELS}: {self.confidence!r}")

    @property
    def is_determined(self) -> bool:
        return self.code is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "confidence": self.confidence,
            "evidence": self.evidence,
            "rule": self.rule,
        }
