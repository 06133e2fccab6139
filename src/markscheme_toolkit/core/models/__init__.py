"""
Core Models Package

Immutable, validated data models shared by the answer parsers, the
curriculum matcher and the import pipeline.

All models in this package are frozen dataclasses. This ensures:
1. No accidental mutation during pipeline processing
2. Safe to pass between worker threads
3. Invariants are checked once, at construction
"""

from .answers import (
    AnswerAlternative,
    AnswerContext,
    AnswerLogic,
    RequirementDecision,
    ValidationIssue,
)
from .curriculum import (
    CurriculumIntegrityError,
    CurriculumTables,
    MappingResult,
    Subtopic,
    Topic,
    Unit,
)
from .nodes import (
    Classification,
    NodeLevel,
    OptionChoice,
    ProcessedNode,
    ProcessedQuestion,
    RawAnswer,
    RawNode,
    RawPart,
    RawQuestion,
    RawSubpart,
)

__all__ = [
    "AnswerAlternative",
    "AnswerContext",
    "AnswerLogic",
    "RequirementDecision",
    "ValidationIssue",
    "CurriculumIntegrityError",
    "CurriculumTables",
    "MappingResult",
    "Subtopic",
    "Topic",
    "Unit",
    "Classification",
    "NodeLevel",
    "OptionChoice",
    "ProcessedNode",
    "ProcessedQuestion",
    "RawAnswer",
    "RawNode",
    "RawPart",
    "RawQuestion",
    "RawSubpart",
]
