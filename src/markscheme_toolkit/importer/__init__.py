"""
Importer: JSON question batches → normalised question trees with
validation issues, curriculum mappings and a support summary.
"""

from .config import ImportConfig
from .diagnostics import ImportDiagnostics, ImportDiagnosticsReport
from .ingest import NodeFailure, assign_question_ids, coerce_marks, ingest_question
from .pipeline import ImportResult, QuestionNormalizer, QuestionOutcome, normalize_batch, normalize_paper
from .summary import QuestionSupportSummary, build_support_summary

__all__ = [
    "ImportConfig",
    "ImportDiagnostics",
    "ImportDiagnosticsReport",
    "NodeFailure",
    "assign_question_ids",
    "coerce_marks",
    "ingest_question",
    "ImportResult",
    "QuestionNormalizer",
    "QuestionOutcome",
    "normalize_batch",
    "normalize_paper",
    "QuestionSupportSummary",
    "build_support_summary",
]
