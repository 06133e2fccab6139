"""
Module: importer.config

Purpose:
    Configuration dataclass for the import pipeline. Provides immutable
    settings for alternative splitting, subject rules, concurrency and
    how much declared input metadata is trusted.

Key Classes:
    - ImportConfig: Main configuration for normalize_batch()

Dependencies:
    - dataclasses: For frozen dataclass support
    - answers.subjects: SubjectRules presets

Used By:
    - importer.pipeline: Uses ImportConfig for pipeline settings
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from markscheme_toolkit.answers.subjects import SubjectRules, rules_for_subject


@dataclass(frozen=True)
class ImportConfig:
    """
    Configuration for the import pipeline.

    Attributes:
        delimiter: Alternative separator inside answer text (default "/")
        subject: Subject name used to pick preset rules when a question
            does not name its own subject (e.g. "physics")
        subject_rules: Explicit rules; override any preset (default None)
        max_workers: Questions processed concurrently (default 1, sequential)
        respect_declared_fields: Keep valid answer_format / answer_requirement
            values from the input instead of re-deriving them (default True)
    """
    delimiter: str = "/"
    subject: Optional[str] = None
    subject_rules: Optional[SubjectRules] = None
    max_workers: int = 1
    respect_declared_fields: bool = True

    def __post_init__(self) -> None:
        if not self.delimiter:
            raise ValueError("delimiter must be a non-empty string")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1: {self.max_workers}")

    def rules_for(self, question_subject: Optional[str] = None) -> Optional[SubjectRules]:
        """Explicit rules first, then the question's subject preset, then the batch subject preset."""
        if self.subject_rules is not None:
            return self.subject_rules
        return rules_for_subject(question_subject) or rules_for_subject(self.subject)
