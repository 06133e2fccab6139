"""
Module: importer.diagnostics

Captures validation, mapping and node-failure issues raised while a
batch is imported, and generates a report for review.

Structure:
- Every issue is stored with the question it belongs to
- Reports summarise by kind, severity and code
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

from markscheme_toolkit.core.models import ValidationIssue

logger = logging.getLogger(__name__)


class ImportDiagnostics:
    """
    Thread-safe collector for import issues.

    Worker threads record issues as each question completes; the
    pipeline generates one report at the end of the batch.
    """

    def __init__(self):
        self._issues: List[Tuple[str, ValidationIssue]] = []
        self._questions: set[str] = set()
        self._lock = threading.Lock()

    def record(self, question_id: str, issue: ValidationIssue) -> None:
        with self._lock:
            self._issues.append((question_id, issue))
            self._questions.add(question_id)

    def record_all(self, question_id: str, issues: Iterable[ValidationIssue]) -> None:
        issues = list(issues)
        with self._lock:
            self._issues.extend((question_id, i) for i in issues)
            self._questions.add(question_id)

    def add_node_failure(self, question_id: str, node_id: str, message: str) -> ValidationIssue:
        """Record a node that could not be processed and return the issue."""
        issue = ValidationIssue(
            "error", "NODE_FAILURE", message, field="node", kind="node_failure", node_id=node_id,
        )
        self.record(question_id, issue)
        logger.warning(f"{node_id}: {message}")
        return issue

    def generate_report(self) -> ImportDiagnosticsReport:
        with self._lock:
            return ImportDiagnosticsReport.from_issues(list(self._issues), set(self._questions))

    @property
    def issue_count(self) -> int:
        with self._lock:
            return len(self._issues)


@dataclass
class ImportDiagnosticsReport:
    """Complete diagnostics report for one import."""
    generated_at: str
    question_ids: List[str]
    total_issues: int
    summary_by_kind: Dict[str, int]
    summary_by_severity: Dict[str, int]
    summary_by_code: Dict[str, int]
    issues: List[Tuple[str, ValidationIssue]]

    @classmethod
    def from_issues(cls, issues: List[Tuple[str, ValidationIssue]], questions: set[str]) -> ImportDiagnosticsReport:
        by_kind: Dict[str, int] = {}
        by_severity: Dict[str, int] = {}
        by_code: Dict[str, int] = {}
        for _, issue in issues:
            by_kind[issue.kind] = by_kind.get(issue.kind, 0) + 1
            by_severity[issue.severity] = by_severity.get(issue.severity, 0) + 1
            by_code[issue.code] = by_code.get(issue.code, 0) + 1

        return cls(
            generated_at=datetime.now(timezone.utc).isoformat(),
            question_ids=sorted(questions),
            total_issues=len(issues),
            summary_by_kind=by_kind,
            summary_by_severity=by_severity,
            summary_by_code=by_code,
            issues=issues,
        )

    @property
    def error_count(self) -> int:
        return self.summary_by_severity.get("error", 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "question_ids": self.question_ids,
            "total_issues": self.total_issues,
            "summary_by_kind": self.summary_by_kind,
            "summary_by_severity": self.summary_by_severity,
            "summary_by_code": self.summary_by_code,
            "issues": [{"question_id": qid, **issue.to_dict()} for qid, issue in self.issues],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(), encoding="utf-8")
        logger.info(f"Import diagnostics saved: {path}")
