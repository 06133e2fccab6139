"""
Module: answers.markers

Purpose:
    Detect examiner shorthand in mark-scheme answer text (ORA, OWTTE,
    ECF, CAO, "ignore", "accept", "reject") and lift it into structured
    flags on the answer alternative.

Key Functions:
    - detect_markers(): Scan text and return MarkerFlags
    - MarkerFlags.phrasing_flag() / reverse_flag() / ecf_flag(): Declared flag,
      else the one implied by the shorthand
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple


_ORA_RE = re.compile(r"\bora\b|\bor reverse argument\b", re.IGNORECASE)
_OWTTE_RE = re.compile(r"\bowtte\b|\bor words to that effect\b|\bo\.w\.t\.t\.e\.?", re.IGNORECASE)
_ECF_RE = re.compile(r"\becf\b|\berror carried forward\b|\bfollow[- ]through\b", re.IGNORECASE)
_CAO_RE = re.compile(r"\bcao\b|\bcorrect answer only\b", re.IGNORECASE)
_ANNOTATION_RE = re.compile(
    r"\b(accept|allow|reject|do not accept|ignore)\b\s*:?\s*([^;()\[\]]+)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class MarkerFlags:
    """Examiner shorthand found in one answer text."""

    reverse_argument: bool = False
    equivalent_phrasing: bool = False
    error_carried_forward: bool = False
    correct_answer_only: bool = False
    accepted: Tuple[str, ...] = ()
    rejected: Tuple[str, ...] = ()
    ignored: Tuple[str, ...] = ()

    def phrasing_flag(self, declared: Optional[bool]) -> Optional[bool]:
        """Declared value wins; otherwise OWTTE → True, CAO → False, else None."""
        if declared is not None:
            return declared
        if self.equivalent_phrasing:
            return True
        if self.correct_answer_only:
            return False
        return None

    def reverse_flag(self, declared: Optional[bool]) -> Optional[bool]:
        if declared is not None:
            return declared
        return True if self.reverse_argument else None

    def ecf_flag(self, declared: Optional[bool]) -> Optional[bool]:
        if declared is not None:
            return declared
        return True if self.error_carried_forward else None


def detect_markers(text: Optional[str]) -> MarkerFlags:
    """
    Scan answer text for examiner shorthand.

    Example:
        >>> flags = detect_markers("speed increases (ora)")
        >>> flags.reverse_argument
        True
        >>> detect_markers("accept: joule; reject J/s").accepted
        ('joule',)
    """
    if not text:
        return MarkerFlags()
    accepted, rejected, ignored = [], [], []
    for m in _ANNOTATION_RE.finditer(text):
        verb = m.group(1).lower()
        body = m.group(2).strip().rstrip(".,")
        if not body:
            continue
        if verb in ("accept", "allow"):
            accepted.append(body)
        elif verb == "ignore":
            ignored.append(body)
        else:
            rejected.append(body)
    return MarkerFlags(
        reverse_argument=bool(_ORA_RE.search(text)),
        equivalent_phrasing=bool(_OWTTE_RE.search(text)),
        error_carried_forward=bool(_ECF_RE.search(text)),
        correct_answer_only=bool(_CAO_RE.search(text)),
        accepted=tuple(accepted),
        rejected=tuple(rejected),
        ignored=tuple(ignored),
    )
