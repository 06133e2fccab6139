"""
Module: curriculum

Purpose:
    Curriculum reference tables (units → topics → subtopics) and the
    per-question mapping result produced by the curriculum matcher.

Key Functions:
    - CurriculumTables.from_dict(): Build tables from plain data
    - CurriculumTables.topics_in_unit() / subtopics_in_topics(): Scoped pools
    - MappingResult.requires_manual_mapping: Whether a human must finish it

Dependencies:
    - dataclasses (std)

Used By:
    - curriculum.matcher
    - importer.pipeline
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Dict, Iterable, List, Optional, Tuple


class CurriculumIntegrityError(ValueError):
    """Raised when curriculum tables contain duplicate IDs or dangling references."""


def _aliases(raw: Any) -> Tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return (raw,)
    return tuple(str(a) for a in raw if a is not None and str(a).strip())


@dataclass(frozen=True)
class Unit:
    """Curriculum unit (a.k.a. chapter)."""

    id: str
    name: str
    code: Optional[str] = None
    short_name: Optional[str] = None
    display_name: Optional[str] = None
    aliases: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Unit:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            code=data.get("code"),
            short_name=data.get("short_name"),
            display_name=data.get("display_name"),
            aliases=_aliases(data.get("aliases")),
        )


@dataclass(frozen=True)
class Topic:
    """Curriculum topic belonging to exactly one unit."""

    id: str
    name: str
    unit_id: str
    code: Optional[str] = None
    aliases: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Topic:
        unit_id = data.get("unit_id", data.get("chapter_id"))
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            unit_id=str(unit_id),
            code=data.get("code"),
            aliases=_aliases(data.get("aliases")),
        )


@dataclass(frozen=True)
class Subtopic:
    """Curriculum subtopic belonging to exactly one topic."""

    id: str
    name: str
    topic_id: str
    code: Optional[str] = None
    aliases: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Subtopic:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            topic_id=str(data.get("topic_id")),
            code=data.get("code"),
            aliases=_aliases(data.get("aliases")),
        )


@dataclass(frozen=True)
class CurriculumTables:
    """
    Immutable curriculum reference data.

    Invariants:
        - IDs are unique within each table
        - Every topic's unit_id names an existing unit
        - Every subtopic's topic_id names an existing topic

    Raises:
        CurriculumIntegrityError: On construction if an invariant fails
    """

    units: Tuple[Unit, ...] = ()
    topics: Tuple[Topic, ...] = ()
    subtopics: Tuple[Subtopic, ...] = ()

    def __post_init__(self) -> None:
        for label, rows in (("unit", self.units), ("topic", self.topics), ("subtopic", self.subtopics)):
            seen: set[str] = set()
            for row in rows:
                if row.id in seen:
                    raise CurriculumIntegrityError(f"duplicate {label} id: {row.id!r}")
                seen.add(row.id)

        unit_ids = {u.id for u in self.units}
        for topic in self.topics:
            if topic.unit_id not in unit_ids:
                raise CurriculumIntegrityError(
                    f"topic {topic.id!r} references unknown unit {topic.unit_id!r}"
                )
        topic_ids = {t.id for t in self.topics}
        for sub in self.subtopics:
            if sub.topic_id not in topic_ids:
                raise CurriculumIntegrityError(
                    f"subtopic {sub.id!r} references unknown topic {sub.topic_id!r}"
                )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CurriculumTables:
        """
        Build tables from ``{"units": [...], "topics": [...], "subtopics": [...]}``.

        ``chapters`` is accepted as an alias for ``units``; IDs are
        normalised to strings so numeric and string keys compare equal.
        """
        units = data.get("units", data.get("chapters")) or []
        return cls(
            units=tuple(Unit.from_dict(u) for u in units),
            topics=tuple(Topic.from_dict(t) for t in data.get("topics") or []),
            subtopics=tuple(Subtopic.from_dict(s) for s in data.get("subtopics") or []),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────────────

    @cached_property
    def _units_by_id(self) -> Dict[str, Unit]:
        return {u.id: u for u in self.units}

    @cached_property
    def _topics_by_id(self) -> Dict[str, Topic]:
        return {t.id: t for t in self.topics}

    @cached_property
    def _subtopics_by_id(self) -> Dict[str, Subtopic]:
        return {s.id: s for s in self.subtopics}

    def unit(self, unit_id: str) -> Optional[Unit]:
        return self._units_by_id.get(unit_id)

    def topic(self, topic_id: str) -> Optional[Topic]:
        return self._topics_by_id.get(topic_id)

    def subtopic(self, subtopic_id: str) -> Optional[Subtopic]:
        return self._subtopics_by_id.get(subtopic_id)

    def topics_in_unit(self, unit_id: str) -> List[Topic]:
        return [t for t in self.topics if t.unit_id == unit_id]

    def subtopics_in_topics(self, topic_ids: Iterable[str]) -> List[Subtopic]:
        wanted = set(topic_ids)
        return [s for s in self.subtopics if s.topic_id in wanted]

    def subtopics_in_unit(self, unit_id: str) -> List[Subtopic]:
        return self.subtopics_in_topics(t.id for t in self.topics_in_unit(unit_id))

    def unit_of_subtopic(self, subtopic_id: str) -> Optional[str]:
        sub = self.subtopic(subtopic_id)
        topic = self.topic(sub.topic_id) if sub else None
        return topic.unit_id if topic else None


@dataclass(frozen=True)
class MappingResult:
    """
    Curriculum mapping for one question.

    Attributes:
        question_id: Question the mapping belongs to
        chapter_id: Resolved unit ID, or None when unresolved
        topic_ids: Resolved topic IDs (all inside chapter_id)
        subtopic_ids: Resolved subtopic IDs (all inside topic_ids)
        unmatched: Names per field ("unit", "topic", "subtopic") that had
            no unique match
        conflicts: Descriptions of matches rejected for pointing outside
            the resolved unit

    Invariants:
        - chapter_id is None ⇒ topic_ids and subtopic_ids are empty
    """

    question_id: str
    chapter_id: Optional[str] = None
    topic_ids: Tuple[str, ...] = ()
    subtopic_ids: Tuple[str, ...] = ()
    unmatched: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    conflicts: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.chapter_id is None and (self.topic_ids or self.subtopic_ids):
            raise ValueError(f"mapping for {self.question_id} has topics without a unit")

    @property
    def is_mapped(self) -> bool:
        return self.chapter_id is not None

    @property
    def unmatched_names(self) -> List[Tuple[str, str]]:
        """(field, name) pairs in field order."""
        return [(fld, name) for fld, names in self.unmatched.items() for name in names]

    @property
    def requires_manual_mapping(self) -> bool:
        return self.chapter_id is None or bool(self.unmatched_names) or bool(self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "chapter_id": self.chapter_id,
            "topic_ids": list(self.topic_ids),
            "subtopic_ids": list(self.subtopic_ids),
            "unmatched": {k: list(v) for k, v in self.unmatched.items()},
            "conflicts": list(self.conflicts),
            "requires_manual_mapping": self.requires_manual_mapping,
        }
