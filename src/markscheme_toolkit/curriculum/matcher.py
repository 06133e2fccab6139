"""
Module: curriculum.matcher

Purpose:
    Map free-text unit/topic/subtopic names from imported questions onto
    curriculum IDs. A name is only accepted when it identifies exactly one
    curriculum item; ambiguity always yields "no match" so that a human
    resolves it, never a silent guess.

    Matching tiers, tried in order:
        exact – normalised equality (case/whitespace-insensitive)
        loose – punctuation/numbering-insensitive equality or containment

    Within a tier, field getters are tried in order (name, code,
    aliases, ...). The first getter with any hit decides: one hit is a
    match, more than one makes the whole lookup ambiguous.

Key Functions:
    - match_candidate(): Tiered lookup returning a MatchOutcome
    - find_unique_match(): Convenience wrapper returning the item or None
    - CurriculumMatcher.map_question(): Full unit → topic → subtopic mapping

Dependencies:
    - common.text: normalize_text, loose_key

Used By:
    - importer.pipeline
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from markscheme_toolkit.common.text import loose_key, normalize_text
from markscheme_toolkit.core.models import CurriculumTables, MappingResult, Subtopic, Topic, Unit

logger = logging.getLogger(__name__)

T = TypeVar("T")
Getter = Callable[[T], Iterable[Optional[str]]]

MIN_LOOSE_LENGTH = 3

UNIT_GETTERS: Tuple[Getter, ...] = (
    lambda u: (u.name,),
    lambda u: (u.code,),
    lambda u: (u.short_name,),
    lambda u: (u.display_name,),
    lambda u: u.aliases,
)
TOPIC_GETTERS: Tuple[Getter, ...] = (
    lambda t: (t.name,),
    lambda t: (t.code,),
    lambda t: t.aliases,
)
SUBTOPIC_GETTERS = TOPIC_GETTERS


def _exact(value: str, candidate: str) -> bool:
    return normalize_text(value) == normalize_text(candidate)


def _loose(value: str, candidate: str) -> bool:
    a, b = loose_key(value), loose_key(candidate)
    if not a or not b:
        return False
    if a == b:
        return True
    if min(len(a), len(b)) < MIN_LOOSE_LENGTH:
        return False
    return a in b or b in a


TIERS = (("exact", _exact), ("loose", _loose))


@dataclass(frozen=True)
class MatchOutcome(Generic[T]):
    """
    Result of one lookup.

    Attributes:
        item: The unique match, or None
        tier: "exact" / "loose" when matched or ambiguous, else None
        ambiguous: More than one item matched in the deciding tier
        candidates: Number of items that matched in the deciding tier
    """

    item: Optional[T] = None
    tier: Optional[str] = None
    ambiguous: bool = False
    candidates: int = 0

    @property
    def matched(self) -> bool:
        return self.item is not None


def match_candidate(items: Sequence[T], candidate: Optional[str], getters: Sequence[Getter]) -> MatchOutcome[T]:
    """
    Find the single item ``candidate`` names.

    Example:
        >>> from markscheme_toolkit.core.models import Unit
        >>> units = [Unit("1", "Mechanics"), Unit("2", "Waves")]
        >>> match_candidate(units, "  mechanics ", UNIT_GETTERS).item.id
        '1'
    """
    if not candidate or not normalize_text(candidate) or not items:
        return MatchOutcome()
    for tier, compare in TIERS:
        for getter in getters:
            hits: List[T] = []
            for item in items:
                values = [v for v in getter(item) if v]
                if any(compare(str(v), candidate) for v in values) and item not in hits:
                    hits.append(item)
            if len(hits) == 1:
                return MatchOutcome(hits[0], tier, False, 1)
            if len(hits) > 1:
                return MatchOutcome(None, tier, True, len(hits))
    return MatchOutcome()


def find_unique_match(items: Sequence[T], candidate: Optional[str], getters: Sequence[Getter]) -> Optional[T]:
    """The unique item named by ``candidate``, or None when absent or ambiguous."""
    return match_candidate(items, candidate, getters).item


# ─────────────────────────────────────────────────────────────────────────────
# Question mapping
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class _MappingState:
    """Mutable working state for one map_question() call."""

    chapter_id: Optional[str] = None
    topic_ids: List[str] = field(default_factory=list)
    subtopic_ids: List[str] = field(default_factory=list)
    unmatched: Dict[str, List[str]] = field(default_factory=dict)
    conflicts: List[str] = field(default_factory=list)

    def add_topic(self, topic_id: str) -> None:
        if topic_id not in self.topic_ids:
            self.topic_ids.append(topic_id)

    def add_subtopic(self, subtopic_id: str) -> None:
        if subtopic_id not in self.subtopic_ids:
            self.subtopic_ids.append(subtopic_id)

    def miss(self, kind: str, name: str) -> None:
        names = self.unmatched.setdefault(kind, [])
        if name not in names:
            names.append(name)

    def conflict(self, message: str) -> None:
        if message not in self.conflicts:
            self.conflicts.append(message)


class CurriculumMatcher:
    """
    Maps question classification names onto a CurriculumTables instance.

    Order of resolution:
        1. units
        2. subtopics (first pass; a hit pulls in its topic and unit)
        3. topics (scoped to the resolved unit)
        4. subtopics (second pass, now scoped to resolved topics)
        5. unit inferred from the first topic when still unresolved
        6. pruning: anything outside the resolved unit is dropped

    Example:
        >>> matcher = CurriculumMatcher(tables)
        >>> result = matcher.map_question("q-1", units=["Mechanics"], topics=["Forces"])
        >>> result.chapter_id, result.topic_ids
        ('u-mech', ('t-forces',))
    """

    def __init__(self, tables: CurriculumTables):
        self.tables = tables

    # Single-field lookups -------------------------------------------------

    def match_unit(self, name: str) -> MatchOutcome[Unit]:
        return match_candidate(self.tables.units, name, UNIT_GETTERS)

    def match_topic(self, name: str, unit_id: Optional[str] = None) -> MatchOutcome[Topic]:
        pool = self.tables.topics_in_unit(unit_id) if unit_id else list(self.tables.topics)
        return match_candidate(pool, name, TOPIC_GETTERS)

    def match_subtopic(
        self,
        name: str,
        topic_ids: Sequence[str] = (),
        unit_id: Optional[str] = None,
    ) -> MatchOutcome[Subtopic]:
        """
        Subtopic lookup, scoped as tightly as the known context allows.

        Pool order: subtopics under ``topic_ids``; then subtopics under
        ``unit_id``; then (only when no unit is known) all subtopics.
        """
        if topic_ids:
            outcome = match_candidate(self.tables.subtopics_in_topics(topic_ids), name, SUBTOPIC_GETTERS)
            if outcome.matched or outcome.ambiguous:
                return outcome
        if unit_id:
            return match_candidate(self.tables.subtopics_in_unit(unit_id), name, SUBTOPIC_GETTERS)
        return match_candidate(self.tables.subtopics, name, SUBTOPIC_GETTERS)

    # Full mapping ---------------------------------------------------------

    def map_question(
        self,
        question_id: str,
        *,
        units: Sequence[str] = (),
        topics: Sequence[str] = (),
        subtopics: Sequence[str] = (),
    ) -> MappingResult:
        """
        Resolve a question's curriculum placement.

        Args:
            question_id: ID recorded on the result
            units / topics / subtopics: Candidate names (already split)

        Returns:
            MappingResult; never raises for unknown or ambiguous names
        """
        state = _MappingState()

        self._resolve_units(state, units)
        pending = self._resolve_subtopics(state, subtopics, record_misses=False)
        self._resolve_topics(state, topics)
        self._resolve_subtopics(state, pending, record_misses=True)

        if state.chapter_id is None and state.topic_ids:
            first = self.tables.topic(state.topic_ids[0])
            state.chapter_id = first.unit_id
            logger.debug(f"{question_id}: unit inferred from topic {first.id}")

        self._prune(state)

        result = MappingResult(
            question_id=question_id,
            chapter_id=state.chapter_id,
            topic_ids=tuple(state.topic_ids),
            subtopic_ids=tuple(state.subtopic_ids),
            unmatched={k: tuple(v) for k, v in state.unmatched.items() if v},
            conflicts=tuple(state.conflicts),
        )
        if result.requires_manual_mapping:
            logger.info(
                f"{question_id}: manual mapping needed "
                f"(unit={result.chapter_id}, unmatched={result.unmatched_names}, conflicts={len(result.conflicts)})"
            )
        return result

    def _resolve_units(self, state: _MappingState, names: Sequence[str]) -> None:
        for name in names:
            outcome = self.match_unit(name)
            if outcome.matched:
                state.chapter_id = outcome.item.id
                return
        for name in names:
            state.miss("unit", name)

    def _resolve_topics(self, state: _MappingState, names: Sequence[str]) -> None:
        for name in names:
            outcome = self.match_topic(name, state.chapter_id)
            if outcome.matched:
                topic = outcome.item
                if state.chapter_id is None:
                    state.chapter_id = topic.unit_id
                state.add_topic(topic.id)
                continue
            if state.chapter_id and not outcome.ambiguous:
                self._note_out_of_unit(state, "topic", name, self.match_topic(name))
            state.miss("topic", name)

    def _resolve_subtopics(self, state: _MappingState, names: Sequence[str], *, record_misses: bool) -> List[str]:
        """Resolve what can be resolved now; return the names still open."""
        pending = []
        for name in names:
            outcome = self.match_subtopic(name, state.topic_ids, state.chapter_id)
            if outcome.matched:
                sub = outcome.item
                parent = self.tables.topic(sub.topic_id)
                if state.chapter_id is None:
                    state.chapter_id = parent.unit_id
                state.add_topic(parent.id)
                state.add_subtopic(sub.id)
                continue
            if not record_misses:
                pending.append(name)
                continue
            if state.chapter_id and not outcome.ambiguous:
                self._note_out_of_unit(state, "subtopic", name, self.match_subtopic(name))
            state.miss("subtopic", name)
        return pending

    def _note_out_of_unit(self, state: _MappingState, kind: str, name: str, outcome: MatchOutcome) -> None:
        """Record a conflict when ``name`` only matches outside the resolved unit."""
        if not outcome.matched:
            return
        item = outcome.item
        unit_id = item.unit_id if isinstance(item, Topic) else self.tables.unit_of_subtopic(item.id)
        if unit_id != state.chapter_id:
            state.conflict(f"{kind} '{name}' belongs to unit {unit_id}, not resolved unit {state.chapter_id}")

    def _prune(self, state: _MappingState) -> None:
        if state.chapter_id is None:
            state.topic_ids.clear()
            state.subtopic_ids.clear()
            return
        kept_topics = []
        for topic_id in state.topic_ids:
            if self.tables.topic(topic_id).unit_id == state.chapter_id:
                kept_topics.append(topic_id)
            else:
                state.conflict(f"topic {topic_id} dropped: outside unit {state.chapter_id}")
        kept_subtopics = []
        for sub_id in state.subtopic_ids:
            parent_id = self.tables.subtopic(sub_id).topic_id
            if parent_id in kept_topics:
                kept_subtopics.append(sub_id)
            else:
                state.conflict(f"subtopic {sub_id} dropped: parent topic not in unit {state.chapter_id}")
        state.topic_ids[:] = kept_topics
        state.subtopic_ids[:] = kept_subtopics
