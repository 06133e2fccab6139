"""Curriculum auto-mapping: free-text unit/topic/subtopic names to curriculum IDs."""

from .matcher import CurriculumMatcher, MatchOutcome, find_unique_match, match_candidate

__all__ = ["CurriculumMatcher", "MatchOutcome", "find_unique_match", "match_candidate"]
