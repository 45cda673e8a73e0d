"""
Stage 2 of the search: combine Stage 1 similarity with keyword overlap and
text-length normalization, then filter, sort and truncate.
"""

from typing import Callable, List, Optional, Sequence

from .corpus import Verse, matches_version
from .retriever import ScoredCandidate

KEYWORD_BOOST_PER_WORD = 0.05
MAX_KEYWORD_BOOST = 0.2
MIN_BOOST_WORD_LENGTH = 3

VersePredicate = Callable[[str, int], bool]


def query_words(query: str) -> List[str]:
    """Lower-cased, whitespace-split query words."""
    return query.lower().split()


def keyword_boost(verse_text: str, words: Sequence[str]) -> float:
    """+0.05 per query word longer than two characters found in the verse, capped at 0.2."""
    lowered = verse_text.lower()
    hits = sum(1 for word in words if len(word) >= MIN_BOOST_WORD_LENGTH and word in lowered)
    return min(MAX_KEYWORD_BOOST, KEYWORD_BOOST_PER_WORD * hits)


def length_factor(verse_text: str) -> float:
    """Mild penalty for long verses: 1.0 up to 300 chars, 0.95 up to 500, 0.9 beyond."""
    length = len(verse_text)
    if length <= 300:
        return 1.0
    if length <= 500:
        return 0.95
    return 0.9


def reranked_score(base_score: float, verse_text: str, words: Sequence[str]) -> float:
    """Final score, clamped to [0, 1]."""
    score = (base_score + keyword_boost(verse_text, words)) * length_factor(verse_text)
    return min(1.0, max(0.0, score))


def passes_filters(verse: Verse, version_filter: Optional[str], context_filter: Optional[VersePredicate]) -> bool:
    if not matches_version(verse.version, version_filter):
        return False
    if context_filter is not None and not context_filter(verse.book_short, verse.testament):
        return False
    return True


def rerank(candidates: Sequence[ScoredCandidate], query: str, min_score: float, max_results: int,
           version_filter: Optional[str] = None,
           context_filter: Optional[VersePredicate] = None) -> List[ScoredCandidate]:
    """
    Re-rank Stage 1 candidates.

    Args:
        candidates: Stage 1 candidates in retrieval order
        query: Query whose words drive the keyword boost
        min_score: Threshold applied to the re-ranked score
        max_results: Maximum number of candidates to keep
        version_filter: Optional version tag or alias
        context_filter: Optional (book_short, testament) predicate

    Returns:
        Candidates carrying a reranked_score, best first; ties keep retrieval order
    """
    if max_results <= 0:
        return []

    words = query_words(query)
    scored = [
        c.with_reranked(reranked_score(c.base_score, c.verse.text, words))
        for c in candidates
        if passes_filters(c.verse, version_filter, context_filter)
    ]
    kept = [c for c in scored if c.reranked_score >= min_score]
    # sorted() is stable, so equal scores stay in retrieval order
    kept = sorted(kept, key=lambda c: c.reranked_score, reverse=True)
    return kept[:max_results]
