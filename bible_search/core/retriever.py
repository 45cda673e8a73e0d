"""
Stage 1 of the search: embed the query and pull a permissive set of
candidate verses from the vector store by cosine similarity.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGateway
from ..vector.index import IVectorStore
from .corpus import BibleCorpus, Verse


@dataclass(frozen=True)
class ScoredCandidate:
    """A verse with its Stage 1 similarity and, once re-ranked, its final score."""

    verse: Verse
    base_score: float
    reranked_score: Optional[float] = None

    def with_reranked(self, score: float) -> "ScoredCandidate":
        return replace(self, reranked_score=score)


class CandidateRetriever:
    """Exact top-k cosine retrieval followed by text-to-verse resolution."""

    def __init__(self, gateway: EmbeddingGateway, store: IVectorStore, corpus: BibleCorpus,
                 lookup: Dict[str, str], top_k: int = 50, min_score: float = 0.1):
        self.gateway = gateway
        self.store = store
        self.corpus = corpus
        self.lookup = lookup
        self.top_k = top_k
        self.min_score = min_score

    def retrieve(self, query: str, top_k: int = None) -> List[ScoredCandidate]:
        """Candidates for the query, highest similarity first, at most top_k of them."""
        query_vector = self.gateway.embed(query)
        matches = self.store.search(query_vector, top_k or self.top_k, self.min_score)

        candidates = []
        for match in matches:
            verse = self._resolve(match.text)
            if verse is None:
                continue
            candidates.append(ScoredCandidate(verse=verse, base_score=match.score))

        logger.debug(f"Retrieved {len(candidates)} candidates for '{query}' ({len(matches)} store matches)")
        return candidates

    def _resolve(self, text: str) -> Optional[Verse]:
        # Unresolvable matches are logged and skipped, never raised
        verse_key = self.lookup.get(text)
        verse = self.corpus.get_verse_by_key(verse_key) if verse_key else None
        if verse is None:
            reason = "no lookup entry" if verse_key is None else f"unknown verse key {verse_key}"
            logger.log_data_integrity(text, reason)
        return verse
