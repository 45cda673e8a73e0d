"""
Search pipeline: context extraction, intent classification, then keyword,
semantic or hybrid retrieval with version and scope filtering.
"""

import math
import time
from typing import Any, Dict, List, Optional, Tuple

from ..api.schemas import SearchResult, VerseResult
from ..util.logging import logger
from ..vector.embeddings import EmbeddingGateway
from ..vector.index import IVectorStore
from .config import SearchSettings
from .context_classifier import ContextClassifier
from .corpus import BibleCorpus, matches_version
from .intent_classifier import IntentClassifier
from .models import ContextResult, IntentType
from .reranker import rerank
from .retriever import CandidateRetriever

KEYWORD_MATCH_SCORE = 1.0


class ValidationError(ValueError):
    """Raised for a search request that is rejected before any work is done."""
    pass


class BibleSearchService:
    """
    Two-stage verse search with automatic intent and scope detection.

    Flow per query:
        1. Extract context (book scope) and the cleaned query
        2. Classify intent on the cleaned query
        3. Run keyword, semantic or hybrid search with context filtering
    """

    def __init__(self, corpus: BibleCorpus, store: IVectorStore, gateway: EmbeddingGateway,
                 intent_classifier: IntentClassifier, context_classifier: ContextClassifier,
                 lookup: Dict[str, str], settings: SearchSettings = None, index_mode: Optional[str] = None):
        self.corpus = corpus
        self.store = store
        self.intent_classifier = intent_classifier
        self.context_classifier = context_classifier
        self.lookup = lookup
        self.settings = settings or SearchSettings()
        self.index_mode = index_mode
        self.retriever = CandidateRetriever(
            gateway, store, corpus, lookup,
            top_k=self.settings.candidate_count,
            min_score=self.settings.candidate_min_score
        )

    def validate(self, query: Optional[str], max_results: Optional[int],
                 min_score: Optional[float]) -> Tuple[int, float]:
        """Apply defaults and reject malformed requests. Returns (max_results, min_score)."""
        if query is None or not query.strip():
            raise ValidationError("query cannot be empty")

        max_results = self.settings.result_count if max_results is None else max_results
        min_score = self.settings.min_score if min_score is None else min_score

        if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results <= 0:
            raise ValidationError(f"max_results must be a positive integer, got {max_results!r}")

        # Thresholds above 1 are legal; nothing can reach them
        if isinstance(min_score, bool) or not isinstance(min_score, (int, float)) \
                or math.isnan(min_score) or min_score < 0:
            raise ValidationError(f"min_score must be a number between 0 and 1, got {min_score!r}")

        return max_results, float(min_score)

    def search(self, query: Optional[str], max_results: Optional[int] = None,
               min_score: Optional[float] = None, version_filter: Optional[str] = None) -> SearchResult:
        """Run one search. Never raises: failures come back as success=False."""
        start_time = time.time()

        try:
            max_results, threshold = self.validate(query, max_results, min_score)
        except ValidationError as e:
            logger.log_search(query or "", None, 0, (time.time() - start_time) * 1000,
                              status="rejected", error=str(e))
            return SearchResult.failure(query, f"Invalid request: {e}")

        try:
            context = self.context_classifier.extract(query)
            search_query = context.search_query
            intent = self.intent_classifier.classify(search_query)

            if intent.type == IntentType.KEYWORD:
                results = self.keyword_search(intent.extracted_keyword, threshold, version_filter,
                                              context, max_results)
            elif intent.type == IntentType.HYBRID:
                results = self.hybrid_search(search_query, intent.extracted_keyword, threshold,
                                             version_filter, context, max_results)
            else:
                results = self.semantic_search(search_query, threshold, version_filter, context, max_results)

            elapsed_ms = (time.time() - start_time) * 1000
            logger.log_search(query, intent.type.value, len(results), elapsed_ms,
                              context=context.description if context.has_context else None)

            return SearchResult(
                query=query,
                results=results,
                total_results=len(results),
                search_time_ms=int(elapsed_ms),
                success=True,
                search_method=intent.type.value,
                extracted_keyword=intent.extracted_keyword,
                intent_reason=intent.reason,
                detected_context_type=context.context_type.value,
                detected_context=context.description if context.has_context else None,
                context_books=list(context.book_shorts) if context.book_shorts else None,
                search_query=search_query
            )
        except Exception as e:
            elapsed_ms = (time.time() - start_time) * 1000
            logger.log_search(query, None, 0, elapsed_ms, status="failed", error=str(e))
            return SearchResult.failure(query, str(e), int(elapsed_ms))

    def keyword_search(self, keyword: Optional[str], threshold: float, version_filter: Optional[str],
                       context: ContextResult, max_results: int) -> List[VerseResult]:
        """Exact text matches, in corpus order, all scored 1.0."""
        results = []
        if KEYWORD_MATCH_SCORE < threshold:
            return results
        for verse in self.corpus.search_by_keyword(keyword):
            if len(results) >= max_results:
                break
            if not matches_version(verse.version, version_filter):
                continue
            if not context.matches_verse(verse.book_short, verse.testament):
                continue
            results.append(self.corpus.to_verse_result(verse, KEYWORD_MATCH_SCORE, KEYWORD_MATCH_SCORE))
        return results

    def semantic_search(self, query: str, threshold: float, version_filter: Optional[str],
                        context: ContextResult, max_results: int) -> List[VerseResult]:
        """Stage 1 retrieval followed by Stage 2 re-ranking."""
        candidates = self.retriever.retrieve(query, self.settings.candidate_count)
        if not candidates:
            return []

        ranked = rerank(candidates, query, threshold, max_results, version_filter, context.matches_verse)
        return [self.corpus.to_verse_result(c.verse, c.base_score, c.reranked_score) for c in ranked]

    def hybrid_search(self, query: str, keyword: Optional[str], threshold: float,
                      version_filter: Optional[str], context: ContextResult,
                      max_results: int) -> List[VerseResult]:
        """Keyword matches first, then semantic matches that are not already included."""
        keyword_matches = self.corpus.search_by_keyword(keyword) if keyword else []
        keyword_keys = {
            v.key for v in keyword_matches
            if context.matches_verse(v.book_short, v.testament)
        }

        results = self.keyword_search(keyword, threshold, version_filter, context, max_results) if keyword else []

        if len(results) < max_results:
            candidates = [
                c for c in self.retriever.retrieve(query, self.settings.candidate_count)
                if c.verse.key not in keyword_keys
            ]
            ranked = rerank(candidates, query, threshold, max_results - len(results),
                            version_filter, context.matches_verse)
            results.extend(
                self.corpus.to_verse_result(c.verse, c.base_score, c.reranked_score) for c in ranked
            )

        return results

    def stats(self) -> Dict[str, Any]:
        """Service configuration and index statistics."""
        stats = {
            "indexedSegments": len(self.lookup),
            "candidateCount": self.settings.candidate_count,
            "resultCount": self.settings.result_count,
            "minScore": self.settings.min_score,
            "intentClassifier": self.intent_classifier.describe(),
            "contextClassifier": self.context_classifier.describe(),
            "storeCount": self.store.count(),
            "indexMode": self.index_mode,
        }
        stats.update(self.corpus.statistics())
        return stats
