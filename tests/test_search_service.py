"""
Tests for the search pipeline: validation, intent dispatch, context and
version filtering, and the end-to-end flow with the hash embedder.
"""

import math
import warnings
from unittest.mock import MagicMock

import pytest

from bible_search.core.bootstrap import build_search_service
from bible_search.core.config import SearchSettings
from bible_search.core.indexer import VerseIndexer
from bible_search.core.models import (
    HybridIntent,
    KeywordIntent,
    NoContext,
    SemanticIntent,
    TestamentContext,
)
from bible_search.core.search_service import BibleSearchService, ValidationError
from bible_search.vector.embeddings import DeterministicHashEmbedding
from bible_search.vector.index import SimpleInMemoryVectorStore


@pytest.fixture
def intent_classifier():
    classifier = MagicMock()
    classifier.describe.return_value = "IntentClassifier: stub"
    return classifier


@pytest.fixture
def context_classifier():
    classifier = MagicMock()
    classifier.extract.side_effect = NoContext.for_query
    classifier.describe.return_value = "ContextClassifier: stub"
    return classifier


@pytest.fixture
def service(corpus, hash_gateway, intent_classifier, context_classifier):
    store = SimpleInMemoryVectorStore()
    indexer = VerseIndexer(corpus, store, hash_gateway)
    mode = indexer.ensure_index()
    return BibleSearchService(
        corpus=corpus,
        store=store,
        gateway=hash_gateway,
        intent_classifier=intent_classifier,
        context_classifier=context_classifier,
        lookup=indexer.lookup,
        settings=SearchSettings(),
        index_mode=mode
    )


def test_keyword_search_dispatch(service, intent_classifier):
    intent_classifier.classify.return_value = KeywordIntent("바벨론", "바벨론이 나오는 구절", "Keyword intent detected")

    result = service.search("바벨론이 나오는 구절")

    assert result.success
    assert result.search_method == "KEYWORD"
    assert result.extracted_keyword == "바벨론"
    assert result.intent_reason == "Keyword intent detected"
    assert result.detected_context_type == "NONE"
    assert result.detected_context is None
    assert result.context_books is None
    assert [r.reference for r in result.results] == ["예레미야 50:1", "요한계시록 18:2"]
    assert all(r.score == 1.0 and r.reranked_score == 1.0 for r in result.results)
    assert result.total_results == 2


def test_keyword_search_with_testament_context(service, intent_classifier, context_classifier):
    context_classifier.extract.side_effect = None
    context_classifier.extract.return_value = TestamentContext(
        2, "바벨론", "신약에서 바벨론", "신약 (New Testament)", 0.9
    )
    intent_classifier.classify.return_value = KeywordIntent("바벨론", "바벨론", "Keyword intent detected")

    result = service.search("신약에서 바벨론")

    intent_classifier.classify.assert_called_once_with("바벨론")
    assert result.detected_context_type == "TESTAMENT"
    assert result.detected_context == "신약 (New Testament)"
    assert result.search_query == "바벨론"
    assert [r.reference for r in result.results] == ["요한계시록 18:2"]


def test_keyword_search_respects_max_results(service, intent_classifier):
    intent_classifier.classify.return_value = KeywordIntent("바벨론", "q", "r")

    result = service.search("바벨론", max_results=1)

    assert [r.reference for r in result.results] == ["예레미야 50:1"]


def test_semantic_search_dispatch(service, intent_classifier):
    query = "Thou shalt love thy neighbor as thyself"
    intent_classifier.classify.return_value = SemanticIntent(query, "Semantic intent detected")

    result = service.search(query)

    assert result.success
    assert result.search_method == "SEMANTIC"
    assert result.extracted_keyword is None
    top = result.results[0]
    assert top.reference == "Matthew 22:39"
    assert top.version == "ASV"
    assert top.reranked_score >= 0.3
    assert top.reranked_score >= top.score
    scores = [r.reranked_score for r in result.results]
    assert scores == sorted(scores, reverse=True)


def test_unknown_version_returns_no_results(service, intent_classifier):
    query = "Thou shalt love thy neighbor as thyself"
    intent_classifier.classify.return_value = SemanticIntent(query, "r")

    result = service.search(query, version_filter="NIV")

    assert result.success
    assert result.results == []
    assert result.total_results == 0


def test_version_alias_filter(service, intent_classifier):
    intent_classifier.classify.return_value = KeywordIntent("하나님", "q", "r")

    result = service.search("하나님", version_filter="개역개정")

    assert result.results
    assert all(r.version == "KRV" for r in result.results)


@pytest.mark.parametrize("query,intent", [
    ("Thou shalt love thy neighbor as thyself",
     SemanticIntent("Thou shalt love thy neighbor as thyself", "r")),
    ("바벨론이 나오는 구절", KeywordIntent("바벨론", "바벨론이 나오는 구절", "r")),
    ("love", HybridIntent("love", "love", "Single short word")),
])
def test_threshold_above_one_returns_nothing(service, intent_classifier, query, intent):
    intent_classifier.classify.return_value = intent

    result = service.search(query, min_score=1.1)

    assert result.success
    assert result.results == []
    assert result.total_results == 0
    assert result.search_method == intent.type.value


def test_keyword_matches_kept_at_threshold_one(service, intent_classifier):
    intent_classifier.classify.return_value = KeywordIntent("바벨론", "바벨론이 나오는 구절", "r")

    result = service.search("바벨론이 나오는 구절", min_score=1.0)

    assert [r.reference for r in result.results] == ["예레미야 50:1", "요한계시록 18:2"]


def test_unresolvable_match_does_not_fail_search(service, intent_classifier, corpus):
    query = "Thou shalt love thy neighbor as thyself"
    intent_classifier.classify.return_value = SemanticIntent(query, "r")
    del service.lookup[corpus.get_verse_by_key("ASV:Matt:22:39").embedding_text]

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = service.search(query, min_score=0.0)

    assert result.success
    assert result.error is None
    assert "Matthew 22:39" not in [r.reference for r in result.results]


def test_hybrid_search_has_no_duplicates(service, intent_classifier):
    query = "love thy neighbor"
    intent_classifier.classify.return_value = HybridIntent("love", query, "Ambiguous intent")

    result = service.search(query, max_results=10, min_score=0.0)

    assert result.search_method == "HYBRID"
    keys = [(r.version, r.reference) for r in result.results]
    assert len(keys) == len(set(keys))
    # Keyword matches come first, in corpus order
    assert keys[:2] == [("ASV", "Matthew 22:39"), ("ASV", "John 3:16")]
    assert result.results[0].score == 1.0
    assert len(result.results) <= 10


def test_hybrid_without_keyword_is_semantic_only(service, intent_classifier):
    query = "Thou shalt love thy neighbor as thyself"
    intent_classifier.classify.return_value = HybridIntent(None, query, "Ambiguous intent")

    result = service.search(query)

    assert result.search_method == "HYBRID"
    assert result.extracted_keyword is None
    assert result.results[0].reference == "Matthew 22:39"


@pytest.mark.parametrize("kwargs", [
    {"query": ""},
    {"query": "   "},
    {"query": None},
    {"query": "love", "max_results": 0},
    {"query": "love", "max_results": -3},
    {"query": "love", "max_results": True},
    {"query": "love", "min_score": -0.1},
    {"query": "love", "min_score": math.nan},
    {"query": "love", "min_score": "0.5"},
])
def test_invalid_requests_are_rejected(service, intent_classifier, kwargs):
    result = service.search(**kwargs)

    assert not result.success
    assert result.error.startswith("Invalid request")
    assert result.results == []
    intent_classifier.classify.assert_not_called()


def test_validate_applies_defaults(service):
    assert service.validate("love", None, None) == (5, 0.3)
    assert service.validate("love", 3, 1) == (3, 1.0)

    with pytest.raises(ValidationError):
        service.validate("love", 2.5, 0.3)


def test_pipeline_errors_become_failed_results(service, context_classifier):
    context_classifier.extract.side_effect = RuntimeError("embedding backend down")

    result = service.search("love")

    assert not result.success
    assert result.error == "embedding backend down"
    assert result.query == "love"
    assert result.search_time_ms is not None


def test_stats(service):
    stats = service.stats()

    assert stats["indexedSegments"] == 12
    assert stats["storeCount"] == 12
    assert stats["candidateCount"] == 50
    assert stats["resultCount"] == 5
    assert stats["minScore"] == 0.3
    assert stats["indexMode"] == "generated"
    assert stats["intentClassifier"] == "IntentClassifier: stub"
    assert stats["totalVerses"] == 12
    assert stats["krvVerses"] == 8


def test_end_to_end_with_hash_embeddings(corpus):
    """The assembled service finds the neighbor verse for a plain English query."""
    service = build_search_service(
        corpus=corpus,
        store=SimpleInMemoryVectorStore(),
        provider=DeterministicHashEmbedding(dimension=384),
        settings=SearchSettings()
    )

    result = service.search("love your neighbor")

    assert result.success
    matches = [r for r in result.results if r.reference == "Matthew 22:39" and r.version == "ASV"]
    assert matches
    assert matches[0].reranked_score >= 0.3
    assert service.stats()["indexMode"] == "generated"
