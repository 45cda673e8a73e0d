"""
Tests for the intent classifier and keyword extraction.
"""

import pytest

from bible_search.core.intent_classifier import (
    KEYWORD_PROTOTYPES,
    SEMANTIC_PROTOTYPES,
    IntentClassifier,
    extract_keyword,
)
from bible_search.core.models import HybridIntent, IntentType, KeywordIntent, SemanticIntent
from bible_search.vector.embeddings import EmbeddingGateway

from conftest import StubEmbedding

KEYWORD_VECTOR = [1.0, 0.0, 0.0, 0.0]
SEMANTIC_VECTOR = [0.0, 1.0, 0.0, 0.0]
MIXED_VECTOR = [1.0, 1.0, 0.0, 0.0]


@pytest.fixture
def provider():
    mapping = {p: KEYWORD_VECTOR for p in KEYWORD_PROTOTYPES}
    mapping.update({p: SEMANTIC_VECTOR for p in SEMANTIC_PROTOTYPES})
    mapping.update({
        '"가사"가 나오는 구절': KEYWORD_VECTOR,
        "find all Moses passages please": KEYWORD_VECTOR,
        "사랑에 대한 말씀": SEMANTIC_VECTOR,
        "Moses with love": MIXED_VECTOR,
        "something rather vague here today": MIXED_VECTOR,
    })
    return StubEmbedding(mapping)


@pytest.fixture
def classifier(provider):
    return IntentClassifier(EmbeddingGateway(provider))


def test_keyword_intent(classifier):
    intent = classifier.classify('"가사"가 나오는 구절')

    assert isinstance(intent, KeywordIntent)
    assert intent.type == IntentType.KEYWORD
    assert intent.keyword == "가사"
    assert intent.needs_keyword_search
    assert not intent.needs_semantic_search
    assert intent.reason.startswith("Keyword intent detected")


def test_semantic_intent(classifier):
    intent = classifier.classify("사랑에 대한 말씀")

    assert isinstance(intent, SemanticIntent)
    assert intent.extracted_keyword is None
    assert intent.needs_semantic_search
    assert not intent.needs_keyword_search
    assert intent.reason.startswith("Semantic intent detected")


def test_ambiguous_query_is_hybrid(classifier):
    intent = classifier.classify("Moses with love")

    assert isinstance(intent, HybridIntent)
    assert intent.keyword == "love"
    assert intent.needs_keyword_search
    assert intent.needs_semantic_search
    assert intent.reason.startswith("Ambiguous intent")


def test_hybrid_without_keyword_skips_keyword_search(classifier):
    intent = classifier.classify("something rather vague here today")

    assert isinstance(intent, HybridIntent)
    assert intent.keyword is None
    assert not intent.needs_keyword_search


def test_short_single_word_is_hybrid_without_embedding(classifier, provider):
    intent = classifier.classify("  사랑  ")

    assert isinstance(intent, HybridIntent)
    assert intent.keyword == "사랑"
    assert intent.original_query == "  사랑  "
    assert "Single short word (2 chars)" in intent.reason
    assert "사랑" not in provider.calls


def test_long_single_word_is_classified(classifier, provider):
    classifier.classify("righteousness")
    assert provider.calls[-1] == "righteousness"


def test_keyword_intent_without_keyword_falls_back_to_semantic(classifier):
    intent = classifier.classify("find all Moses passages please")

    assert isinstance(intent, SemanticIntent)
    assert "no keyword could be extracted" in intent.reason


@pytest.mark.parametrize("query", [None, "", "   "])
def test_empty_query_is_semantic(classifier, query):
    intent = classifier.classify(query)

    assert isinstance(intent, SemanticIntent)
    assert intent.reason == "Empty query defaults to semantic"


def test_describe(classifier):
    assert classifier.describe() == "IntentClassifier: 20 keyword prototypes, 20 semantic prototypes"


def test_custom_prototypes():
    provider = StubEmbedding({"kw": KEYWORD_VECTOR, "sem": SEMANTIC_VECTOR})
    classifier = IntentClassifier(EmbeddingGateway(provider), ["kw"], ["sem"])

    assert classifier.describe() == "IntentClassifier: 1 keyword prototypes, 1 semantic prototypes"


@pytest.mark.parametrize("query,expected", [
    ('"가사"가 나오는 구절', "가사"),
    ("'faith' verses", "faith"),
    ("다윗이라는 이름이 나오는 구절", "다윗"),
    ("모세가 나오는 구절", "모세"),
    ("사랑을 포함한 구절", "사랑"),
    ("verses containing the word shepherd", "shepherd"),
    ("find verses that mention Moses", "Moses"),
    ("find Moses", "Moses"),
    ("grace", "grace"),
    ("what does the Bible say about forgiveness", None),
])
def test_extract_keyword(query, expected):
    assert extract_keyword(query) == expected
