"""
Intent classifier: decides whether a query wants exact keyword matching,
meaning-based matching, or both.

Classification is few-shot: the query embedding is compared to two curated
sets of prototype phrases, each embedded once at construction.
"""

import re
import time
from typing import List, Optional

import numpy as np

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGateway
from ..vector.similarity import mean_similarity
from .models import HybridIntent, KeywordIntent, SearchIntent, SemanticIntent

# Queries that name a specific word, person or place and ask to find it
KEYWORD_PROTOTYPES = [
    "가사라는 지명이 나오는 구절",
    "모세가 등장하는 구절을 찾아줘",
    "다윗이라는 이름이 나오는 성경 구절",
    "아브라함이 언급된 부분",
    "예루살렘이 나오는 곳",
    "바울이라는 단어가 포함된 구절",
    "베드로가 나오는 성경",
    "시온이라는 지명",
    "갈릴리가 언급되는 구절",
    "여리고가 등장하는",
    "verses containing the word shepherd",
    "find verses that mention Moses",
    "passages where David appears",
    "verses with the name Abraham",
    "scriptures mentioning Jerusalem",
    "verses that contain the word love",
    "find where Paul is mentioned",
    "passages with the word faith",
    "verses including the term righteousness",
    "scriptures containing Galilee",
]

# Queries that ask about a theme, concept or feeling
SEMANTIC_PROTOTYPES = [
    "사랑에 대한 말씀",
    "용서에 관한 구절",
    "믿음의 의미를 알려주는 성경",
    "힘든 시간에 위로가 되는 말씀",
    "하나님의 사랑을 느낄 수 있는 구절",
    "소망과 희망에 대해",
    "감사에 관련된 성경 구절",
    "평안을 주는 말씀",
    "지혜로운 삶에 대한 가르침",
    "겸손함에 대해 말하는 구절",
    "verses about God's love",
    "what does the Bible say about forgiveness",
    "comfort in times of suffering",
    "passages about faith and trust",
    "scriptures on hope and encouragement",
    "teachings about wisdom",
    "verses related to peace and rest",
    "passages concerning eternal life",
    "what the Bible teaches about humility",
    "scriptures about gratitude and thanksgiving",
]

# Tried in order; the first usable capture wins
KEYWORD_EXTRACTION_PATTERNS = [
    re.compile(r"[\"'](.+?)[\"']"),
    re.compile(r"(.+?)(?:라는|이라는)\s*(?:단어|말|지명|이름|인물|사람|곳|장소)"),
    re.compile(r"(.+?)(?:가|이)\s*(?:나오는|나온|등장하는|언급된|포함된)"),
    re.compile(r"(.+?)(?:을|를)\s*(?:포함한|포함하는|담은|담고)"),
    re.compile(r"(?:containing|with|mentions?)\s+(?:the\s+word\s+)?[\"']?([\w가-힣]+)[\"']?", re.IGNORECASE),
    re.compile(r"(?:the word|the name|the place)\s+[\"']?([\w가-힣]+)[\"']?", re.IGNORECASE),
]

TRAILING_QUOTES = re.compile(r"[\"'\s]+$")

STOP_WORDS = {
    # English
    "the", "a", "an", "is", "are", "was", "were", "be", "been",
    "find", "search", "show", "get", "verses", "verse", "passages",
    "containing", "with", "about", "for", "in", "on", "at",
    # Korean
    "를", "을", "이", "가", "에", "의", "와", "과", "로", "으로",
    "구절", "말씀", "성경", "찾아", "줘", "주세요",
}

KEYWORD_THRESHOLD = 0.45
SEMANTIC_THRESHOLD = 0.45
DIFFERENCE_THRESHOLD = 0.05
MAX_KEYWORD_LENGTH = 20
SHORT_QUERY_LENGTH = 6


def extract_keyword(query: str) -> Optional[str]:
    """Pull the word, name or place a query asks for, if one can be found."""
    for pattern in KEYWORD_EXTRACTION_PATTERNS:
        match = pattern.search(query)
        if match:
            keyword = TRAILING_QUOTES.sub("", match.group(1).strip()).strip()
            if keyword and len(keyword) <= MAX_KEYWORD_LENGTH:
                return keyword

    # Short queries: the first significant word is usually the subject
    words = query.split()
    if len(words) <= 3:
        for word in words:
            if len(word) >= 2 and word.lower() not in STOP_WORDS:
                return word

    return None


class IntentClassifier:
    """Embedding-similarity classifier over keyword-style and semantic-style prototypes."""

    def __init__(self, gateway: EmbeddingGateway,
                 keyword_prototypes: List[str] = None,
                 semantic_prototypes: List[str] = None):
        self.gateway = gateway
        keyword_prototypes = keyword_prototypes or KEYWORD_PROTOTYPES
        semantic_prototypes = semantic_prototypes or SEMANTIC_PROTOTYPES

        start_time = time.time()
        self._keyword_vectors = np.vstack(gateway.embed_batch(keyword_prototypes))
        self._semantic_vectors = np.vstack(gateway.embed_batch(semantic_prototypes))
        self._keyword_vectors.setflags(write=False)
        self._semantic_vectors.setflags(write=False)

        logger.info(
            f"Intent classifier initialized with {len(keyword_prototypes)} keyword and "
            f"{len(semantic_prototypes)} semantic prototypes in {round((time.time() - start_time) * 1000)}ms"
        )

    def classify(self, query: Optional[str]) -> SearchIntent:
        if query is None or not query.strip():
            return SemanticIntent(original_query=query, reason="Empty query defaults to semantic")

        trimmed = query.strip()

        # Only very short single-word queries skip the embedding comparison
        if len(trimmed.split()) == 1 and len(trimmed) <= SHORT_QUERY_LENGTH:
            return HybridIntent(
                keyword=trimmed,
                original_query=query,
                reason=f"Single short word ({len(trimmed)} chars): using hybrid search"
            )

        query_vector = self.gateway.embed(trimmed)
        keyword_sim = mean_similarity(query_vector, self._keyword_vectors)
        semantic_sim = mean_similarity(query_vector, self._semantic_vectors)
        difference = keyword_sim - semantic_sim

        if keyword_sim > KEYWORD_THRESHOLD and difference > DIFFERENCE_THRESHOLD:
            keyword = extract_keyword(trimmed)
            scores = f"score: {keyword_sim * 100:.0f}% vs {semantic_sim * 100:.0f}%"
            if keyword is None:
                intent = SemanticIntent(
                    original_query=query,
                    reason=f"Keyword intent detected ({scores}) but no keyword could be extracted: using semantic"
                )
            else:
                intent = KeywordIntent(
                    keyword=keyword,
                    original_query=query,
                    reason=f"Keyword intent detected ({scores})"
                )
        elif semantic_sim > SEMANTIC_THRESHOLD and -difference > DIFFERENCE_THRESHOLD:
            intent = SemanticIntent(
                original_query=query,
                reason=f"Semantic intent detected (score: {semantic_sim * 100:.0f}% vs {keyword_sim * 100:.0f}%)"
            )
        else:
            intent = HybridIntent(
                keyword=extract_keyword(trimmed),
                original_query=query,
                reason=(f"Ambiguous intent (keyword: {keyword_sim * 100:.0f}%, "
                        f"semantic: {semantic_sim * 100:.0f}%): using hybrid")
            )

        logger.log_classification("intent", trimmed, intent.type.value, {
            "keyword_sim": round(keyword_sim, 3),
            "semantic_sim": round(semantic_sim, 3),
            "keyword": intent.extracted_keyword
        })
        return intent

    def describe(self) -> str:
        return (f"IntentClassifier: {len(self._keyword_vectors)} keyword prototypes, "
                f"{len(self._semantic_vectors)} semantic prototypes")
