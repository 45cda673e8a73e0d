"""
Context classifier: detects a book or testament scope written into a query
("신약에서 ...", "in Romans about ..."), strips it, and returns a context whose
matches_verse predicate narrows the search.
"""

import re
import time
from typing import List, Optional

import numpy as np

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGateway
from ..vector.similarity import mean_similarity
from .books import find_book, find_book_group
from .models import (
    BookGroupContext,
    ContextResult,
    MultipleBooksContext,
    NoContext,
    SingleBookContext,
    TestamentContext,
)

# Phrases that carry a scope constraint
SCOPE_PROTOTYPES = [
    # Testament, Korean
    "신약에서 나오는 구절",
    "구약에서 언급된 말씀",
    "신약성경에서 사랑에 대한",
    "구약성서에서 예언된",
    # Testament, English
    "verses from the new testament",
    "passages in the old testament",
    "in the NT about love",
    "OT prophecies about",
    # Book groups, Korean
    "사복음서에서 사랑이 나온 구절",
    "복음서에서 예수님의 말씀",
    "모세오경에서 율법에 대한",
    "바울서신에서 믿음에 관한",
    "시가서에서 찬양에 대해",
    "대선지서에서 예언",
    "소선지서에서 심판",
    # Book groups, English
    "in the four gospels about",
    "from the pentateuch about",
    "pauline epistles on faith",
    "wisdom books about",
    # Single book, Korean
    "로마서에서 복음의 정의",
    "창세기에서 창조에 대한",
    "요한복음에서 영생에 관한",
    "시편에서 위로의 말씀",
    "잠언에서 지혜에 대해",
    "이사야에서 메시아 예언",
    # Single book, English
    "in Romans about justification",
    "in Genesis about creation",
    "from John about eternal life",
    "in Psalms about comfort",
    # Multiple books, Korean
    "이사야, 예레미야에서 구원이 언급된",
    "마태복음과 요한복음에서 기적",
    "고린도전서와 후서에서 교회에 대해",
    "에베소서, 빌립보서에서 기쁨",
]

# General searches with no scope
NO_SCOPE_PROTOTYPES = [
    "사랑에 대한 말씀",
    "용서에 관한 구절",
    "하나님의 은혜",
    "믿음의 의미",
    "소망에 대해",
    "평안을 주는 말씀",
    "위로의 구절",
    "verses about love",
    "what does the Bible say about forgiveness",
    "comfort in suffering",
    "faith and trust",
    "모세가 나오는 구절",
    "다윗이 언급된",
    "예루살렘이 나오는",
]

KOREAN_SCOPE_PATTERN = re.compile(r"^(.+?)(?:에서|에|의|에서 나오는|에 있는|에 나오는)\s+(.+)$")

# Scope followed by an explicit topic marker, then the looser form where the marker is optional
ENGLISH_SCOPE_PATTERNS = [
    re.compile(r"^(?:in|from)\s+(?:the\s+)?(.+?)\s+(?:about|on|concerning|regarding)\s+(.+)$", re.IGNORECASE),
    re.compile(r"^(?:in|from|in the|from the)\s+(.+?)\s+(?:about|on|concerning|regarding)?\s*(.+)$", re.IGNORECASE),
]

KOREAN_OT_PATTERN = re.compile(r"구약(?:성경|성서)?")
KOREAN_NT_PATTERN = re.compile(r"신약(?:성경|성서)?")
ENGLISH_OT_PATTERN = re.compile(r"\b(?:old testament|ot)\b", re.IGNORECASE)
ENGLISH_NT_PATTERN = re.compile(r"\b(?:new testament|nt)\b", re.IGNORECASE)

MULTIPLE_BOOKS_SEPARATOR = re.compile(r"[,과와]|\s+and\s+|\s*&\s*")

DIFFERENCE_THRESHOLD = 0.08


def parse_multiple_books(fragment: str, korean: bool) -> List[str]:
    """Resolve each separated part of a scope fragment to a book short, in order, without repeats."""
    books = []
    for part in MULTIPLE_BOOKS_SEPARATOR.split(fragment):
        part = part.strip()
        if not part:
            continue
        found = find_book(part, korean)
        if found and found[1] not in books:
            books.append(found[1])
    return books


def parse_scope(scope: str, search: str, original: str, confidence: float, korean: bool) -> Optional[ContextResult]:
    """Turn a scope fragment into a context, checking testament, group, multiple books then single book."""
    if korean:
        if KOREAN_OT_PATTERN.search(scope):
            return TestamentContext(1, search, original, "구약 (Old Testament)", confidence)
        if KOREAN_NT_PATTERN.search(scope):
            return TestamentContext(2, search, original, "신약 (New Testament)", confidence)
    else:
        if ENGLISH_OT_PATTERN.search(scope):
            return TestamentContext(1, search, original, "Old Testament", confidence)
        if ENGLISH_NT_PATTERN.search(scope):
            return TestamentContext(2, search, original, "New Testament", confidence)

    group = find_book_group(scope, korean)
    if group:
        name, shorts = group
        return BookGroupContext(tuple(shorts), search, original, name, confidence)

    books = parse_multiple_books(scope, korean)
    if len(books) > 1:
        return MultipleBooksContext(tuple(books), search, original, ", ".join(books), confidence)

    book = find_book(scope, korean)
    if book:
        name, short = book
        return SingleBookContext(short, search, original, name, confidence)

    return None


class ContextClassifier:
    """Scope detector: prototype similarity gate followed by structural extraction."""

    def __init__(self, gateway: EmbeddingGateway,
                 scope_prototypes: List[str] = None,
                 no_scope_prototypes: List[str] = None):
        self.gateway = gateway
        scope_prototypes = scope_prototypes or SCOPE_PROTOTYPES
        no_scope_prototypes = no_scope_prototypes or NO_SCOPE_PROTOTYPES

        start_time = time.time()
        self._scope_vectors = np.vstack(gateway.embed_batch(scope_prototypes))
        self._no_scope_vectors = np.vstack(gateway.embed_batch(no_scope_prototypes))
        self._scope_vectors.setflags(write=False)
        self._no_scope_vectors.setflags(write=False)

        logger.info(
            f"Context classifier initialized with {len(scope_prototypes)} scope and "
            f"{len(no_scope_prototypes)} no-scope prototypes in {round((time.time() - start_time) * 1000)}ms"
        )

    def extract(self, query: Optional[str]) -> ContextResult:
        """Extract a book or testament scope from a search query."""
        if query is None or not query.strip():
            return NoContext.for_query(query)

        trimmed = query.strip()

        query_vector = self.gateway.embed(trimmed)
        scope_sim = mean_similarity(query_vector, self._scope_vectors)
        no_scope_sim = mean_similarity(query_vector, self._no_scope_vectors)

        if no_scope_sim > scope_sim and no_scope_sim - scope_sim > DIFFERENCE_THRESHOLD:
            logger.debug(f"No context detected for query '{trimmed}' "
                         f"(scope={scope_sim:.3f}, no-scope={no_scope_sim:.3f})")
            return NoContext.for_query(trimmed)

        context = self._extract_scope(trimmed, scope_sim)
        if context is None:
            return NoContext.for_query(trimmed)

        logger.log_classification("context", trimmed, context.context_type.value, {
            "description": context.description,
            "cleaned_query": context.cleaned_query,
            "confidence": round(scope_sim, 3)
        })
        return context

    def _extract_scope(self, query: str, confidence: float) -> Optional[ContextResult]:
        match = KOREAN_SCOPE_PATTERN.match(query)
        if match:
            context = parse_scope(match.group(1).strip(), match.group(2).strip(), query, confidence, korean=True)
            if context is not None:
                return context

        for pattern in ENGLISH_SCOPE_PATTERNS:
            match = pattern.match(query)
            if match:
                context = parse_scope(match.group(1).strip(), match.group(2).strip(), query, confidence, korean=False)
                if context is not None:
                    return context

        return None

    def describe(self) -> str:
        return (f"ContextClassifier: {len(self._scope_vectors)} context prototypes, "
                f"{len(self._no_scope_vectors)} no-context prototypes")
