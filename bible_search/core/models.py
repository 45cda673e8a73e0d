"""
Per-query classification results: search intents and scope contexts.

Each variant is its own frozen dataclass, so a value can only carry the
fields that make sense for its type.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union


class IntentType(str, Enum):
    KEYWORD = "KEYWORD"
    SEMANTIC = "SEMANTIC"
    HYBRID = "HYBRID"


@dataclass(frozen=True)
class KeywordIntent:
    """Exact-term search for an extracted keyword."""

    keyword: str
    original_query: str
    reason: str

    type: ClassVar[IntentType] = IntentType.KEYWORD
    needs_keyword_search: ClassVar[bool] = True
    needs_semantic_search: ClassVar[bool] = False

    @property
    def extracted_keyword(self) -> Optional[str]:
        return self.keyword


@dataclass(frozen=True)
class SemanticIntent:
    """Meaning-based search through the two-stage retriever."""

    original_query: str
    reason: str

    type: ClassVar[IntentType] = IntentType.SEMANTIC
    needs_keyword_search: ClassVar[bool] = False
    needs_semantic_search: ClassVar[bool] = True

    @property
    def extracted_keyword(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class HybridIntent:
    """Keyword matches first, topped up with semantic matches."""

    keyword: Optional[str]
    original_query: str
    reason: str

    type: ClassVar[IntentType] = IntentType.HYBRID
    needs_semantic_search: ClassVar[bool] = True

    @property
    def extracted_keyword(self) -> Optional[str]:
        return self.keyword

    @property
    def needs_keyword_search(self) -> bool:
        return self.keyword is not None


SearchIntent = Union[KeywordIntent, SemanticIntent, HybridIntent]


class ContextType(str, Enum):
    NONE = "NONE"
    TESTAMENT = "TESTAMENT"
    BOOK_GROUP = "BOOK_GROUP"
    SINGLE_BOOK = "SINGLE_BOOK"
    MULTIPLE_BOOKS = "MULTIPLE_BOOKS"


class _ContextMixin:
    """Behaviour shared by every context variant."""

    context_type: ClassVar[ContextType]
    cleaned_query: Optional[str]
    original_query: Optional[str]

    @property
    def has_context(self) -> bool:
        return self.context_type != ContextType.NONE

    @property
    def search_query(self) -> Optional[str]:
        """The query to search with: the cleaned query unless it is blank."""
        if self.cleaned_query and self.cleaned_query.strip():
            return self.cleaned_query
        return self.original_query

    @property
    def book_shorts(self) -> Optional[Tuple[str, ...]]:
        return None

    @property
    def testament(self) -> Optional[int]:
        return None

    def matches_verse(self, book_short: str, testament: int) -> bool:
        shorts = self.book_shorts
        if shorts is None:
            return True
        lowered = book_short.lower()
        return any(s.lower() == lowered for s in shorts)


@dataclass(frozen=True)
class NoContext(_ContextMixin):
    cleaned_query: Optional[str]
    original_query: Optional[str]
    description: str = ""
    confidence: float = 1.0

    context_type: ClassVar[ContextType] = ContextType.NONE

    @classmethod
    def for_query(cls, query: Optional[str]) -> "NoContext":
        return cls(cleaned_query=query, original_query=query)


@dataclass(frozen=True)
class TestamentContext(_ContextMixin):
    testament_number: int
    cleaned_query: str
    original_query: str
    description: str
    confidence: float

    context_type: ClassVar[ContextType] = ContextType.TESTAMENT
    # Keep pytest from collecting this as a test class
    __test__: ClassVar[bool] = False

    @property
    def testament(self) -> Optional[int]:
        return self.testament_number

    def matches_verse(self, book_short: str, testament: int) -> bool:
        return testament == self.testament_number


@dataclass(frozen=True)
class BookGroupContext(_ContextMixin):
    books: Tuple[str, ...]
    cleaned_query: str
    original_query: str
    description: str
    confidence: float

    context_type: ClassVar[ContextType] = ContextType.BOOK_GROUP

    @property
    def book_shorts(self) -> Optional[Tuple[str, ...]]:
        return self.books


@dataclass(frozen=True)
class SingleBookContext(_ContextMixin):
    book: str
    cleaned_query: str
    original_query: str
    description: str
    confidence: float

    context_type: ClassVar[ContextType] = ContextType.SINGLE_BOOK

    @property
    def book_shorts(self) -> Optional[Tuple[str, ...]]:
        return (self.book,)


@dataclass(frozen=True)
class MultipleBooksContext(_ContextMixin):
    books: Tuple[str, ...]
    cleaned_query: str
    original_query: str
    description: str
    confidence: float

    context_type: ClassVar[ContextType] = ContextType.MULTIPLE_BOOKS

    @property
    def book_shorts(self) -> Optional[Tuple[str, ...]]:
        return self.books


ContextResult = Union[NoContext, TestamentContext, BookGroupContext, SingleBookContext, MultipleBooksContext]
