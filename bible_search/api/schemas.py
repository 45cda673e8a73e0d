"""
Request and response models. JSON uses camelCase field names.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(CamelModel):
    query: Optional[str] = None
    max_results: int = 5
    min_score: float = 0.3
    version: Optional[str] = None

    @field_validator('max_results', mode='before')
    @classmethod
    def default_max_results(cls, v):
        return 5 if v is None else v

    @field_validator('min_score', mode='before')
    @classmethod
    def default_min_score(cls, v):
        return 0.3 if v is None else v


class VerseResult(CamelModel):
    reference: str
    book_name: str
    book_short: str
    chapter: int
    verse: int
    title: Optional[str] = None
    text: str
    version: str
    score: float
    reranked_score: Optional[float] = None


class SearchResult(CamelModel):
    query: Optional[str] = None
    results: List[VerseResult] = []
    total_results: int = 0
    search_time_ms: Optional[int] = None
    success: bool = True
    error: Optional[str] = None

    # Intent detection
    search_method: Optional[str] = None
    extracted_keyword: Optional[str] = None
    intent_reason: Optional[str] = None

    # Context detection
    detected_context_type: Optional[str] = None
    detected_context: Optional[str] = None
    context_books: Optional[List[str]] = None
    search_query: Optional[str] = None

    @classmethod
    def failure(cls, query: Optional[str], message: str, search_time_ms: Optional[int] = None) -> "SearchResult":
        return cls(
            query=query,
            results=[],
            total_results=0,
            search_time_ms=search_time_ms,
            success=False,
            error=message
        )


class ChapterResponse(CamelModel):
    book_name: str
    book_short: str
    chapter: int
    version: str
    total_chapters: int
    verses: List[VerseResult]


class BookInfoResponse(CamelModel):
    book_name: str
    book_short: str
    version: str
    total_chapters: int


class HealthResponse(BaseModel):
    status: str
    service: str

