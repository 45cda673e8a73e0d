"""
HTTP API: verse search plus chapter and book reading endpoints.
"""

import threading
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .schemas import (
    BookInfoResponse,
    ChapterResponse,
    HealthResponse,
    SearchRequest,
    SearchResult,
)
from ..core.config import VERSION, debug_enabled
from ..core.search_service import BibleSearchService
from ..util.logging import logger


def _bad_request(message: str) -> JSONResponse:
    body = SearchResult.failure(None, message).model_dump(by_alias=True)
    return JSONResponse(status_code=400, content=body)


def create_app(service: BibleSearchService = None) -> FastAPI:
    """Build the FastAPI app. Without a service, one is built from configuration on first use."""
    app = FastAPI(
        title="Bible Search API",
        version=VERSION,
        description="Two-stage semantic search over the Korean and English Bible",
        docs_url="/docs" if debug_enabled() else None,
        redoc_url="/redoc" if debug_enabled() else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.search_service = service
    service_lock = threading.Lock()

    def get_service(request: Request) -> BibleSearchService:
        if request.app.state.search_service is None:
            with service_lock:
                if request.app.state.search_service is None:
                    from ..core.bootstrap import build_search_service
                    request.app.state.search_service = build_search_service()
        return request.app.state.search_service

    @app.post("/api/search", response_model=SearchResult)
    def search(req: SearchRequest, request: Request):
        """Search verses. Body: {"query", "maxResults", "minScore", "version"}."""
        logger.info(f"Search request: query='{req.query}', maxResults={req.max_results}, "
                    f"minScore={req.min_score}, version={req.version}")
        if req.query is None or not req.query.strip():
            return _bad_request("Query cannot be empty")

        return get_service(request).search(req.query, req.max_results, req.min_score, req.version)

    @app.get("/api/search", response_model=SearchResult)
    def search_get(request: Request, q: Optional[str] = None,
                   max_results: int = Query(5, alias="max"),
                   min_score: float = Query(0.3, alias="min"),
                   version: Optional[str] = None):
        """Quick search: /api/search?q=love&max=5&version=ASV"""
        if q is None or not q.strip():
            return _bad_request("Query parameter 'q' is required")

        return get_service(request).search(q, max_results, min_score, version)

    @app.get("/api/search/stats")
    def stats(request: Request) -> Dict[str, Any]:
        return get_service(request).stats()

    @app.get("/api/search/health", response_model=HealthResponse)
    def health():
        return HealthResponse(status="ok", service="bible-search")

    @app.get("/api/bible/{book_short}/{chapter}", response_model=ChapterResponse)
    def read_chapter(book_short: str, chapter: int, request: Request, version: Optional[str] = None):
        """All verses of one chapter, in verse order."""
        corpus = get_service(request).corpus
        verses = corpus.get_chapter_verses(book_short, chapter, version)
        if not verses:
            raise HTTPException(status_code=404, detail="Chapter not found")

        first = verses[0]
        book_info = corpus.get_book_info(book_short, version)
        return ChapterResponse(
            book_name=first.book_name,
            book_short=first.book_short,
            chapter=chapter,
            version=first.version,
            total_chapters=book_info.get("totalChapters", 0),
            verses=[corpus.to_verse_result(v, 1.0) for v in verses]
        )

    @app.get("/api/bible/{book_short}", response_model=BookInfoResponse)
    def book_info(book_short: str, request: Request, version: Optional[str] = None):
        info = get_service(request).corpus.get_book_info(book_short, version)
        if not info:
            raise HTTPException(status_code=404, detail="Book not found")

        return BookInfoResponse(
            book_name=info["bookName"],
            book_short=info["bookShort"],
            version=info["version"],
            total_chapters=info["totalChapters"]
        )

    return app


app = create_app()


def run():
    """Serve the API with uvicorn."""
    import uvicorn
    uvicorn.run("bible_search.api.main:app", host="0.0.0.0", port=8080)
