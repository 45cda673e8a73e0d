"""
Structured logging for the search pipeline, the vector store and the indexing job.
"""

import logging
from typing import Any, Dict, Optional


class StructuredLogger:
    """Structured logger for store, index, classification and search operations."""

    def __init__(self, name: str = "bible_search"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_debug(self, enabled: bool) -> None:
        """Switch between DEBUG and INFO levels."""
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_store_operation(self, operation: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector store operation."""
        self.log_operation(f"store.{operation}", status, details)

    def log_index_build(self, mode: str, verse_count: int, duration_ms: float, status: str = "success"):
        """Log the outcome of an indexing run."""
        log_details = {
            "mode": mode,
            "verse_count": verse_count,
            "duration_ms": round(duration_ms, 2)
        }
        self.log_operation("index.build", status, log_details)

    def log_classification(self, classifier: str, query: str, result: str, details: Dict[str, Any] = None):
        """Log a classifier decision for a query."""
        log_details = {
            "query": query[:50] + "..." if len(query) > 50 else query,
            "result": result
        }
        if details:
            log_details.update(details)

        self.log_operation(f"classify.{classifier}", "success", log_details)

    def log_search(self, query: str, method: Optional[str], result_count: int, duration_ms: float,
                   context: Optional[str] = None, status: str = "success", error: Optional[str] = None):
        """Log a completed (or failed) search request."""
        log_details = {
            "query": query[:50] + "..." if query and len(query) > 50 else query,
            "method": method,
            "results": result_count,
            "duration_ms": round(duration_ms, 2),
            "context": context or "none"
        }
        if error:
            log_details["error"] = error[:100]

        self.log_operation("search", status, log_details)

    def log_data_integrity(self, stored_text: str, reason: str):
        """Log a stored record that cannot be resolved to a verse."""
        log_details = {
            "text": stored_text[:50] + "..." if len(stored_text) > 50 else stored_text,
            "reason": reason
        }
        self.logger.warning(f"Operation: data_integrity, Status: dropped, Details: {log_details}")

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
