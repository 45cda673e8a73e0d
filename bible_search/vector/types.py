"""
Record types shared by the vector stores and the retrieval pipeline.
"""

import json
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional

import numpy as np


@dataclass(frozen=True)
class RecordMetadata:
    """Closed set of metadata keys a stored embedding may carry."""

    verse_key: Optional[str] = None
    """Unique verse key, "{version}:{book_short}:{chapter}:{verse}" """

    version: Optional[str] = None
    """Bible version tag of the embedded verse"""

    book_short: Optional[str] = None
    """Short book code of the embedded verse"""

    testament: Optional[int] = None
    """1 for the Old Testament, 2 for the New Testament"""

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["RecordMetadata"]:
        """Build metadata from a mapping, ignoring keys outside the recognized set."""
        if not data:
            return None
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class VectorRecord:
    """Represents a stored embedding together with the text it was computed from."""

    id: str
    """Unique identifier for the vector record"""

    text: str
    """The exact text that was embedded"""

    metadata: Optional[RecordMetadata]
    """Additional metadata associated with the vector"""

    vector: np.ndarray
    """The float32 embedding"""


@dataclass
class QueryResult:
    """Represents a search result from vector store."""

    id: str
    """Identifier for the matching record"""

    score: float
    """Cosine similarity of the match"""

    text: str
    """Embedded text of the matching record"""

    metadata: Optional[RecordMetadata]
    """Metadata associated with the matched record"""
