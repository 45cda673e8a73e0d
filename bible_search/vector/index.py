"""
Vector store interface, the immutable search cache and the in-memory store.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .similarity import row_norms
from .types import QueryResult, RecordMetadata, VectorRecord


class StorageError(Exception):
    """Raised when the vector store is unreachable, corrupt or given a vector of the wrong size."""
    pass


def as_vector(vector) -> np.ndarray:
    """Coerce a vector-like into a 1-D float32 array."""
    array = np.asarray(vector, dtype=np.float32)
    if array.ndim != 1:
        raise StorageError(f"Expected a 1-D vector, got shape {array.shape}")
    return array


def split_entry(entry) -> Tuple[np.ndarray, str, Optional[RecordMetadata]]:
    """Unpack a bulk entry given as (vector, text) or (vector, text, metadata)."""
    if len(entry) == 2:
        vector, text = entry
        metadata = None
    elif len(entry) == 3:
        vector, text, metadata = entry
    else:
        raise StorageError("Bulk entries must be (vector, text) or (vector, text, metadata)")
    return as_vector(vector), text, metadata


@dataclass(frozen=True)
class CacheSnapshot:
    """Immutable working set searched by the stores.

    Rows are kept in insertion order. Every mutation produces a new
    snapshot, so a reader holding a reference never sees partial state.
    """

    ids: Tuple[str, ...] = ()
    texts: Tuple[str, ...] = ()
    metadata: Tuple[Optional[RecordMetadata], ...] = ()
    matrix: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.float32))
    norms: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    positions: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Sequence[VectorRecord], dimension: Optional[int] = None) -> "CacheSnapshot":
        if not records:
            return cls(matrix=np.zeros((0, dimension or 0), dtype=np.float32))
        matrix = np.vstack([as_vector(r.vector) for r in records]).astype(np.float32)
        return cls(
            ids=tuple(r.id for r in records),
            texts=tuple(r.text for r in records),
            metadata=tuple(r.metadata for r in records),
            matrix=matrix,
            norms=row_norms(matrix),
            positions={r.id: i for i, r in enumerate(records)},
        )

    @property
    def size(self) -> int:
        return len(self.ids)

    @property
    def dimension(self) -> Optional[int]:
        return self.matrix.shape[1] if self.matrix.shape[1] else None

    def records(self) -> List[VectorRecord]:
        return [
            VectorRecord(id=self.ids[i], text=self.texts[i], metadata=self.metadata[i],
                         vector=self.matrix[i].copy())
            for i in range(self.size)
        ]

    def with_records(self, records: Sequence[VectorRecord]) -> "CacheSnapshot":
        """Copy of this snapshot with the records upserted; replaced ids keep their row."""
        ids = list(self.ids)
        texts = list(self.texts)
        metadata = list(self.metadata)
        rows = [self.matrix[i] for i in range(self.size)]
        positions = dict(self.positions)

        for record in records:
            vector = as_vector(record.vector)
            if record.id in positions:
                i = positions[record.id]
                texts[i] = record.text
                metadata[i] = record.metadata
                rows[i] = vector
            else:
                positions[record.id] = len(ids)
                ids.append(record.id)
                texts.append(record.text)
                metadata.append(record.metadata)
                rows.append(vector)

        matrix = np.vstack(rows).astype(np.float32)
        return CacheSnapshot(
            ids=tuple(ids),
            texts=tuple(texts),
            metadata=tuple(metadata),
            matrix=matrix,
            norms=row_norms(matrix),
            positions=positions,
        )

    def search(self, query_vector, max_results: int, min_score: float) -> List[QueryResult]:
        """Exact cosine top-k over every cached row."""
        query = as_vector(query_vector)
        if self.size == 0 or max_results <= 0:
            return []
        if query.shape[0] != self.matrix.shape[1]:
            raise StorageError(
                f"Query dimension {query.shape[0]} does not match store dimension {self.matrix.shape[1]}"
            )

        query_norm = float(np.linalg.norm(query))
        if query_norm == 0:
            scores = np.zeros(self.size, dtype=np.float64)
        else:
            denominators = self.norms.astype(np.float64) * query_norm
            dots = self.matrix.astype(np.float64) @ query.astype(np.float64)
            scores = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators > 0)
            scores = np.clip(scores, -1.0, 1.0)

        candidates = np.nonzero(scores >= min_score)[0]
        # Stable sort keeps insertion order for equal scores
        ranked = candidates[np.argsort(-scores[candidates], kind="stable")][:max_results]

        return [
            QueryResult(id=self.ids[i], score=float(scores[i]), text=self.texts[i], metadata=self.metadata[i])
            for i in ranked
        ]


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    @abstractmethod
    def upsert(self, record_id: str, text: str, metadata: Optional[RecordMetadata], vector) -> None:
        """Insert or replace a single record by id."""
        pass

    @abstractmethod
    def bulk_upsert(self, entries: Sequence[tuple]) -> List[str]:
        """Insert many records atomically and return their generated ids."""
        pass

    @abstractmethod
    def load_cache(self) -> None:
        """Load the durable records into the in-memory working set."""
        pass

    @abstractmethod
    def search(self, query_vector, max_results: int = 5, min_score: float = 0.0) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        pass

    @abstractmethod
    def get_all(self) -> List[VectorRecord]:
        """Every stored record in insertion order."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored vectors."""
        pass

    def is_populated(self) -> bool:
        """True when the store already holds at least one vector."""
        return self.count() > 0

    def close(self) -> None:
        """Release any held resources."""
        pass


class SimpleInMemoryVectorStore(IVectorStore):
    """In-memory implementation of IVectorStore using exact cosine similarity."""

    def __init__(self):
        self._lock = threading.RLock()
        self._cache = CacheSnapshot()

    def _check_dimension(self, vectors: Sequence[np.ndarray]) -> None:
        expected = self._cache.dimension
        for vector in vectors:
            if expected is None:
                expected = vector.shape[0]
            elif vector.shape[0] != expected:
                raise StorageError(f"Vector dimension {vector.shape[0]} does not match store dimension {expected}")

    def upsert(self, record_id: str, text: str, metadata: Optional[RecordMetadata], vector) -> None:
        vector = as_vector(vector)
        with self._lock:
            self._check_dimension([vector])
            record = VectorRecord(id=record_id, text=text, metadata=metadata, vector=vector)
            self._cache = self._cache.with_records([record])

    def bulk_upsert(self, entries: Sequence[tuple]) -> List[str]:
        if not entries:
            return []
        records = []
        for entry in entries:
            vector, text, metadata = split_entry(entry)
            records.append(VectorRecord(id=str(uuid.uuid4()), text=text, metadata=metadata, vector=vector))

        with self._lock:
            self._check_dimension([r.vector for r in records])
            self._cache = self._cache.with_records(records)
        return [r.id for r in records]

    def load_cache(self) -> None:
        # Records only ever live in memory
        pass

    def search(self, query_vector, max_results: int = 5, min_score: float = 0.0) -> List[QueryResult]:
        return self._cache.search(query_vector, max_results, min_score)

    def get_all(self) -> List[VectorRecord]:
        return self._cache.records()

    def count(self) -> int:
        return self._cache.size
