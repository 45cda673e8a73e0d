"""
SQLite-backed vector store. The durable copy lives in a single database file;
searches run against an in-memory snapshot loaded once from it.
"""

import json
import sqlite3
import threading
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from .index import CacheSnapshot, IVectorStore, StorageError, as_vector, split_entry
from .types import QueryResult, RecordMetadata, VectorRecord
from ..util.logging import logger

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS embeddings (
        id TEXT PRIMARY KEY,
        text TEXT NOT NULL,
        metadata TEXT,
        embedding BLOB NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS store_meta (
        key TEXT PRIMARY KEY,
        value TEXT
    )
    """,
]

UPSERT_SQL = """
    INSERT INTO embeddings (id, text, metadata, embedding) VALUES (?, ?, ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        text = excluded.text,
        metadata = excluded.metadata,
        embedding = excluded.embedding
"""


def encode_vector(vector: np.ndarray) -> bytes:
    """Serialize a vector as little-endian float32."""
    return np.asarray(vector, dtype="<f4").tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype="<f4").astype(np.float32)


def decode_metadata(raw: Optional[str]) -> Optional[RecordMetadata]:
    """Parse stored metadata; anything that is not a JSON object is ignored."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return RecordMetadata.from_dict(data)


class SqliteVectorStore(IVectorStore):
    """Durable vector store over one SQLite file with an in-memory search cache."""

    def __init__(self, db_path: str, create: bool = False):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self._cache: Optional[CacheSnapshot] = None
        self._conn: Optional[sqlite3.Connection] = None

        if not self.db_path.exists():
            if not create:
                raise StorageError(f"Embedding database not found: {self.db_path}")
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA busy_timeout=30000")
            self._init_schema(create)
            self._dimension = self._read_dimension()
        except sqlite3.Error as e:
            self.close()
            raise StorageError(f"Cannot open embedding database {self.db_path}: {e}") from e
        except StorageError:
            self.close()
            raise

        logger.log_store_operation("open", {"path": str(self.db_path), "dimension": self._dimension})

    def _init_schema(self, create: bool) -> None:
        tables = {row[0] for row in self._conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
        if "embeddings" not in tables and not create:
            raise StorageError(f"No embeddings table in {self.db_path}")
        with self._conn:
            for statement in SCHEMA:
                self._conn.execute(statement)

    def _read_dimension(self) -> Optional[int]:
        row = self._conn.execute("SELECT value FROM store_meta WHERE key = 'dimension'").fetchone()
        if row is not None:
            return int(row[0])
        # Databases built without store_meta: infer from the first blob
        row = self._conn.execute("SELECT length(embedding) FROM embeddings ORDER BY rowid LIMIT 1").fetchone()
        if row is not None and row[0]:
            return row[0] // 4
        return None

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError(f"Embedding database {self.db_path} is closed")
        return self._conn

    @contextmanager
    def _transaction(self):
        """Run a block in a single transaction, committed on success and rolled back on error."""
        conn = self._connection()
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Write to {self.db_path} failed: {e}") from e

    def _check_dimension(self, vectors: Sequence[np.ndarray]) -> Optional[int]:
        """Return the dimension newly established by these vectors, if the store had none."""
        expected = self._dimension
        for vector in vectors:
            if expected is None:
                expected = vector.shape[0]
            elif vector.shape[0] != expected:
                raise StorageError(f"Vector dimension {vector.shape[0]} does not match store dimension {expected}")
        return expected if self._dimension is None else None

    def upsert(self, record_id: str, text: str, metadata: Optional[RecordMetadata], vector) -> None:
        vector = as_vector(vector)
        record = VectorRecord(id=record_id, text=text, metadata=metadata, vector=vector)
        with self._lock:
            self._write([record])
        logger.log_store_operation("upsert", {"record_id": record_id})

    def bulk_upsert(self, entries: Sequence[tuple]) -> List[str]:
        if not entries:
            return []
        records = []
        for entry in entries:
            vector, text, metadata = split_entry(entry)
            records.append(VectorRecord(id=str(uuid.uuid4()), text=text, metadata=metadata, vector=vector))

        start_time = time.time()
        with self._lock:
            self._write(records)
        logger.log_store_operation("bulk_upsert", {
            "count": len(records),
            "duration_ms": round((time.time() - start_time) * 1000, 2)
        })
        return [r.id for r in records]

    def _write(self, records: List[VectorRecord]) -> None:
        """Persist records in one transaction, then publish them to the cache."""
        new_dimension = self._check_dimension([r.vector for r in records])
        rows = [
            (r.id, r.text, r.metadata.to_json() if r.metadata else None, encode_vector(r.vector))
            for r in records
        ]
        with self._transaction() as conn:
            if new_dimension is not None:
                conn.execute(
                    "INSERT OR REPLACE INTO store_meta (key, value) VALUES ('dimension', ?)",
                    (str(new_dimension),)
                )
            conn.executemany(UPSERT_SQL, rows)

        if new_dimension is not None:
            self._dimension = new_dimension
        if self._cache is not None:
            self._cache = self._cache.with_records(records)

    def _read_records(self) -> List[VectorRecord]:
        try:
            rows = self._connection().execute(
                "SELECT id, text, metadata, embedding FROM embeddings ORDER BY rowid"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Read from {self.db_path} failed: {e}") from e

        records = []
        for record_id, text, raw_metadata, blob in rows:
            if len(blob) % 4 or (self._dimension is not None and len(blob) // 4 != self._dimension):
                raise StorageError(
                    f"Record {record_id} has a {len(blob)}-byte embedding; expected {self._dimension} float32 values"
                )
            records.append(VectorRecord(
                id=record_id,
                text=text,
                metadata=decode_metadata(raw_metadata),
                vector=decode_vector(blob)
            ))
        return records

    def load_cache(self) -> None:
        with self._lock:
            if self._cache is not None:
                return
            start_time = time.time()
            records = self._read_records()
            self._cache = CacheSnapshot.from_records(records, self._dimension)
        logger.log_store_operation("load_cache", {
            "count": len(records),
            "duration_ms": round((time.time() - start_time) * 1000, 2)
        })

    @property
    def cache_loaded(self) -> bool:
        return self._cache is not None

    def search(self, query_vector, max_results: int = 5, min_score: float = 0.0) -> List[QueryResult]:
        if self._cache is None:
            self.load_cache()
        snapshot = self._cache
        query = as_vector(query_vector)
        if self._dimension is not None and query.shape[0] != self._dimension:
            raise StorageError(
                f"Query dimension {query.shape[0]} does not match store dimension {self._dimension}"
            )
        return snapshot.search(query, max_results, min_score)

    def get_all(self) -> List[VectorRecord]:
        snapshot = self._cache
        if snapshot is not None:
            return snapshot.records()
        with self._lock:
            return self._read_records()

    def count(self) -> int:
        snapshot = self._cache
        if snapshot is not None:
            return snapshot.size
        try:
            with self._lock:
                return self._connection().execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Count on {self.db_path} failed: {e}") from e

    def optimize(self) -> None:
        """Run PRAGMA optimize and VACUUM; intended after a bulk build."""
        with self._lock:
            try:
                conn = self._connection()
                conn.execute("PRAGMA optimize")
                conn.execute("VACUUM")
                logger.log_store_operation("optimize", {"path": str(self.db_path)})
            except sqlite3.Error as e:
                logger.warning(f"Database optimization failed for {self.db_path}: {e}")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
