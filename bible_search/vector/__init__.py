"""
Vector storage and embedding layer: stores, record types and embedding providers.
"""

# Package initialization for vector module
from .index import IVectorStore, SimpleInMemoryVectorStore, StorageError
from .sqlite_store import SqliteVectorStore
from .types import VectorRecord, QueryResult, RecordMetadata
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    EmbeddingGateway,
    EmbeddingError
)

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'SqliteVectorStore',
    'StorageError',
    'VectorRecord',
    'QueryResult',
    'RecordMetadata',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'EmbeddingGateway',
    'EmbeddingError'
]
