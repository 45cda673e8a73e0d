"""
Runtime configuration. Values come from the environment (optionally a .env file).
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Storage configuration
EMBEDDINGS_DB_PATH = os.getenv("EMBEDDINGS_DB_PATH", "./data/bible-embeddings.db")
SQLITE_ENABLED = os.getenv("SQLITE_ENABLED", "true").lower() == "true"

# Corpus documents
KRV_JSON_PATH = os.getenv("KRV_JSON_PATH", "./data/bible/bible_krv.json")
ASV_JSON_PATH = os.getenv("ASV_JSON_PATH", "./data/bible/bible_asv.json")

# Embedding configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "sentence_transformer")  # sentence_transformer|hash
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "paraphrase-multilingual-MiniLM-L12-v2")
EMBED_DIM = int(os.getenv("EMBED_DIM", "384"))

# Search defaults
CANDIDATE_COUNT = int(os.getenv("CANDIDATE_COUNT", "50"))
RESULT_COUNT = int(os.getenv("RESULT_COUNT", "5"))
MIN_SCORE = float(os.getenv("MIN_SCORE", "0.3"))
CANDIDATE_MIN_SCORE = float(os.getenv("CANDIDATE_MIN_SCORE", "0.1"))

# Indexing job
INDEX_BATCH_SIZE = int(os.getenv("INDEX_BATCH_SIZE", "100"))
INDEX_WORKERS = int(os.getenv("INDEX_WORKERS", "1"))

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Version string
VERSION = "1.0.0"


@dataclass(frozen=True)
class SearchSettings:
    """Snapshot of the search tunables handed to the pipeline components."""

    candidate_count: int = 50
    result_count: int = 5
    min_score: float = 0.3
    candidate_min_score: float = 0.1


def get_search_settings() -> SearchSettings:
    """Read the current search settings from the environment."""
    return SearchSettings(
        candidate_count=int(os.getenv("CANDIDATE_COUNT", str(CANDIDATE_COUNT))),
        result_count=int(os.getenv("RESULT_COUNT", str(RESULT_COUNT))),
        min_score=float(os.getenv("MIN_SCORE", str(MIN_SCORE))),
        candidate_min_score=float(os.getenv("CANDIDATE_MIN_SCORE", str(CANDIDATE_MIN_SCORE))),
    )


def get_corpus_paths():
    """Corpus documents keyed by their default version tag."""
    return {
        "KRV": os.getenv("KRV_JSON_PATH", KRV_JSON_PATH),
        "ASV": os.getenv("ASV_JSON_PATH", ASV_JSON_PATH),
    }


def get_db_path() -> str:
    return os.getenv("EMBEDDINGS_DB_PATH", EMBEDDINGS_DB_PATH)


def get_embedding_provider(provider: str = None):
    """Get the configured embedding provider implementation."""
    provider = provider or os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)

    if provider == "hash":
        from bible_search.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=int(os.getenv("EMBED_DIM", str(EMBED_DIM))))
    elif provider == "sentence_transformer":
        from bible_search.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME))
    else:
        raise ValueError(f"Unknown EMBED_PROVIDER: {provider}")


def get_vector_store(create: bool = False):
    """Get the configured vector store implementation."""
    if not sqlite_enabled():
        from bible_search.vector.index import SimpleInMemoryVectorStore
        return SimpleInMemoryVectorStore()

    from bible_search.vector.sqlite_store import SqliteVectorStore
    db_path = get_db_path()
    # A fresh deployment without a pre-built database generates one on startup
    return SqliteVectorStore(db_path, create=create or not Path(db_path).exists())


def sqlite_enabled():
    """Check if the durable SQLite store is enabled."""
    return os.getenv("SQLITE_ENABLED", "true").lower() == "true"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def validate_search_config():
    """Validate search configuration and return any issues."""
    issues = []
    settings = get_search_settings()

    if settings.candidate_count < 1:
        issues.append("CANDIDATE_COUNT must be at least 1")

    if settings.result_count < 1:
        issues.append("RESULT_COUNT must be at least 1")

    if settings.result_count > settings.candidate_count:
        issues.append("RESULT_COUNT should not exceed CANDIDATE_COUNT")

    if not 0.0 <= settings.min_score <= 1.0:
        issues.append("MIN_SCORE must be between 0 and 1")

    if not 0.0 <= settings.candidate_min_score <= 1.0:
        issues.append("CANDIDATE_MIN_SCORE must be between 0 and 1")

    if os.getenv("EMBED_PROVIDER", EMBED_PROVIDER) not in ("sentence_transformer", "hash"):
        issues.append("EMBED_PROVIDER must be 'sentence_transformer' or 'hash'")

    return issues
