"""
Embedding providers and the gateway the search pipeline calls through.
"""

from abc import ABC, abstractmethod
import hashlib
import re
from typing import List, Optional

import numpy as np
from sentence_transformers import SentenceTransformer


class EmbeddingError(Exception):
    """Raised when the embedding provider fails or returns a vector of the wrong size."""
    pass


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    def embed_batch(self, texts: List[str]) -> list[list[float]]:
        """Generate embedding vectors for several texts, in order."""
        return [self.embed_text(text) for text in texts]

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


TOKEN_PATTERN = re.compile(r"\w+")


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic token-hashing embedding provider.

    Each lower-cased word token is hashed with md5 into one of ``dimension``
    buckets with a +1/-1 sign, and the resulting bag-of-words vector is
    L2-normalized. Texts sharing words get positive cosine similarity, which
    makes the provider usable offline and in tests without model weights.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector from the text's tokens."""
        vector = np.zeros(self.dimension, dtype=np.float64)

        for token in TOKEN_PATTERN.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm

        return vector.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Defaults to the multilingual MiniLM model so Korean and English verses
    share one embedding space.
    """

    def __init__(self, model_name: str = "paraphrase-multilingual-MiniLM-L12-v2", batch_size: int = 64):
        self.model_name = model_name
        self.batch_size = batch_size
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False, normalize_embeddings=True)
        return embedding.tolist()

    def embed_batch(self, texts: List[str]) -> list[list[float]]:
        embeddings = self.model.encode(
            texts,
            batch_size=self.batch_size,
            convert_to_tensor=False,
            normalize_embeddings=True
        )
        return [e.tolist() for e in embeddings]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
            if self._dimension is None:
                # Get dimension by encoding a dummy string
                dummy_embedding = self.model.encode("test", convert_to_tensor=False)
                self._dimension = len(dummy_embedding)
        return self._dimension


class EmbeddingGateway:
    """
    Synchronous embed / embed_batch front for an embedding provider.

    Every vector is checked against the fixed dimension, and any provider
    failure surfaces as EmbeddingError. Calls are never retried.
    """

    def __init__(self, provider: IEmbeddingProvider, dimension: Optional[int] = None):
        """
        Initialize the gateway.

        Args:
            provider: Embedding provider to call
            dimension: Expected vector size, defaults to the provider's
        """
        self.provider = provider
        try:
            self.dimension = dimension or provider.get_dimension()
        except Exception as e:
            raise EmbeddingError(f"Embedding provider unavailable: {e}") from e

    def _check(self, vector) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float32)
        if array.ndim != 1 or array.shape[0] != self.dimension:
            raise EmbeddingError(
                f"Embedding provider returned shape {array.shape}, expected ({self.dimension},)"
            )
        return array

    def embed(self, text: str) -> np.ndarray:
        """Embed one text into a float32 vector."""
        try:
            vector = self.provider.embed_text(text)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding failed: {e}") from e
        return self._check(vector)

    def embed_batch(self, texts: List[str]) -> List[np.ndarray]:
        """
        Embed multiple texts into vectors.

        Args:
            texts: List of text strings to embed

        Returns:
            One float32 vector per input text, in input order
        """
        if not texts:
            return []
        try:
            vectors = self.provider.embed_batch(list(texts))
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Batch embedding failed: {e}") from e
        if len(vectors) != len(texts):
            raise EmbeddingError(f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts")
        return [self._check(v) for v in vectors]
