"""
Indexing job: embeds the corpus into the vector store, or reuses a pre-built
store, and builds the embedded-text to verse-key lookup the retriever needs.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

import numpy as np

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGateway
from ..vector.index import IVectorStore
from ..vector.types import RecordMetadata
from .corpus import BibleCorpus, Verse

ProgressCallback = Callable[[int, int], None]


def verse_metadata(verse: Verse) -> RecordMetadata:
    return RecordMetadata(
        verse_key=verse.key,
        version=verse.version,
        book_short=verse.book_short,
        testament=verse.testament
    )


class VerseIndexer:
    """Populates a vector store from a corpus. Errors propagate: a half-built index is never served."""

    def __init__(self, corpus: BibleCorpus, store: IVectorStore, gateway: EmbeddingGateway,
                 batch_size: int = 100, workers: int = 1, progress: Optional[ProgressCallback] = None):
        self.corpus = corpus
        self.store = store
        self.gateway = gateway
        self.batch_size = max(1, batch_size)
        self.workers = max(1, workers)
        self.progress = progress
        self.lookup: Dict[str, str] = {}
        self.index_mode: Optional[str] = None

    def build_lookup(self) -> Dict[str, str]:
        """Map every verse's embedding text to its key."""
        self.lookup.clear()
        for verse in self.corpus.all_verses:
            self.lookup[verse.embedding_text] = verse.key
        return self.lookup

    def ensure_index(self) -> str:
        """
        Make sure the store holds the corpus embeddings.

        Returns:
            "preloaded" when the store was already populated, "generated" when
            the corpus was embedded and written, "empty" when there is nothing to index
        """
        start_time = time.time()
        verses = self.corpus.all_verses

        if not verses:
            logger.warning("No verses to index!")
            self.index_mode = "empty"
            return self.index_mode

        if self.store.is_populated():
            logger.info("Embeddings already present in the store, building lookup map...")
            self.build_lookup()
            self.index_mode = "preloaded"
        else:
            self.generate(verses)
            self.index_mode = "generated"

        logger.log_index_build(self.index_mode, len(self.lookup), (time.time() - start_time) * 1000)
        return self.index_mode

    def generate(self, verses: List[Verse]) -> List[str]:
        """Embed the verses and write them with one atomic bulk upsert."""
        logger.info(f"Generating embeddings for {len(verses)} verses (this may take a few minutes)...")
        vectors = self.embed_verses(verses)

        entries = [(vector, verse.embedding_text, verse_metadata(verse)) for verse, vector in zip(verses, vectors)]
        ids = self.store.bulk_upsert(entries)

        self.build_lookup()
        logger.info(f"Indexed {len(ids)} verses into the embedding store")
        return ids

    def embed_verses(self, verses: List[Verse]) -> List[np.ndarray]:
        """Embed verse texts batch by batch, preserving input order."""
        texts = [verse.embedding_text for verse in verses]
        batches = [texts[i:i + self.batch_size] for i in range(0, len(texts), self.batch_size)]
        total = len(texts)
        vectors: List[np.ndarray] = []

        if self.workers == 1:
            for batch in batches:
                vectors.extend(self.gateway.embed_batch(batch))
                self._report(len(vectors), total)
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                # map() yields results in submission order
                for batch_vectors in executor.map(self.gateway.embed_batch, batches):
                    vectors.extend(batch_vectors)
                    self._report(len(vectors), total)

        return vectors

    def _report(self, done: int, total: int) -> None:
        if self.progress is not None:
            self.progress(done, total)
