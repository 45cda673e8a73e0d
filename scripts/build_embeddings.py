#!/usr/bin/env python3
"""
Embedding Database Builder
Embeds every verse of the configured Bible documents into a fresh SQLite
embedding database that the search service can load at startup.

Usage:
    python scripts/build_embeddings.py --output ./data/bible-embeddings.db
"""

import argparse
import os
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from bible_search.core import config
from bible_search.core.corpus import BibleCorpus
from bible_search.core.indexer import VerseIndexer
from bible_search.vector.embeddings import EmbeddingError, EmbeddingGateway
from bible_search.vector.index import StorageError
from bible_search.vector.sqlite_store import SqliteVectorStore


def parse_args(argv=None):
    paths = config.get_corpus_paths()
    parser = argparse.ArgumentParser(description="Build the Bible verse embedding database")
    parser.add_argument("--output", default=config.get_db_path(), help="SQLite database to create")
    parser.add_argument("--krv", default=paths["KRV"], help="Korean (KRV) Bible JSON")
    parser.add_argument("--asv", default=paths["ASV"], help="English (ASV) Bible JSON")
    parser.add_argument("--batch-size", type=int, default=config.INDEX_BATCH_SIZE)
    parser.add_argument("--workers", type=int, default=config.INDEX_WORKERS)
    parser.add_argument("--provider", choices=["sentence_transformer", "hash"], default=None,
                        help="Embedding provider (defaults to EMBED_PROVIDER)")
    return parser.parse_args(argv)


def main(argv=None):
    """Build a fresh embedding database from the Bible JSON documents."""
    args = parse_args(argv)
    start_time = time.time()

    print("=" * 60)
    print("Bible Embedding Database Builder")
    print("=" * 60)

    corpus = BibleCorpus.from_paths({"KRV": args.krv, "ASV": args.asv})
    if len(corpus) == 0:
        print("ERROR: No verses loaded. Check the --krv/--asv paths.")
        sys.exit(1)
    print(f"✓ Loaded {len(corpus)} verses")

    output = Path(args.output)
    if output.exists():
        print(f"Deleting existing database: {output}")
        output.unlink()
    for suffix in ("-wal", "-shm"):
        Path(str(output) + suffix).unlink(missing_ok=True)

    def progress(done, total):
        if done == total or done % (args.batch_size * 10) == 0:
            print(f"  ... embedded {done}/{total} verses")

    store = None
    try:
        gateway = EmbeddingGateway(config.get_embedding_provider(args.provider))
        print(f"✓ Embedding dimension: {gateway.dimension}")

        store = SqliteVectorStore(str(output), create=True)
        indexer = VerseIndexer(corpus, store, gateway, batch_size=args.batch_size,
                               workers=args.workers, progress=progress)
        ids = indexer.generate(corpus.all_verses)
        print(f"✓ Stored {len(ids)} embeddings")

        print("Optimizing database...")
        store.optimize()
    except (EmbeddingError, StorageError) as e:
        print(f"ERROR: Build failed: {e}")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()

    elapsed = time.time() - start_time
    size_mb = os.path.getsize(output) / (1024 * 1024)

    print("=" * 60)
    print("Build complete!")
    print(f"  Output:   {output}")
    print(f"  Verses:   {len(corpus)}")
    print(f"  Size:     {size_mb:.2f} MB")
    print(f"  Duration: {elapsed:.1f}s")
    print("=" * 60)


if __name__ == "__main__":
    main()
