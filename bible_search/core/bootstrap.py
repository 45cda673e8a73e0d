"""
Composition root: wires corpus, store, embeddings, classifiers and the
search service together from configuration.
"""

import time

from ..util.logging import logger
from ..vector.embeddings import EmbeddingGateway, IEmbeddingProvider
from ..vector.index import IVectorStore
from . import config
from .context_classifier import ContextClassifier
from .corpus import BibleCorpus
from .indexer import VerseIndexer
from .intent_classifier import IntentClassifier
from .search_service import BibleSearchService


def build_search_service(corpus: BibleCorpus = None, store: IVectorStore = None,
                         provider: IEmbeddingProvider = None, settings: config.SearchSettings = None
                         ) -> BibleSearchService:
    """Build a ready-to-query search service; anything not passed in comes from configuration."""
    start_time = time.time()
    logger.set_debug(config.debug_enabled())

    for issue in config.validate_search_config():
        logger.warning(f"Configuration issue: {issue}")

    settings = settings or config.get_search_settings()
    corpus = corpus if corpus is not None else BibleCorpus.from_paths(config.get_corpus_paths())
    store = store if store is not None else config.get_vector_store()
    gateway = EmbeddingGateway(provider or config.get_embedding_provider())

    indexer = VerseIndexer(
        corpus, store, gateway,
        batch_size=config.INDEX_BATCH_SIZE,
        workers=config.INDEX_WORKERS
    )
    index_mode = indexer.ensure_index()
    store.load_cache()

    service = BibleSearchService(
        corpus=corpus,
        store=store,
        gateway=gateway,
        intent_classifier=IntentClassifier(gateway),
        context_classifier=ContextClassifier(gateway),
        lookup=indexer.lookup,
        settings=settings,
        index_mode=index_mode
    )

    logger.info(f"Search service ready in {round((time.time() - start_time) * 1000)}ms "
                f"({len(indexer.lookup)} verses, index {index_mode})")
    return service
