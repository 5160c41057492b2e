import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEMO_CORPUS = Path(__file__).parent / "data" / "demo_sentences.json"


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def _build_embedder(settings: Settings):
    provider = settings.active_embedding_provider
    if provider == "sentence-transformers":
        from .infrastructure.embeddings.sentence_transformer import (
            SentenceTransformerEmbedder,
        )

        return SentenceTransformerEmbedder(settings.embedding_model)

    from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder

    return OpenAIEmbedder(
        base_url=settings.embedding_base_url,
        model=settings.embedding_model,
        dimensions=settings.embedding_dimensions,
        api_key=settings.openai_api_key,
    )


def _build_vector_store(settings: Settings):
    if settings.vector_store_provider == "chroma":
        from .infrastructure.vector_stores.chroma_store import ChromaVectorStore

        return ChromaVectorStore(host=settings.chroma_host, port=settings.chroma_port)

    from .infrastructure.vector_stores.in_memory_store import InMemoryVectorStore

    return InMemoryVectorStore()


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.reranker import RerankerProtocol
    from .core.protocols.tokenizer import TokenCounterProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.chunker import DocumentChunker
    from .core.services.demo_search_service import DemoSearchService
    from .core.services.ingest_service import IngestService
    from .core.services.orchestrator import RagOrchestrator
    from .core.services.query_rewriter import QueryRewriter
    from .core.services.reranker import LLMReranker
    from .core.services.search_service import SearchService
    from .core.services.visualization_service import VisualizationService
    from .core.state import CollectionRegistry, RagState
    from .infrastructure.llm.openai_client import OpenAIChatClient
    from .infrastructure.tokenizers.tiktoken_counter import TiktokenCounter

    container.register(
        RagState,
        lambda: RagState(collections=CollectionRegistry(settings.collection_prefix)),
        singleton=True,
    )

    container.register(EmbedderProtocol, lambda: _build_embedder(settings), singleton=True)

    container.register(VectorStoreProtocol, lambda: _build_vector_store(settings), singleton=True)

    container.register(
        LLMProtocol,
        lambda: OpenAIChatClient(
            base_url=settings.llm_base_url,
            model=settings.chat_model,
            api_key=settings.openai_api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        ),
        singleton=True,
    )

    container.register(
        RerankerProtocol,
        lambda: LLMReranker(container.resolve(LLMProtocol)),
        singleton=True,
    )

    container.register(
        TokenCounterProtocol,
        lambda: TiktokenCounter(settings.tokenizer_model),
        singleton=True,
    )

    container.register(
        DocumentChunker,
        lambda: DocumentChunker(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            strategy=settings.chunking_strategy,
            target_size=settings.semantic_target_size,
        ),
        singleton=True,
    )

    container.register(
        QueryRewriter,
        lambda: QueryRewriter(container.resolve(LLMProtocol), domain=settings.rewrite_domain),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            embedder=container.resolve(EmbedderProtocol),
            rewriter=container.resolve(QueryRewriter),
            reranker=container.resolve(RerankerProtocol),
            vector_weight=settings.hybrid_vector_weight,
            keyword_weight=settings.hybrid_keyword_weight,
            content_weight=settings.multi_vector_content_weight,
            tag_weight=settings.multi_vector_tag_weight,
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            chunker=container.resolve(DocumentChunker),
            state=container.resolve(RagState),
            docs_path=settings.docs_path,
        ),
        singleton=True,
    )

    container.register(
        RagOrchestrator,
        lambda: RagOrchestrator(
            search_service=container.resolve(SearchService),
            llm=container.resolve(LLMProtocol),
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            state=container.resolve(RagState),
            token_counter=container.resolve(TokenCounterProtocol),
            top_k=settings.rag_top_k,
            min_score=settings.rag_min_score,
            candidate_pool_size=settings.rag_candidate_pool,
            ef_search=settings.hnsw_ef_search,
            max_context_tokens=settings.max_context_tokens,
        ),
        singleton=True,
    )

    container.register(
        DemoSearchService,
        lambda: DemoSearchService(
            embedder=container.resolve(EmbedderProtocol),
            search_service=container.resolve(SearchService),
            cache=container.resolve(RagState).embeddings,
            corpus_path=settings.demo_corpus_path or DEFAULT_DEMO_CORPUS,
        ),
        singleton=True,
    )

    container.register(
        VisualizationService,
        lambda: VisualizationService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            search_service=container.resolve(SearchService),
            state=container.resolve(RagState),
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
