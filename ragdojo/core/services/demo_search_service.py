"""Demo search - standard vs. enhanced retrieval over a tagged sentence corpus."""

import asyncio
import json
import logging
import time
from pathlib import Path

from ..errors import InvalidInputError, NotFoundError, UpstreamUnavailableError
from ..models.document import CorpusItem
from ..models.search import (
    DemoCorpus,
    DemoScenario,
    DemoSentence,
    DemoStatus,
    SearchEnhancements,
    SearchRequest,
    SearchResponse,
)
from ..protocols.embedder import EmbedderProtocol
from ..state import EmbeddingCache
from ..strategies.pruning import InMemoryCorpusSource
from .search_service import SearchService

logger = logging.getLogger(__name__)

CONTENT = "content"
TAGS = "tags"
CONTEXTUAL = "contextual"


def load_corpus(path: str | Path) -> DemoCorpus:
    """Read the demo corpus JSON file.

    Args:
        path: File with ``description``, ``sentences`` and ``demoScenarios``.

    Returns:
        Parsed corpus.

    Raises:
        NotFoundError: File does not exist.
        InvalidInputError: File is not a valid corpus.
    """
    corpus_path = Path(path)
    if not corpus_path.exists():
        raise NotFoundError(f"Demo corpus not found: {corpus_path}")

    try:
        data = json.loads(corpus_path.read_text(encoding="utf-8"))
        sentences = [
            DemoSentence(
                id=str(s["id"]),
                text=s["text"],
                category=s.get("category", ""),
                tags=tuple(s.get("tags", [])),
            )
            for s in data.get("sentences", [])
        ]
        scenarios = [
            DemoScenario(
                name=s["name"],
                query=s["query"],
                expected_match=s.get("expectedMatch", ""),
                explanation=s.get("explanation", ""),
            )
            for s in data.get("demoScenarios", [])
        ]
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidInputError(f"Invalid demo corpus {corpus_path}: {e}") from e

    return DemoCorpus(
        description=data.get("description", ""),
        sentences=sentences,
        scenarios=scenarios,
    )


class DemoSearchService:
    """Side-by-side comparison of plain vector search and the enhanced pipeline."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        search_service: SearchService,
        cache: EmbeddingCache,
        corpus_path: str | Path,
    ):
        self._embedder = embedder
        self._search = search_service
        self._cache = cache
        self._corpus_path = Path(corpus_path)
        self._corpus: DemoCorpus | None = None
        self._init_lock = asyncio.Lock()

    @property
    def corpus(self) -> DemoCorpus:
        if self._corpus is None:
            self._corpus = load_corpus(self._corpus_path)
        return self._corpus

    @property
    def scenarios(self) -> list[DemoScenario]:
        return self.corpus.scenarios

    @property
    def is_initialized(self) -> bool:
        return self._cache.has(self._embedder.model_name, CONTENT)

    async def initialize(self) -> DemoStatus:
        """Embed content, tag and contextual text of every sentence.

        Vectors are cached per embedding model; a second call with the same
        model is a no-op.

        Raises:
            UpstreamUnavailableError: Embedding provider failed.
        """
        model = self._embedder.model_name
        async with self._init_lock:
            if self.is_initialized:
                return self.status()

            sentences = self.corpus.sentences
            logger.info(f"Embedding {len(sentences)} demo sentences with {model}")
            started = time.perf_counter()

            try:
                content, tags, contextual = await asyncio.gather(
                    self._embedder.embed_batch([s.text for s in sentences]),
                    self._embedder.embed_batch([s.tag_text for s in sentences]),
                    self._embedder.embed_batch([s.contextual_text for s in sentences]),
                )
            except UpstreamUnavailableError:
                raise
            except Exception as e:
                raise UpstreamUnavailableError("embedding", str(e)) from e

            ids = [s.id for s in sentences]
            self._cache.put(model, TAGS, dict(zip(ids, tags)))
            self._cache.put(model, CONTEXTUAL, dict(zip(ids, contextual)))
            # Content last: its presence marks the corpus as initialized.
            self._cache.put(model, CONTENT, dict(zip(ids, content)))

            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.info(f"Demo corpus embedded in {elapsed_ms}ms")
        return self.status()

    def status(self) -> DemoStatus:
        model = self._embedder.model_name
        if not self.is_initialized:
            return DemoStatus(is_initialized=False, embedded_sentence_count=0, embedding_model=None)
        return DemoStatus(
            is_initialized=True,
            embedded_sentence_count=len(self._cache.get(model, CONTENT)),
            embedding_model=model,
        )

    def _items(self, contextual: bool, with_tags: bool) -> list[CorpusItem]:
        model = self._embedder.model_name
        vectors = self._cache.get(model, CONTEXTUAL if contextual else CONTENT)
        tag_vectors = self._cache.get(model, TAGS) if with_tags else {}

        return [
            CorpusItem(
                id=s.id,
                text=s.text,
                source_label=s.category,
                tags=s.tags,
                embedding=vectors.get(s.id),
                tag_embedding=tag_vectors.get(s.id),
            )
            for s in self.corpus.sentences
        ]

    async def search(self, request: SearchRequest) -> SearchResponse:
        """Run standard and, when requested, enhanced search for one query.

        Args:
            request: Query, optional enhancements, top_k and min_score.

        Returns:
            Both result sets; ``enhanced_results`` is None when no
            enhancement is enabled.

        Raises:
            InvalidInputError: Invalid request or corpus not initialized.
            UpstreamUnavailableError: Embedding provider failed.
        """
        request.validate()
        if not self.is_initialized:
            raise InvalidInputError("Demo corpus is not initialized. Call initialize first.")

        enhancements = request.enhancements or SearchEnhancements()
        logger.info(f"Demo search: '{request.query}' (enhanced: {enhancements.any_enabled})")

        standard_source = InMemoryCorpusSource(self._items(contextual=False, with_tags=False))
        started = time.perf_counter()
        standard = await self._search.search(
            request.query,
            standard_source,
            enhancements=SearchEnhancements(candidate_pool_size=enhancements.candidate_pool_size),
            top_k=request.top_k,
            min_score=request.min_score,
        )
        standard_results = standard.to_result_set(int((time.perf_counter() - started) * 1000))

        enhanced_results = None
        if enhancements.any_enabled:
            enhanced_source = InMemoryCorpusSource(
                self._items(
                    contextual=enhancements.use_contextual_embeddings,
                    with_tags=enhancements.use_multi_vector_search,
                )
            )
            started = time.perf_counter()
            enhanced = await self._search.search(
                request.query,
                enhanced_source,
                enhancements=enhancements,
                top_k=request.top_k,
                min_score=request.min_score,
            )
            enhanced_results = enhanced.to_result_set(int((time.perf_counter() - started) * 1000))

        return SearchResponse(
            standard_results=standard_results,
            enhanced_results=enhanced_results,
            original_query=request.query,
            applied_enhancements=enhancements,
        )
