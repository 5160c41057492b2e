import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ragdojo.config.settings import settings
from ragdojo.container import configure_container, container
from ragdojo.core.errors import InvalidInputError, NotFoundError, RagError
from ragdojo.core.models.chat import ChatRequest
from ragdojo.core.models.search import SearchEnhancements, SearchRequest, SearchResultSet
from ragdojo.core.services.demo_search_service import DemoSearchService
from ragdojo.core.services.ingest_service import IngestService
from ragdojo.core.services.orchestrator import RagOrchestrator

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def enhancements_from_args(args: argparse.Namespace) -> SearchEnhancements:
    return SearchEnhancements(
        use_hybrid_search=args.hybrid,
        use_query_expansion=args.expand,
        use_reranking=args.rerank,
        use_hyde=args.hyde,
        use_multi_vector_search=getattr(args, "multi_vector", False),
        use_contextual_embeddings=getattr(args, "contextual", False),
        use_hnsw_approximate=args.approx,
        hnsw_ef_search=args.ef_search,
        candidate_pool_size=args.pool,
    )


async def ingest_path(path: Path) -> int:
    """Ingest a single file or every supported file in a folder."""
    ingest_service = container.resolve(IngestService)

    if path.is_dir():
        results = await ingest_service.ingest_directory(path)
        return sum(r.chunks_created for r in results)

    if not path.exists():
        raise NotFoundError(f"Path not found: {path}")
    if not ingest_service.loader.supports(path):
        raise InvalidInputError(f"Unsupported file type: {path.suffix}")

    content = ingest_service.loader.load(path)
    if content is None:
        raise InvalidInputError(f"Could not read {path.name}")
    result = await ingest_service.ingest(path.name, content)
    return result.chunks_created


async def cmd_ingest(args: argparse.Namespace) -> None:
    """Ingest command - chunk, embed and index documents."""
    count = await ingest_path(Path(args.path))
    logger.info(f"Indexed {count} chunks")


async def _ingest_docs(docs: str) -> None:
    # The in-memory store lives only as long as this process.
    path = Path(docs)
    if path.exists():
        await ingest_path(path)
    else:
        logger.warning(f"Docs path not found, answering without documents: {path}")


async def cmd_chat(args: argparse.Namespace) -> None:
    """Chat command - answer one question from the documents."""
    await _ingest_docs(args.docs)

    orchestrator = container.resolve(RagOrchestrator)
    response = await orchestrator.chat(
        ChatRequest(
            message=args.message,
            include_debug_info=args.debug,
            enhancements=enhancements_from_args(args),
            top_k=args.top_k,
        )
    )

    print(response.answer)
    print()
    for chunk in response.retrieved_chunks:
        print(f"  [{chunk.relevance_score:.4f}] {chunk.source_file_name} #{chunk.chunk_index}")

    if response.expanded_query:
        print(f"\nExpanded query: {response.expanded_query}")
    if response.hypothetical_document:
        print(f"HyDE document: {response.hypothetical_document}")

    if response.token_usage:
        usage = response.token_usage
        print(
            f"\nTokens: {usage.total_input_tokens}/{usage.max_context_tokens} "
            f"({usage.usage_percentage}%)"
        )
    if response.metrics:
        metrics = response.metrics
        print(f"Stages: {' → '.join(s.value for s in metrics.stages)}")
        print(
            f"Timing: embed {metrics.embedding_time_ms}ms, search {metrics.search_time_ms}ms, "
            f"rerank {metrics.rerank_time_ms}ms, generate {metrics.generation_time_ms}ms, "
            f"total {metrics.total_time_ms}ms"
        )


def _print_results(title: str, result_set: SearchResultSet) -> None:
    print(f"{title} ({result_set.elapsed_ms}ms)")
    if not result_set.results:
        print("  (no results)")
    for result in result_set.results:
        terms = f"  {', '.join(result.matched_terms)}" if result.matched_terms else ""
        print(f"  [{result.score:.4f}] {result.id}: {result.text}{terms}")


async def cmd_demo_search(args: argparse.Namespace) -> None:
    """Demo search command - compare standard and enhanced search."""
    demo = container.resolve(DemoSearchService)
    await demo.initialize()

    response = await demo.search(
        SearchRequest(
            query=args.query,
            enhancements=enhancements_from_args(args),
            top_k=settings.rag_top_k if args.top_k is None else args.top_k,
            min_score=args.min_score,
        )
    )

    _print_results("Standard search", response.standard_results)
    if response.enhanced_results:
        print()
        _print_results("Enhanced search", response.enhanced_results)
        if response.enhanced_results.expanded_query:
            print(f"Expanded query: {response.enhanced_results.expanded_query}")
        if response.enhanced_results.hypothetical_document:
            print(f"HyDE document: {response.enhanced_results.hypothetical_document}")


async def cmd_collections(args: argparse.Namespace) -> None:
    """Collections command - list collections per embedding model."""
    await _ingest_docs(args.docs)

    collections = await container.resolve(IngestService).list_collections()
    if not collections:
        print("No collections")
    for info in collections:
        marker = "*" if info.is_active else " "
        print(
            f"{marker} {info.name}  model={info.embedding_model} "
            f"dims={info.dimensions} documents={info.document_count}"
        )


def _add_enhancement_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--hybrid", action="store_true", help="fuse vector and keyword scores")
    parser.add_argument("--expand", action="store_true", help="LLM query expansion")
    parser.add_argument("--rerank", action="store_true", help="LLM reranking")
    parser.add_argument("--hyde", action="store_true", help="embed a hypothetical answer")
    parser.add_argument("--approx", action="store_true", help="approximate candidate pruning")
    parser.add_argument("--ef-search", type=int, default=settings.hnsw_ef_search)
    parser.add_argument("--pool", type=int, default=settings.rag_candidate_pool)
    parser.add_argument("--top-k", type=int, default=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ragdojo", description="Retrieval pipeline playground")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="index a file or folder")
    ingest.add_argument("path")
    ingest.set_defaults(handler=cmd_ingest)

    chat = subparsers.add_parser("chat", help="ask a question about the documents")
    chat.add_argument("message")
    chat.add_argument("--docs", default=settings.docs_path)
    chat.add_argument("--debug", action="store_true", help="print token usage and metrics")
    _add_enhancement_flags(chat)
    chat.set_defaults(handler=cmd_chat)

    demo = subparsers.add_parser("demo-search", help="compare search strategies on the demo corpus")
    demo.add_argument("query")
    demo.add_argument("--multi-vector", action="store_true", help="content + tag vectors")
    demo.add_argument("--contextual", action="store_true", help="contextual embeddings")
    demo.add_argument("--min-score", type=float, default=settings.rag_min_score)
    _add_enhancement_flags(demo)
    demo.set_defaults(handler=cmd_demo_search)

    collections = subparsers.add_parser("collections", help="list collections")
    collections.add_argument("--docs", default=settings.docs_path)
    collections.set_defaults(handler=cmd_collections)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_container(settings)

    try:
        asyncio.run(args.handler(args))
    except (InvalidInputError, NotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except RagError as e:
        logger.error(f"Request failed: {e}")
        print("The request could not be completed. Please try again later.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
