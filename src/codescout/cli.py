"""codescout command line: ``index`` a source tree and ``search`` it."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .chunking import SemanticChunker
from .config import AppConfig, load_config
from .embedder import EmbeddingClient
from .embedding import EmbeddingEngine
from .errors import CodeScoutError
from .indexing import IndexCoordinator, log_stats
from .metadata import MetadataStore
from .search import DEFAULT_LIMIT, SEARCH_MODES, SearchService, format_result, format_results_json
from .vectorstore import QdrantStore

log = logging.getLogger("codescout.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codescout",
        description="Semantic code search: index a source tree, then query it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s index .
  %(prog)s index /path/to/project --workers 20 --skip-dirs data,fixtures
  %(prog)s search "how are embeddings retried" --mode hybrid --limit 5
  %(prog)s search "parse config file" --json
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--endpoint", help="Embedding provider base URL")
    parser.add_argument("--qdrant-url", help="Qdrant URL (default: embedded store under .codescout/)")
    parser.add_argument("--collection", "-c", help="Qdrant collection name")

    sub = parser.add_subparsers(dest="command", required=True)

    index = sub.add_parser("index", help="Index or re-index a source tree")
    index.add_argument("path", nargs="?", type=Path, default=Path("."),
                       help="Root directory to index (default: current directory)")
    index.add_argument("--workers", "-w", type=int,
                       help="Parallel embedding workers (default: 10)")
    index.add_argument("--skip-dirs", type=str, default="",
                       help="Additional directories to skip (comma-separated)")

    search = sub.add_parser("search", help="Search the index")
    search.add_argument("query", help="Search query")
    search.add_argument("--path", type=Path, default=Path("."),
                        help="Indexed root directory (default: current directory)")
    search.add_argument("--mode", "-m", choices=SEARCH_MODES, default="code",
                        help="Which vector space to search (default: code)")
    search.add_argument("--limit", "-k", type=int, default=DEFAULT_LIMIT,
                        help=f"Maximum number of results (default: {DEFAULT_LIMIT})")
    search.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    return {
        "endpoint": args.endpoint,
        "qdrant_url": args.qdrant_url,
        "collection": args.collection,
        "workers": getattr(args, "workers", None),
        "skip_dirs": getattr(args, "skip_dirs", None),
    }


def run_index(root: Path, cfg: AppConfig) -> int:
    client = EmbeddingClient(cfg.embedding.endpoint, cfg.embedding.api_key, cfg.embedding.timeout_s)
    store = QdrantStore.from_config(cfg, root)
    try:
        coordinator = IndexCoordinator(
            root,
            SemanticChunker(),
            EmbeddingEngine.from_config(client, cfg),
            store,
            MetadataStore.for_root(root, cfg.data_dir),
            scan=cfg.scan,
        )
        stats = coordinator.run()
        if stats.chunks_stored or stats.files_deleted:
            log_stats(stats, cfg.store.collection, store.count())
    finally:
        store.close()
        client.close()
    return 0


def run_search(root: Path, cfg: AppConfig, query: str, mode: str, limit: int, as_json: bool) -> int:
    client = EmbeddingClient(cfg.embedding.endpoint, cfg.embedding.api_key, cfg.embedding.timeout_s)
    store = QdrantStore.from_config(cfg, root)
    try:
        service = SearchService(EmbeddingEngine.from_config(client, cfg), store)
        hits = service.search(query, mode=mode, limit=limit)
    finally:
        store.close()
        client.close()

    if as_json:
        print(format_results_json(query, mode, hits))
        return 0
    if not hits:
        print("No results found.")
        return 0
    for i, hit in enumerate(hits):
        print(format_result(hit, i))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    root = args.path.resolve()
    try:
        if not root.is_dir():
            log.error("Not a directory: %s", root)
            return 1
        cfg = load_config(root, overrides=_overrides(args))
        if args.command == "index":
            return run_index(root, cfg)
        if not args.query.strip():
            log.error("Search query cannot be empty")
            return 1
        return run_search(root, cfg, args.query, args.mode, args.limit, args.json)
    except CodeScoutError as e:
        log.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
