"""Semantic search over the index, with content-level result deduplication."""

import json
import logging

from .embedding import EmbeddingEngine
from .models import EmbeddingType, SearchResult
from .vectorstore import QdrantStore

log = logging.getLogger("codescout.search")

SEARCH_MODES = ("code", "docs", "hybrid")
DEFAULT_LIMIT = 10


def dedupe_results(rows: list[SearchResult]) -> list[SearchResult]:
    """Collapse rows with identical content to the best-scoring one, sorted by score."""
    best: dict[str, SearchResult] = {}
    for row in rows:
        kept = best.get(row.content)
        if kept is None or row.score < kept.score:
            best[row.content] = row
    return sorted(best.values(), key=lambda r: r.score)


class SearchService:
    """Embeds a query with the model for each searched space and queries the store."""

    def __init__(self, engine: EmbeddingEngine, store: QdrantStore):
        self.engine = engine
        self.store = store

    def search(self, query: str, mode: str = "code", limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
        if mode not in SEARCH_MODES:
            raise ValueError(f"Unknown search mode {mode!r}; expected one of {', '.join(SEARCH_MODES)}")
        if limit <= 0:
            return []

        spaces = {
            "code": [EmbeddingType.CODE],
            "docs": [EmbeddingType.DOCS],
            "hybrid": [EmbeddingType.CODE, EmbeddingType.DOCS],
        }[mode]

        rows: list[SearchResult] = []
        for etype in spaces:
            vector = self.engine.embed_query(query, etype)
            # Overfetch so results dropped as duplicates don't shrink the page
            rows.extend(self.store.search(vector, limit=limit * 2, embedding_type=etype))

        results = dedupe_results(rows)[:limit]
        log.debug("Query %r (%s): %d raw rows, %d results", query, mode, len(rows), len(results))
        return results


def format_result(hit: SearchResult, index: int, show_content: bool = True) -> str:
    """Format a single search result for terminal display."""
    label = f"{hit.chunk_type} {hit.name}".strip() or "chunk"
    lines = [
        f"\n{'─' * 70}",
        f"  #{index+1}  {hit.file_path}  (L{hit.line_start}-{hit.line_end})  {label}",
        f"  score: {hit.score:.4f}  |  language: {hit.language}  |  {hit.embedding_type}",
        f"{'─' * 70}",
    ]
    if show_content:
        content = hit.content
        if len(content) > 2000:
            content = content[:2000] + "\n... [truncated]"
        lines.append(content)
    return "\n".join(lines)


def format_results_json(query: str, mode: str, hits: list[SearchResult]) -> str:
    """Format results as JSON (for piping to other tools)."""
    return json.dumps({
        "query": query,
        "mode": mode,
        "total_results": len(hits),
        "results": [hit.to_dict() for hit in hits],
    }, indent=2)
