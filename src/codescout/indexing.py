"""Incremental indexing: diff the tree against stored state, evict stale chunks, insert fresh ones."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .chunking import SemanticChunker
from .config import ScanConfig
from .discovery import discover_files
from .embedding import EmbeddingEngine
from .errors import UnsupportedLanguageError
from .metadata import MetadataStore
from .models import Chunk, FileRecord, IndexingStats, IndexMetadata
from .vectorstore import QdrantStore

log = logging.getLogger("codescout.indexing")


@dataclass
class IndexPlan:
    new: list[FileRecord] = field(default_factory=list)
    modified: list[FileRecord] = field(default_factory=list)
    unchanged: list[FileRecord] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def to_index(self) -> list[FileRecord]:
        return self.new + self.modified

    @property
    def to_evict(self) -> list[str]:
        # Includes new files, whose chunks may survive an interrupted pass
        return [f.path for f in self.to_index] + self.deleted

    @property
    def is_empty(self) -> bool:
        return not (self.new or self.modified or self.deleted)


def plan_index(files: list[FileRecord], meta: IndexMetadata) -> IndexPlan:
    """Classify scanned files against the stored modification times.

    A file is modified only when its live mod time is strictly newer than the
    stored one. Stored paths missing from the scan are deleted.
    """
    plan = IndexPlan()
    seen: set[str] = set()
    for record in files:
        seen.add(record.path)
        stored = meta.file_mod_times.get(record.path)
        if stored is None:
            plan.new.append(record)
        elif record.mod_time > stored:
            plan.modified.append(record)
        else:
            plan.unchanged.append(record)
    plan.deleted = sorted(path for path in meta.file_mod_times if path not in seen)
    return plan


class IndexCoordinator:
    """Runs one indexing pass over a source tree.

    Chunks and vectors for new and modified files are produced before anything
    is evicted, so a provider failure leaves the store untouched. Metadata is
    saved only after the store writes succeed.
    """

    def __init__(
        self,
        root: Path,
        chunker: SemanticChunker,
        engine: EmbeddingEngine,
        store: QdrantStore,
        metadata: MetadataStore,
        scan: Optional[ScanConfig] = None,
    ):
        self.root = root
        self.chunker = chunker
        self.engine = engine
        self.store = store
        self.metadata = metadata
        self.scan = scan or ScanConfig()

    def run(self) -> IndexingStats:
        t_start = time.time()
        stats = IndexingStats()

        meta = self.metadata.load()
        files = discover_files(
            self.root,
            max_file_size_kb=self.scan.max_file_size_kb,
            extra_skip_dirs=set(self.scan.extra_skip_dirs),
        )
        stats.files_discovered = len(files)

        plan = plan_index(files, meta)
        stats.files_new = len(plan.new)
        stats.files_modified = len(plan.modified)
        stats.files_unchanged = len(plan.unchanged)
        stats.files_deleted = len(plan.deleted)
        log.info(
            "Plan: %d new, %d modified, %d unchanged, %d deleted",
            stats.files_new, stats.files_modified, stats.files_unchanged, stats.files_deleted,
        )

        if plan.is_empty:
            log.info("Everything is up to date!")
            stats.elapsed_seconds = time.time() - t_start
            return stats

        chunks, indexed = self._chunk_files(plan.to_index, stats)
        stats.chunks_created = len(chunks)
        log.info("Generated %d chunks from %d files", len(chunks), len(indexed))

        result = self.engine.embed_chunks(chunks)
        stats.unique_embeddings = result.unique
        stats.duplicates_reused = result.duplicates

        self.store.ensure_collection()
        self.store.delete_file_paths(plan.to_evict)
        if chunks:
            stats.chunks_stored = self.store.add(chunks, result.vectors)

        for record in indexed:
            meta.file_mod_times[record.path] = record.mod_time
        for path in plan.deleted:
            meta.file_mod_times.pop(path, None)
        meta.last_index_time = datetime.now(timezone.utc)
        self.metadata.save(meta)

        stats.elapsed_seconds = time.time() - t_start
        return stats

    def _chunk_files(self, records: list[FileRecord], stats: IndexingStats) -> tuple[list[Chunk], list[FileRecord]]:
        chunks: list[Chunk] = []
        indexed: list[FileRecord] = []
        for record in records:
            try:
                file_chunks = self.chunker.chunk_file(record)
            except UnsupportedLanguageError as e:
                log.warning("Skipping %s: %s", record.path, e)
                stats.files_skipped += 1
                continue
            chunks.extend(file_chunks)
            indexed.append(record)

        if records and not indexed:
            raise UnsupportedLanguageError(f"None of the {len(records)} files to index are supported")
        return chunks, indexed


def log_stats(stats: IndexingStats, collection: str, total_points: int):
    log.info("=" * 60)
    log.info("Indexing complete in %.1fs", stats.elapsed_seconds)
    log.info("  Files discovered : %d", stats.files_discovered)
    log.info("  New / modified   : %d / %d", stats.files_new, stats.files_modified)
    log.info("  Unchanged        : %d", stats.files_unchanged)
    log.info("  Deleted          : %d", stats.files_deleted)
    log.info("  Skipped          : %d", stats.files_skipped)
    log.info("  Chunks created   : %d", stats.chunks_created)
    log.info("  Unique embeddings: %d (reused %d)", stats.unique_embeddings, stats.duplicates_reused)
    log.info("  Chunks stored    : %d", stats.chunks_stored)
    log.info("  Total in Qdrant  : %d points", total_points)
    log.info("  Collection       : %s", collection)
    log.info("=" * 60)
