"""Semantic chunking router with a naive blank-line fallback."""

import logging
from pathlib import Path

from .errors import ParseError, ScanError, UnsupportedLanguageError
from .extractor import extract_chunks
from .language import CODE_LANGUAGES, DOC_LANGUAGES, embedding_type_for
from .markdown import chunk_markdown, chunk_whole_document
from .models import Chunk, FileRecord

log = logging.getLogger("codescout.chunking")


def naive_split(file_path: str, language: str, text: str) -> list[Chunk]:
    """Split on blank lines, keeping each contiguous non-blank run as a chunk.

    Chunks carry no name and no chunk type. Never fails; empty input yields
    no chunks.
    """
    chunks: list[Chunk] = []
    current: list[str] = []
    start = 1

    def _flush(end_line: int):
        if current:
            chunks.append(Chunk(
                file_path=file_path,
                line_start=start,
                line_end=end_line,
                language=language,
                content="\n".join(current),
                embedding_type=embedding_type_for(language),
            ))

    for i, line in enumerate(text.splitlines(), start=1):
        if line.strip():
            if not current:
                start = i
            current.append(line)
            continue
        _flush(i - 1)
        current = []

    _flush(start + len(current) - 1)
    return chunks


class SemanticChunker:
    """Routes files to the tree-sitter extractor or the heading chunker by language."""

    def chunk_file(self, record: FileRecord) -> list[Chunk]:
        try:
            source = Path(record.abs_path).read_bytes()
        except OSError as e:
            raise ScanError(f"Cannot read {record.abs_path}: {e}") from e
        return self.chunk_source(record.path, record.language, source)

    def chunk_source(self, file_path: str, language: str, source: bytes) -> list[Chunk]:
        if language in DOC_LANGUAGES:
            text = source.decode("utf-8", errors="replace")
            if language == "markdown":
                return chunk_markdown(file_path, text)
            return chunk_whole_document(file_path, language, text)

        if language not in CODE_LANGUAGES:
            raise UnsupportedLanguageError(f"Unsupported language {language!r} for {file_path}")

        try:
            return extract_chunks(language, source, file_path)
        except ParseError as e:
            log.debug("Falling back to naive chunks for %s: %s", file_path, e)
            return naive_split(file_path, language, source.decode("utf-8", errors="replace"))
