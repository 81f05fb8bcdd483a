"""Heading-based chunking for markdown and whole-file chunking for plain prose."""

import re
from pathlib import PurePosixPath

from .models import Chunk, ChunkType, EmbeddingType

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")


def _section(
    file_path: str,
    lines: list[str],
    start: int,
    heading: str,
    level: int,
    parents: list[tuple[int, str]],
) -> Chunk:
    metadata: dict[str, str] = {}
    if heading:
        metadata["heading"] = heading
        metadata["heading_level"] = str(level)
    if parents:
        metadata["parent_heading"] = " > ".join(text for _, text in parents)

    return Chunk(
        file_path=file_path,
        line_start=start,
        line_end=start + len(lines) - 1,
        language="markdown",
        content="\n".join(lines),
        chunk_type=(ChunkType.SECTION if heading else ChunkType.CONTENT).value,
        name=heading,
        embedding_type=EmbeddingType.DOCS,
        metadata=metadata,
    )


def chunk_markdown(file_path: str, text: str) -> list[Chunk]:
    """Split markdown into one chunk per heading-delimited section.

    Each section carries its heading, level and the lineage of enclosing
    headings (``parent_heading``, joined with `` > ``). Content before the
    first heading becomes a ``content`` chunk. A file with no headings at all
    becomes a single ``document`` chunk.
    """
    chunks: list[Chunk] = []
    current: list[str] = []
    start = 1
    heading = ""
    level = 0
    parents: list[tuple[int, str]] = []

    def flush() -> None:
        if current and "\n".join(current).strip():
            chunks.append(_section(file_path, current, start, heading, level, parents))

    for lineno, line in enumerate(text.splitlines(), start=1):
        match = HEADING_RE.match(line)
        if match is None:
            current.append(line)
            continue

        flush()
        new_level = len(match.group(1))
        if new_level == 1:
            parents = []
        else:
            if heading:
                parents = parents + [(level, heading)]
            parents = [(lvl, txt) for lvl, txt in parents if lvl < new_level]

        heading = match.group(2).strip()
        level = new_level
        start = lineno
        current = [line]

    flush()

    if len(chunks) == 1 and not chunks[0].name:
        chunks[0].chunk_type = ChunkType.DOCUMENT.value
        chunks[0].metadata["heading"] = PurePosixPath(file_path).name
    return chunks


def chunk_whole_document(file_path: str, language: str, text: str) -> list[Chunk]:
    """One ``document`` chunk for an unstructured prose file, whatever its length."""
    if not text.strip():
        return []
    lines = text.splitlines()
    return [Chunk(
        file_path=file_path,
        line_start=1,
        line_end=max(len(lines), 1),
        language=language,
        content=text,
        chunk_type=ChunkType.DOCUMENT.value,
        embedding_type=EmbeddingType.DOCS,
        metadata={"filename": PurePosixPath(file_path).name},
    )]
