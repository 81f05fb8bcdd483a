"""codescout data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ChunkType(str, Enum):
    FUNCTION = "function"
    METHOD = "method"
    STRUCT = "struct"
    CLASS = "class"
    INTERFACE = "interface"
    TRAIT = "trait"
    ENUM = "enum"
    IMPL = "impl"
    MODULE = "module"
    DOCUMENT = "document"
    SECTION = "section"
    CONTENT = "content"
    GENERIC = "generic"


class EmbeddingType(str, Enum):
    CODE = "code"
    DOCS = "docs"


def new_chunk_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Chunk:
    """One semantic unit of source or prose content.

    ``chunk_type`` and ``name`` are empty for naive fallback chunks; the store
    labels those ``generic``.
    """

    file_path: str
    line_start: int
    line_end: int
    language: str
    content: str
    chunk_type: str = ""
    name: str = ""
    embedding_type: EmbeddingType = EmbeddingType.CODE
    metadata: dict[str, str] = field(default_factory=dict)
    id: str = field(default_factory=new_chunk_id)

    @property
    def type_label(self) -> str:
        return self.chunk_type or ChunkType.GENERIC.value


@dataclass
class FileRecord:
    path: str           # relative to the indexed root, "/" separated
    abs_path: str
    language: str
    mod_time: datetime  # timezone-aware UTC
    size_bytes: int = 0


@dataclass
class IndexMetadata:
    last_index_time: Optional[datetime] = None
    file_mod_times: dict[str, datetime] = field(default_factory=dict)


@dataclass
class SearchResult:
    score: float        # distance, smaller is closer
    chunk_id: str
    file_path: str
    line_start: int
    line_end: int
    language: str
    content: str
    embedding_type: str
    chunk_type: str = ""
    name: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "chunk_id": self.chunk_id,
            "file_path": self.file_path,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "language": self.language,
            "chunk_type": self.chunk_type,
            "name": self.name,
            "embedding_type": self.embedding_type,
            "code": self.content,
            "score": self.score,
        }


@dataclass
class IndexingStats:
    files_discovered: int = 0
    files_new: int = 0
    files_modified: int = 0
    files_unchanged: int = 0
    files_deleted: int = 0
    files_skipped: int = 0
    chunks_created: int = 0
    unique_embeddings: int = 0
    duplicates_reused: int = 0
    chunks_stored: int = 0
    elapsed_seconds: float = 0.0
