"""Qdrant vector store adapter."""

import logging
from pathlib import Path
from typing import Optional

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from .config import AppConfig
from .errors import StoreError
from .models import Chunk, EmbeddingType, SearchResult

log = logging.getLogger("codescout.vectorstore")

UPSERT_BATCH = 256


class QdrantStore:
    """Stores chunk vectors in one Qdrant collection and decodes hits into ``SearchResult``.

    Scores are reported as distances (smaller is closer) whatever the
    collection's metric. Writes wait for the operation to be applied, so a
    delete is visible before the next add.
    """

    _distance_map = {
        "Cosine": Distance.COSINE,
        "Euclid": Distance.EUCLID,
        "Dot": Distance.DOT,
        "Manhattan": Distance.MANHATTAN,
    }

    def __init__(self, client: QdrantClient, collection: str, dimension: int, distance: str = "Euclid"):
        self.client = client
        self.collection = collection
        self.dimension = dimension
        self.distance = distance

    @classmethod
    def from_config(cls, cfg: AppConfig, root: Path) -> "QdrantStore":
        """Remote Qdrant when a URL is configured, else an on-disk store in the data dir."""
        store = cfg.store
        try:
            if store.url:
                client = QdrantClient(url=store.url)
            else:
                path = root / cfg.data_dir / "qdrant"
                path.mkdir(parents=True, exist_ok=True)
                client = QdrantClient(path=str(path))
        except Exception as e:
            raise StoreError(f"Cannot open Qdrant store ({store.url or 'local'}): {e}") from e
        return cls(client, store.collection, store.dimension, store.distance)

    def ensure_collection(self):
        try:
            if self.client.collection_exists(self.collection):
                log.debug("Collection '%s' already exists", self.collection)
                return

            dist = self._distance_map.get(self.distance, Distance.EUCLID)
            self.client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=self.dimension, distance=dist),
            )
            for field in ("file_path", "embedding_type", "language"):
                self.client.create_payload_index(
                    collection_name=self.collection,
                    field_name=field,
                    field_schema=PayloadSchemaType.KEYWORD,
                )
        except Exception as e:
            raise StoreError(f"Cannot create collection '{self.collection}': {e}") from e
        log.info("Created collection '%s' (dim=%d, %s)", self.collection, self.dimension, self.distance)

    def add(self, chunks: list[Chunk], vectors: list[list[float]]) -> int:
        if len(chunks) != len(vectors):
            raise StoreError(f"Got {len(vectors)} vectors for {len(chunks)} chunks")

        points = [
            PointStruct(id=chunk.id, vector=vector, payload=_payload(chunk))
            for chunk, vector in zip(chunks, vectors)
        ]
        try:
            for i in range(0, len(points), UPSERT_BATCH):
                self.client.upsert(
                    collection_name=self.collection,
                    points=points[i:i + UPSERT_BATCH],
                    wait=True,
                )
        except Exception as e:
            raise StoreError(f"Failed to add {len(points)} chunks to '{self.collection}': {e}") from e
        log.debug("Stored %d chunks", len(points))
        return len(points)

    def delete_file_paths(self, paths: list[str]):
        """Remove every chunk whose file path exactly matches one of ``paths``."""
        if not paths:
            return
        try:
            self.client.delete(
                collection_name=self.collection,
                points_selector=Filter(
                    must=[FieldCondition(key="file_path", match=MatchAny(any=list(paths)))]
                ),
                wait=True,
            )
        except Exception as e:
            raise StoreError(f"Failed to delete chunks for {len(paths)} files: {e}") from e
        log.info("Evicted chunks for %d files", len(paths))

    def search(
        self,
        query_vector: list[float],
        limit: int = 10,
        embedding_type: Optional[EmbeddingType] = None,
    ) -> list[SearchResult]:
        query_filter = _type_filter(embedding_type)
        try:
            response = self.client.query_points(
                collection_name=self.collection,
                query=query_vector,
                limit=limit,
                query_filter=query_filter,
                with_payload=True,
            )
        except Exception as e:
            raise StoreError(f"Search in '{self.collection}' failed: {e}") from e
        return [self._decode(point.id, point.score, point.payload or {}) for point in response.points]

    def count(self, embedding_type: Optional[EmbeddingType] = None) -> int:
        try:
            return self.client.count(
                collection_name=self.collection,
                count_filter=_type_filter(embedding_type),
                exact=True,
            ).count
        except Exception as e:
            raise StoreError(f"Count in '{self.collection}' failed: {e}") from e

    def close(self):
        self.client.close()

    def _distance(self, score: float) -> float:
        if self.distance == "Cosine":
            return 1.0 - score
        if self.distance == "Dot":
            return -score
        return score

    def _decode(self, point_id, score: float, payload: dict) -> SearchResult:
        metadata = payload.get("metadata") or {}
        return SearchResult(
            score=self._distance(score),
            chunk_id=str(point_id),
            file_path=str(payload.get("file_path", "")),
            line_start=int(payload.get("line_start", 0)),
            line_end=int(payload.get("line_end", 0)),
            language=str(payload.get("language", "")),
            content=str(payload.get("content", "")),
            embedding_type=str(payload.get("embedding_type", "")),
            chunk_type=str(payload.get("chunk_type", "")),
            name=str(payload.get("name", "")),
            metadata={str(k): str(v) for k, v in metadata.items()},
        )


def _payload(chunk: Chunk) -> dict:
    return {
        "file_path": chunk.file_path,
        "line_start": chunk.line_start,
        "line_end": chunk.line_end,
        "language": chunk.language,
        "content": chunk.content,
        "chunk_type": chunk.type_label,
        "name": chunk.name,
        "embedding_type": EmbeddingType(chunk.embedding_type).value,
        "metadata": dict(chunk.metadata),
    }


def _type_filter(embedding_type: Optional[EmbeddingType]) -> Optional[Filter]:
    if not embedding_type:
        return None
    value = EmbeddingType(embedding_type).value
    return Filter(must=[FieldCondition(key="embedding_type", match=MatchValue(value=value))])
