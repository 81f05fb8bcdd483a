"""Deduplicating, retrying, concurrent embedding generation."""

import hashlib
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Optional

from .config import AppConfig
from .embedder import EmbeddingProvider
from .errors import ProviderError
from .models import Chunk, EmbeddingType

log = logging.getLogger("codescout.embedding")


def fingerprint(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass
class EmbeddingResult:
    vectors: list[list[float]] = field(default_factory=list)
    unique: int = 0
    duplicates: int = 0


class EmbeddingEngine:
    """Turns chunks into fixed-width vectors with one provider call per unique content.

    Code chunks go to ``code_model`` and docs chunks to ``text_model`` in two
    sequential passes. Within a pass, identical texts are fingerprinted and
    embedded once; duplicates receive a copy of their representative's vector.
    Vectors narrower than ``dimension`` are zero-padded.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        code_model: str,
        text_model: str,
        dimension: int,
        workers: int = 10,
        max_attempts: int = 3,
        initial_backoff_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.models = {EmbeddingType.CODE: code_model, EmbeddingType.DOCS: text_model}
        self.dimension = dimension
        self.workers = max(1, workers)
        self.max_attempts = max(1, max_attempts)
        self.initial_backoff_s = initial_backoff_s
        self._sleep = sleep

    @classmethod
    def from_config(cls, provider: EmbeddingProvider, cfg: AppConfig) -> "EmbeddingEngine":
        emb = cfg.embedding
        return cls(
            provider,
            code_model=emb.code_model,
            text_model=emb.text_model,
            dimension=cfg.store.dimension,
            workers=emb.workers,
            max_attempts=emb.max_attempts,
            initial_backoff_s=emb.initial_backoff_s,
        )

    def pad(self, vector: list[float]) -> list[float]:
        if not vector:
            raise ProviderError("Provider returned an empty vector")
        if len(vector) > self.dimension:
            raise ProviderError(
                f"Vector width {len(vector)} exceeds configured dimension {self.dimension}"
            )
        # TODO: padding mixes code and docs vector spaces; measure the effect on hybrid ranking
        return vector + [0.0] * (self.dimension - len(vector))

    def embed_query(self, text: str, embedding_type: EmbeddingType = EmbeddingType.CODE) -> list[float]:
        return self.pad(self._call_with_retry(text, self.models[embedding_type]))

    def embed_chunks(self, chunks: list[Chunk]) -> EmbeddingResult:
        """Vectors for ``chunks`` in input order, code pass first then docs."""
        result = EmbeddingResult(vectors=[[] for _ in chunks])
        for etype in (EmbeddingType.CODE, EmbeddingType.DOCS):
            positions = [i for i, c in enumerate(chunks) if c.embedding_type == etype]
            if not positions:
                continue
            model = self.models[etype]
            log.info("Embedding %d %s chunks with %s", len(positions), etype.value, model)
            vectors, unique = self.embed_texts([chunks[i].content for i in positions], model)
            for pos, vector in zip(positions, vectors):
                result.vectors[pos] = self.pad(vector)
            result.unique += unique
            result.duplicates += len(positions) - unique
        return result

    def embed_texts(self, texts: list[str], model: str) -> tuple[list[list[float]], int]:
        """Embed ``texts`` with one provider call per distinct text.

        Returns the vectors in input order and the number of distinct texts.
        """
        first_seen: dict[str, int] = {}
        owners = [first_seen.setdefault(fingerprint(text), i) for i, text in enumerate(texts)]
        unique = list(first_seen.values())
        if not unique:
            return [], 0

        vectors: list[Optional[list[float]]] = [None] * len(texts)
        with ThreadPoolExecutor(max_workers=min(self.workers, len(unique))) as pool:
            futures = {pool.submit(self._call_with_retry, texts[i], model): i for i in unique}
            try:
                for future in as_completed(futures):
                    vectors[futures[future]] = future.result()
            except ProviderError:
                # Queued items are dropped; calls already running finish on pool shutdown
                for future in futures:
                    future.cancel()
                raise

        for i, owner in enumerate(owners):
            if i != owner:
                vectors[i] = list(vectors[owner])

        duplicates = len(texts) - len(unique)
        log.info("Generated %d unique embeddings, reused %d duplicates", len(unique), duplicates)
        return vectors, len(unique)

    def _call_with_retry(self, text: str, model: str) -> list[float]:
        delay = self.initial_backoff_s
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self.provider.embed(text, model)
            except ProviderError as e:
                if attempt == self.max_attempts:
                    raise ProviderError(
                        f"Embedding failed after {attempt} attempts ({model}): {e}"
                    ) from e
                log.warning(
                    "Embedding attempt %d/%d failed: %s; retrying in %.1fs",
                    attempt, self.max_attempts, e, delay,
                )
                self._sleep(delay)
                delay *= 2
        raise ProviderError(f"Embedding failed ({model})")
