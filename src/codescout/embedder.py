"""Embedding provider client for an OpenAI-compatible /v1/embeddings endpoint."""

import logging
from typing import Optional, Protocol

import httpx

from .errors import ProviderError

log = logging.getLogger("codescout.embedder")


class EmbeddingProvider(Protocol):
    """What the embedding engine needs from a provider."""

    def embed(self, text: str, model: str) -> list[float]: ...

    def embed_many(self, texts: list[str], model: str) -> list[list[float]]: ...


class EmbeddingClient:
    """Generate embeddings over HTTP. One client serves both the code and text models."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    def _embed_request(self, texts: list[str], model: str) -> list[list[float]]:
        try:
            resp = self._client.post(
                f"{self.base_url}/v1/embeddings",
                json={"model": model, "input": texts},
            )
            resp.raise_for_status()
            data = resp.json()
            rows = sorted(data["data"], key=lambda row: row.get("index", 0))
            vectors = [[float(x) for x in row["embedding"]] for row in rows]
        except httpx.HTTPError as e:
            raise ProviderError(f"Embedding request failed ({model}): {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"Invalid embedding response ({model}): {e}") from e

        if len(vectors) != len(texts):
            raise ProviderError(
                f"Embedding response has {len(vectors)} vectors for {len(texts)} inputs ({model})"
            )
        log.debug("Embedded %d texts with %s", len(texts), model)
        return vectors

    def embed(self, text: str, model: str) -> list[float]:
        return self._embed_request([text], model)[0]

    def embed_many(self, texts: list[str], model: str) -> list[list[float]]:
        if not texts:
            return []
        return self._embed_request(texts, model)

    def close(self):
        self._client.close()
