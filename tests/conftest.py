"""Shared pytest fixtures: fake embedding provider, in-memory Qdrant, sample trees."""

import hashlib
import threading
from pathlib import Path

import pytest
from qdrant_client import QdrantClient

from codescout.chunking import SemanticChunker
from codescout.embedding import EmbeddingEngine
from codescout.errors import ProviderError
from codescout.indexing import IndexCoordinator
from codescout.metadata import MetadataStore
from codescout.vectorstore import QdrantStore

DIMENSION = 8
CODE_MODEL = "test-code"
TEXT_MODEL = "test-text"
TEXT_WIDTH = 6  # narrower than DIMENSION, so docs vectors get padded


class FakeProvider:
    """Deterministic vectors derived from the text; counts every call."""

    def __init__(self, widths=None, failures: int = 0):
        self.widths = widths or {CODE_MODEL: DIMENSION, TEXT_MODEL: TEXT_WIDTH}
        self.failures = failures
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def embed(self, text: str, model: str) -> list[float]:
        with self._lock:
            self.calls.append((text, model))
            if self.failures > 0:
                self.failures -= 1
                raise ProviderError("provider unavailable")
        digest = hashlib.sha256(f"{model}:{text}".encode()).digest()
        return [b / 255.0 for b in digest[: self.widths[model]]]

    def embed_many(self, texts: list[str], model: str) -> list[list[float]]:
        return [self.embed(t, model) for t in texts]

    @property
    def call_count(self) -> int:
        return len(self.calls)


class RecordingStore(QdrantStore):
    """QdrantStore that records every mutating call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.mutations: list[tuple[str, object]] = []

    def add(self, chunks, vectors):
        self.mutations.append(("add", [c.file_path for c in chunks]))
        return super().add(chunks, vectors)

    def delete_file_paths(self, paths):
        self.mutations.append(("delete", list(paths)))
        return super().delete_file_paths(paths)


def make_engine(provider, workers: int = 4, max_attempts: int = 3, sleeps=None) -> EmbeddingEngine:
    sleeps = sleeps if sleeps is not None else []
    return EmbeddingEngine(
        provider,
        code_model=CODE_MODEL,
        text_model=TEXT_MODEL,
        dimension=DIMENSION,
        workers=workers,
        max_attempts=max_attempts,
        initial_backoff_s=1.0,
        sleep=sleeps.append,
    )


def make_coordinator(root: Path, store, provider=None, max_attempts: int = 3) -> IndexCoordinator:
    return IndexCoordinator(
        root,
        SemanticChunker(),
        make_engine(provider or FakeProvider(), max_attempts=max_attempts),
        store,
        MetadataStore.for_root(root),
    )


def write_files(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


SAMPLE_PY = '''def add(a, b):
    return a + b


def multiply(a, b):
    return a * b
'''

SAMPLE_MD = """# Project

Intro text.

## Usage

Run it.
"""


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def engine(provider):
    return make_engine(provider)


@pytest.fixture
def store():
    s = RecordingStore(QdrantClient(location=":memory:"), "test_chunks", DIMENSION, "Euclid")
    s.ensure_collection()
    yield s
    s.close()


@pytest.fixture
def sample_tree(tmp_path):
    write_files(tmp_path, {"app.py": SAMPLE_PY, "README.md": SAMPLE_MD})
    return tmp_path


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path_factory):
    """Keep user config files and CODESCOUT_* variables out of every test."""
    monkeypatch.setenv("HOME", str(tmp_path_factory.mktemp("home")))
    for var in (
        "CODESCOUT_ENDPOINT", "CODESCOUT_API_KEY", "CODESCOUT_CODE_MODEL", "CODESCOUT_TEXT_MODEL",
        "CODESCOUT_TIMEOUT_S", "CODESCOUT_WORKERS", "CODESCOUT_DIMENSION",
        "QDRANT_URL", "QDRANT_COLLECTION", "QDRANT_DISTANCE", "MAX_FILE_SIZE_KB",
    ):
        monkeypatch.delenv(var, raising=False)
