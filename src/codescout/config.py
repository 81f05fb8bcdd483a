"""codescout configuration: dataclasses with JSON file and env var overrides."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from .errors import ConfigError

log = logging.getLogger("codescout.config")

PROJECT_CONFIG_NAME = ".codescout.json"
USER_CONFIG_PATH = Path("~/.codescout/config.json")

DISTANCES = ("Cosine", "Euclid", "Dot", "Manhattan")


@dataclass(slots=True)
class EmbeddingConfig:
    endpoint: str = field(default_factory=lambda: os.getenv("CODESCOUT_ENDPOINT", "http://localhost:11434"))
    api_key: str = field(default_factory=lambda: os.getenv("CODESCOUT_API_KEY", ""))
    code_model: str = field(default_factory=lambda: os.getenv("CODESCOUT_CODE_MODEL", "codescout-code"))
    text_model: str = field(default_factory=lambda: os.getenv("CODESCOUT_TEXT_MODEL", "codescout-text"))
    timeout_s: float = field(default_factory=lambda: float(os.getenv("CODESCOUT_TIMEOUT_S", "60")))
    workers: int = field(default_factory=lambda: int(os.getenv("CODESCOUT_WORKERS", "10")))
    max_attempts: int = 3
    initial_backoff_s: float = 1.0


@dataclass(slots=True)
class StoreConfig:
    url: str = field(default_factory=lambda: os.getenv("QDRANT_URL", ""))
    collection: str = field(default_factory=lambda: os.getenv("QDRANT_COLLECTION", "code_chunks"))
    dimension: int = field(default_factory=lambda: int(os.getenv("CODESCOUT_DIMENSION", "3584")))
    distance: str = field(default_factory=lambda: os.getenv("QDRANT_DISTANCE", "Euclid"))


@dataclass(slots=True)
class ScanConfig:
    max_file_size_kb: int = field(default_factory=lambda: int(os.getenv("MAX_FILE_SIZE_KB", "512")))
    extra_skip_dirs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AppConfig:
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    data_dir: str = ".codescout"

    def validate(self) -> None:
        """Fail fast on unusable settings. Normalises the endpoint in place."""
        emb = self.embedding
        if not emb.endpoint:
            raise ConfigError("endpoint cannot be empty")
        parsed = urlparse(emb.endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"endpoint must be an http or https URL, got: {emb.endpoint!r}")
        emb.endpoint = emb.endpoint.rstrip("/")

        if not emb.code_model:
            raise ConfigError("code_model cannot be empty")
        if not emb.text_model:
            raise ConfigError("text_model cannot be empty")
        if emb.workers <= 0:
            raise ConfigError(f"workers must be positive, got {emb.workers}")
        if emb.max_attempts <= 0:
            raise ConfigError(f"max_attempts must be positive, got {emb.max_attempts}")
        if emb.timeout_s <= 0:
            raise ConfigError(f"timeout_s must be positive, got {emb.timeout_s}")

        if self.store.dimension <= 0:
            raise ConfigError(f"dimension must be positive, got {self.store.dimension}")
        if self.store.distance not in DISTANCES:
            raise ConfigError(
                f"distance must be one of {', '.join(DISTANCES)}, got {self.store.distance!r}"
            )
        if not self.store.collection:
            raise ConfigError("collection cannot be empty")


def _to_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    return [str(p) for p in value]


# file key -> (group, attribute, converter)
_FILE_KEYS: dict[str, tuple[str, str, Callable[[Any], Any]]] = {
    "endpoint": ("embedding", "endpoint", str),
    "api_key": ("embedding", "api_key", str),
    "code_model": ("embedding", "code_model", str),
    "text_model": ("embedding", "text_model", str),
    "timeout_s": ("embedding", "timeout_s", float),
    "workers": ("embedding", "workers", int),
    "max_attempts": ("embedding", "max_attempts", int),
    "initial_backoff_s": ("embedding", "initial_backoff_s", float),
    "qdrant_url": ("store", "url", str),
    "collection": ("store", "collection", str),
    "dimension": ("store", "dimension", int),
    "distance": ("store", "distance", str),
    "max_file_size_kb": ("scan", "max_file_size_kb", int),
    "skip_dirs": ("scan", "extra_skip_dirs", _to_list),
}

_ENV_KEYS: dict[str, str] = {
    "CODESCOUT_ENDPOINT": "endpoint",
    "CODESCOUT_API_KEY": "api_key",
    "CODESCOUT_CODE_MODEL": "code_model",
    "CODESCOUT_TEXT_MODEL": "text_model",
    "CODESCOUT_TIMEOUT_S": "timeout_s",
    "CODESCOUT_WORKERS": "workers",
    "CODESCOUT_DIMENSION": "dimension",
    "QDRANT_URL": "qdrant_url",
    "QDRANT_COLLECTION": "collection",
    "QDRANT_DISTANCE": "distance",
    "MAX_FILE_SIZE_KB": "max_file_size_kb",
}


def _apply_overrides(cfg: AppConfig, overrides: dict[str, Any], source: str) -> None:
    for key, value in overrides.items():
        if value is None or value == "":
            continue
        target = _FILE_KEYS.get(key)
        if target is None:
            log.debug("Ignoring unknown config key %r from %s", key, source)
            continue
        group, attr, convert = target
        try:
            setattr(getattr(cfg, group), attr, convert(value))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid value for {key!r} in {source}: {value!r}") from e


def _load_file(path: Path) -> Optional[dict[str, Any]]:
    try:
        raw = path.read_text()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"malformed config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return data


def load_config(
    root: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
    user_config: Optional[Path] = None,
) -> AppConfig:
    """Build and validate the configuration for a project root.

    Precedence, lowest first: defaults, user file, project file, environment,
    explicit ``overrides`` (CLI flags).
    """
    try:
        cfg = AppConfig()
    except ValueError as e:
        raise ConfigError(f"invalid numeric setting in environment: {e}") from e

    user_path = (user_config or USER_CONFIG_PATH).expanduser()
    project_path = (root or Path.cwd()) / PROJECT_CONFIG_NAME
    for path in (user_path, project_path):
        data = _load_file(path)
        if data is not None:
            _apply_overrides(cfg, data, str(path))
            log.debug("Loaded config from %s", path)

    env = {key: os.environ[var] for var, key in _ENV_KEYS.items() if os.environ.get(var)}
    _apply_overrides(cfg, env, "environment")

    if overrides:
        _apply_overrides(cfg, overrides, "command line")

    cfg.validate()
    return cfg
