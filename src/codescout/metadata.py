"""Persisted index state: last index time and per-file modification times."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from .errors import StoreError
from .models import IndexMetadata

log = logging.getLogger("codescout.metadata")

METADATA_FILE = "metadata.json"


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class MetadataStore:
    """Reads and atomically writes ``IndexMetadata`` as JSON."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def for_root(cls, root: Path, data_dir: str = ".codescout") -> "MetadataStore":
        return cls(root / data_dir / METADATA_FILE)

    def load(self) -> IndexMetadata:
        """Current state; a missing file is an empty index."""
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return IndexMetadata()
        except OSError as e:
            raise StoreError(f"Cannot read index metadata {self.path}: {e}") from e

        try:
            data = json.loads(raw)
            last = data.get("last_index_time")
            return IndexMetadata(
                last_index_time=_parse_time(last) if last else None,
                file_mod_times={
                    path: _parse_time(ts) for path, ts in (data.get("file_mod_times") or {}).items()
                },
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise StoreError(f"Corrupt index metadata {self.path}: {e}") from e

    def save(self, meta: IndexMetadata):
        """Write via a temp file and rename, so readers never see a partial document."""
        data = {
            "last_index_time": meta.last_index_time.isoformat() if meta.last_index_time else None,
            "file_mod_times": {
                path: ts.isoformat() for path, ts in sorted(meta.file_mod_times.items())
            },
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".metadata-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Cannot write index metadata {self.path}: {e}") from e
        log.debug("Saved metadata for %d files to %s", len(meta.file_mod_times), self.path)
