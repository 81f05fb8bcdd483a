"""File discovery: walk the source tree, route languages, record modification times."""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import ScanError
from .language import detect_language, needs_content
from .models import FileRecord

log = logging.getLogger("codescout.discovery")

SKIP_DIRS: set[str] = {
    ".git", ".svn", ".hg",
    "node_modules", "__pycache__", ".mypy_cache", ".pytest_cache",
    ".tox", ".venv", "venv", "env", ".env",
    "dist", "build", "target", "out", "bin", "obj",
    ".next", ".nuxt", ".output",
    "vendor", "third_party",
    ".idea", ".vscode",
    "coverage", ".coverage",
    ".codescout",
}

SKIP_FILES: set[str] = {
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml",
    "go.sum", "Cargo.lock", "poetry.lock", "uv.lock",
    "Pipfile.lock", "composer.lock", "Gemfile.lock",
    "CMakeLists.txt", "requirements.txt",
}


def _raise_walk_error(err: OSError) -> None:
    raise ScanError(f"Cannot read {err.filename}: {err.strerror}") from err


def discover_files(
    root: Path,
    max_file_size_kb: int = 512,
    extra_skip_dirs: Optional[set[str]] = None,
) -> list[FileRecord]:
    """Walk the tree and collect files the pipeline can index."""
    if not root.is_dir():
        raise ScanError(f"Not a directory: {root}")

    skip = SKIP_DIRS | (extra_skip_dirs or set())
    files: list[FileRecord] = []

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames[:] = sorted(d for d in dirnames if d not in skip and not d.startswith("."))

        for fname in sorted(filenames):
            if fname in SKIP_FILES or fname.startswith("."):
                continue

            full = Path(dirpath) / fname
            try:
                stat = full.stat()
            except OSError:
                continue

            if stat.st_size > max_file_size_kb * 1024:
                log.debug("Skipping large file: %s (%d KB)", full, stat.st_size // 1024)
                continue

            content = b""
            if needs_content(fname):
                try:
                    content = full.read_bytes()
                except OSError as e:
                    raise ScanError(f"Cannot read {full}: {e}") from e

            match = detect_language(fname, content)
            if not match.supported:
                continue

            files.append(FileRecord(
                path=full.relative_to(root).as_posix(),
                abs_path=str(full),
                language=match.language,
                mod_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                size_bytes=stat.st_size,
            ))

    log.info("Discovered %d indexable files", len(files))
    return files
