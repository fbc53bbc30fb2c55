from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from .config import AuditConfig
from .log import logger

# First line of a pl2bat-wrapped script.
BATCH_MARKER = b"--*-Perl-*--"

_FIRST_LINE_LIMIT = 1024


def default_roots(base: Path | None = None) -> list[Path]:
    """`blib` when a build tree exists, otherwise `lib`."""
    root = base or Path.cwd()
    blib = root / "blib"
    return [blib if blib.exists() else root / "lib"]


def _read_first_line(path: Path) -> bytes:
    with path.open("rb") as fh:
        return fh.readline(_FIRST_LINE_LIMIT)


def is_source_file(path: Path, config: AuditConfig | None = None) -> bool:
    """Whether `path` looks like Perl source or POD by name or first line."""
    cfg = config or AuditConfig()
    if path.suffix.lower() in cfg.extensions:
        return True

    try:
        first = _read_first_line(path)
    except OSError as exc:
        logger.debug("[discover] cannot read %s: %s", path, exc)
        return False

    if BATCH_MARKER in first:
        return True
    if not first.startswith(b"#!"):
        return False
    return any(marker.encode("utf-8") in first for marker in cfg.shebang_markers)


def discover_files(
    roots: Iterable[Path | str], config: AuditConfig | None = None
) -> list[Path]:
    """Collect Perl files under `roots`, skipping VCS metadata directories.

    Roots that are files are checked directly. The result is sorted and free
    of duplicates.
    """
    cfg = config or AuditConfig()
    found: set[Path] = set()
    for item in roots:
        root = Path(item)
        if not root.exists():
            logger.warning("[discover] skipping missing path: %s", root)
            continue
        if root.is_file():
            if is_source_file(root, cfg):
                found.add(root)
            continue

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in cfg.ignored_dirs)
            base = Path(dirpath)
            for filename in filenames:
                path = base / filename
                if path.is_file() and is_source_file(path, cfg):
                    found.add(path)

    files = sorted(found)
    logger.debug("[discover] %d file(s) found", len(files))
    return files
