"""Storage helpers — reading sources and writing report documents.

Reports are written all-or-nothing: the JSON is serialized in memory,
written to a temporary file next to the target, then moved into place.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from evalset.errors import PersistenceError, SourceReadError

logger = logging.getLogger(__name__)

DEFAULT_REPORTS_DIR = Path(".evalset") / "reports"


def resolve_path(cwd: str | Path | None, path: str | Path) -> Path:
    """Absolute paths pass through, relative ones resolve against ``cwd``."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    base = Path(cwd) if cwd is not None else Path.cwd()
    return (base / p).resolve()


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadError(f"Cannot read {path}: {e}") from e


def write_json(path: Path, data: Any) -> Path:
    """Atomically write ``data`` as indented JSON with a trailing newline.

    Raises:
        PersistenceError: If the directory or the file cannot be written.
    """
    payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            f.write(payload)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(f"Cannot write report {path}: {e}") from e

    logger.debug("Wrote %d bytes to %s", len(payload), path)
    return path


def write_new_text(path: Path, text: str, force: bool = False) -> Path:
    """Create ``path`` with ``text``; refuse to overwrite unless ``force``."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w" if force else "x", encoding="utf-8") as f:
            f.write(text)
    except FileExistsError as e:
        raise PersistenceError(
            f"{path} already exists (use --force to overwrite)"
        ) from e
    except OSError as e:
        raise PersistenceError(f"Cannot write {path}: {e}") from e
    return path


# ---------------------------------------------------------------------------
# Default report paths
# ---------------------------------------------------------------------------


def sanitize_slug(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "evalset"


def timestamp_slug(now: datetime | None = None) -> str:
    """Compact local timestamp, e.g. ``20261018T154200``."""
    return (now or datetime.now()).strftime("%Y%m%dT%H%M%S")


def default_run_report_path(
    cwd: str | Path | None,
    dataset_name: str,
    variant_name: str,
    reports_dir: str | Path = DEFAULT_REPORTS_DIR,
    now: datetime | None = None,
) -> Path:
    filename = (
        f"run-{sanitize_slug(dataset_name)}-{sanitize_slug(variant_name)}"
        f"-{timestamp_slug(now)}.json"
    )
    return resolve_path(cwd, Path(reports_dir) / filename)


def default_compare_report_path(
    cwd: str | Path | None,
    dataset_name: str,
    reports_dir: str | Path = DEFAULT_REPORTS_DIR,
    now: datetime | None = None,
) -> Path:
    filename = f"compare-{sanitize_slug(dataset_name)}-{timestamp_slug(now)}.json"
    return resolve_path(cwd, Path(reports_dir) / filename)
