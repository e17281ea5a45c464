"""
Crash-safe file replacement.

`atomic_write(path, data)` leaves `path` either in its prior state or fully
containing `data`. The bytes go to a sibling temporary file in the same
directory (random suffix, so concurrent writers never share a temp file),
are flushed and fsync'd, and are then renamed onto the target with
os.replace. A rename inside one filesystem is atomic, so readers only ever
see the old file or the new one.

OSError from the filesystem (disk full, permission denied) propagates
unchanged; the temp file is removed first and the target is untouched.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from .validation import StorageError

PathLike = Union[str, "os.PathLike[str]"]


def atomic_write(path: PathLike, data: Union[bytes, str], *, encoding: str = "utf-8") -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    payload = data.encode(encoding) if isinstance(data, str) else bytes(data)

    fd, tmp_path = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as tmp_handle:
            tmp_handle.write(payload)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(target))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


def dump_json(payload: Any) -> str:
    """Pretty-printed UTF-8 JSON, Arabic kept readable rather than \\u-escaped."""
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def write_json(path: PathLike, payload: Any, *, label: str = "file") -> None:
    """atomic_write for JSON documents; filesystem failures become StorageError."""
    try:
        atomic_write(path, dump_json(payload))
    except OSError as exc:
        raise StorageError(exc.errno, f"Could not write {label}: {exc.strerror or exc}", str(path)) from exc


def read_json(path: PathLike, *, default: Any, expect: type, label: str = "file") -> Any:
    """
    Load a JSON document.

    A missing file is a valid empty state and yields `default`. A file that
    exists but cannot be read, is not JSON, or is not of type `expect`
    raises StorageError: it is never silently treated as empty, since the
    next save would overwrite real data.
    """
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default
    except (OSError, UnicodeDecodeError) as exc:
        raise StorageError(f"Could not read {label} at {source}: {exc}") from exc

    if not text.strip():
        return default

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageError(f"{label} at {source} is not valid JSON: {exc}") from exc

    if not isinstance(parsed, expect):
        raise StorageError(
            f"{label} at {source} must hold a JSON {expect.__name__}, got {type(parsed).__name__}"
        )
    return parsed


def remove_file(path: PathLike) -> bool:
    """Delete a file if present. Returns True when something was removed."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        return False
    return True
