# Overview: Service-layer operations for document sequences; named monotonic counters in one JSON map.

"""
Sequence Service - human-readable document numbers

Counters live in a single JSON object (counter name -> last issued value)
shared by every domain. `next_value` is the only way a value is issued:

- strictly increasing per name, starting at 1, no gaps
- durable: the whole map is persisted through the atomic writer before
  the value is returned
- serialized per counter file: concurrent callers take the same resource
  lock, so two callers can never be handed the same value

RESET: `reset` puts a counter back to 0. On its own it is unsafe while the
owning collection still holds records (the next value would collide with
an existing number). Use document_service.reset_domain, which clears the
collection first and resets the counter second under both locks.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

from ..atomic_io import read_json, write_json
from ..validation import StorageError, ValidationError
from .concurrency import resource_lock

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 4


class SequenceStore:
    def __init__(
        self,
        path: Path,
        formats: Optional[Mapping[str, tuple[str, int]]] = None,
    ) -> None:
        self.path = Path(path)
        self.formats: dict[str, tuple[str, int]] = dict(formats or {})

    @property
    def _lock_name(self) -> str:
        return f"counters:{self.path.resolve()}"

    def _load(self) -> dict[str, int]:
        counters = read_json(self.path, default={}, expect=dict, label="counter file")
        for name, value in counters.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise StorageError(f"Counter {name!r} holds an invalid value: {value!r}")
        return counters

    def _save(self, counters: dict[str, int]) -> None:
        write_json(self.path, counters, label="counter file")

    def snapshot(self) -> dict[str, int]:
        """The whole counter map, as persisted."""
        return self._load()

    def peek(self, name: str) -> int:
        """Last issued value for `name` (0 if never issued)."""
        _require_name(name)
        return self._load().get(name, 0)

    def next_value(self, name: str, *, floor: int = 0) -> int:
        """
        Atomically issue the next value for `name`.

        `floor` is the highest value the caller already knows to be in use
        (e.g., the highest number present in its collection). The issued
        value is max(current, floor) + 1, so a counter left behind by a
        crash can never hand out a number that already exists.
        """
        _require_name(name)
        with resource_lock(self._lock_name, self.path):
            counters = self._load()
            current = counters.get(name, 0)
            if floor > current:
                logger.warning(
                    "Counter %s was behind its collection (%d < %d); advancing",
                    name, current, floor,
                )
                current = floor
            value = current + 1
            counters[name] = value
            self._save(counters)
        return value

    def reset(self, name: str) -> int:
        """
        Set `name` back to 0 and return the previous value.

        Low-level primitive: does not look at the owning collection.
        """
        _require_name(name)
        with resource_lock(self._lock_name, self.path):
            counters = self._load()
            previous = counters.get(name, 0)
            counters[name] = 0
            self._save(counters)
        logger.info("Counter %s reset (was %d)", name, previous)
        return previous

    def format(self, name: str, value: int) -> str:
        """
        Render `value` as the fixed-width code for `name`.

        Prefix and width come from configuration; unknown counters use
        their own name as prefix with DEFAULT_WIDTH digits.
        """
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f"Sequence value must be a non-negative integer, got {value!r}")
        prefix, width = self.formats.get(name, (name, DEFAULT_WIDTH))
        return f"{prefix}{value:0{width}d}"

    def lock(self):
        """Hold the counter file lock (used by the paired collection reset)."""
        return resource_lock(self._lock_name, self.path)


def _require_name(name: str) -> None:
    if not name or not isinstance(name, str):
        raise ValidationError("Counter name is required")
