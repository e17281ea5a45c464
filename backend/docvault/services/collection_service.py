# Overview: Service-layer operations for record collections; one JSON array file per domain.

"""
Record Collection Service

WHY: Every business document type keeps its records in one pretty-printed
JSON array. This module is the only code that reads or writes those
files, so the collection invariants hold in one place.

INVARIANTS:
- The file on disk is always a complete JSON array (atomic replace).
- A missing file is an empty collection, not an error.
- `number` is unique within the collection and increases in creation
  order. Numbers are never reused, even after a delete, because they come
  from the shared SequenceStore.
- `id`, `number`, `createdBy` and `createdAt` never change after create.

CONCURRENCY: create/update/delete run their whole load-modify-save cycle
under the collection's resource lock, so two writers can no longer read
the same snapshot and clobber each other.

QUERYING: filtering and pagination are a full scan of the in-memory list.
Collections hold one organization's documents, not internet-scale data.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

from ..atomic_io import read_json, write_json
from ..domains import DomainSpec
from ..text_utils import detect_record_language
from ..time_utils import now_z, parse_iso_datetime, period_starts, today_iso
from ..validation import (
    ConflictError,
    NotFoundError,
    RecordPatchPolicy,
    StorageError,
    normalize_language,
    validate_patch,
)
from .concurrency import resource_lock
from .sequence_service import SequenceStore

logger = logging.getLogger(__name__)

ARTIFACT_FIELDS = (
    "artifactFilename",
    "artifactLanguage",
    "artifactGeneratedAt",
    "artifactMerged",
    "artifactPageCount",
)

DEFAULT_STATUS = "pending"

_TRAILING_DIGITS = re.compile(r"(\d+)$")

Record = dict
Predicate = Callable[[Record], bool]


@dataclass
class Page:
    items: list[Record]
    page: int
    limit: int
    total: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "pagination": {
                "currentPage": self.page,
                "totalPages": self.total_pages,
                "total": self.total,
                "limit": self.limit,
            },
        }


@dataclass
class QueryOptions:
    search: Optional[str] = None
    filters: Mapping[str, Any] = field(default_factory=dict)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 10


def sequence_of(number: Any) -> int:
    """Numeric part of a document number ("PO00007" -> 7, junk -> 0)."""
    if not isinstance(number, str):
        return 0
    match = _TRAILING_DIGITS.search(number)
    return int(match.group(1)) if match else 0


def sort_key(value: Any) -> tuple:
    # Numbers before strings before missing values, so mixed columns still sort.
    if value is None or value == "":
        return (2, "")
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value).lower())


class RecordCollection:
    def __init__(
        self,
        path: Path,
        spec: DomainSpec,
        sequences: SequenceStore,
        *,
        default_language: str = "ar",
        max_limit: int = 500,
    ) -> None:
        self.path = Path(path)
        self.spec = spec
        self.sequences = sequences
        self.default_language = normalize_language(default_language)
        self.max_limit = max_limit
        self.policy = RecordPatchPolicy(
            protected_fields=frozenset(ARTIFACT_FIELDS),
            required_on_create=spec.required_on_create,
        )

    @property
    def name(self) -> str:
        return self.spec.key

    def lock(self):
        return resource_lock(f"collection:{self.path.resolve()}", self.path)

    # ------------------------------------------------------------------
    # Raw load / save
    # ------------------------------------------------------------------

    def load_all(self) -> list[Record]:
        records = read_json(self.path, default=[], expect=list, label=f"{self.name} collection")
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise StorageError(f"{self.name} collection entry {index} is not an object")
        return records

    def save_all(self, records: Iterable[Record]) -> None:
        write_json(self.path, list(records), label=f"{self.name} collection")

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Record:
        for record in self.load_all():
            if record.get("id") == record_id:
                return record
        raise NotFoundError(f"{self.name} record not found: {record_id}")

    def find_by(self, field_name: str, value: Any) -> Optional[Record]:
        for record in self.load_all():
            if record.get(field_name) == value:
                return record
        return None

    def detect_language(self, record: Mapping[str, Any]) -> str:
        return detect_record_language(record, self.spec.language_fields, self.default_language)

    def create(
        self,
        payload: Mapping[str, Any],
        *,
        created_by: Optional[str] = None,
        unique_fields: Iterable[str] = (),
    ) -> Record:
        """
        Mint a number, stamp timestamps, append and persist.

        `unique_fields` names payload fields that must not collide with an
        existing record (e.g., supplier email); a collision is a
        ConflictError and no number is consumed.
        """
        patch = validate_patch(current=None, payload=dict(payload), policy=self.policy)
        language = self.detect_language(patch)

        with self.lock():
            records = self.load_all()
            self._check_unique(records, patch, unique_fields, exclude_id=None)

            floor = max((sequence_of(r.get("number")) for r in records), default=0)
            value = self.sequences.next_value(self.spec.counter, floor=floor)
            stamp = now_z()

            record: Record = {
                "id": self.spec.format_id(value),
                "number": self.sequences.format(self.spec.counter, value),
                "date": today_iso(),
                "status": DEFAULT_STATUS,
            }
            record.update(patch)
            record["createdBy"] = created_by
            record["createdAt"] = stamp
            record["updatedAt"] = stamp
            record["language"] = language

            if any(r.get("number") == record["number"] for r in records):
                # Only reachable if the counter file was edited by hand.
                raise ConflictError(f"Document number already in use: {record['number']}")

            records.append(record)
            self.save_all(records)

        logger.info("Created %s %s", self.name, record["number"])
        return record

    def update(
        self,
        record_id: str,
        payload: Mapping[str, Any],
        *,
        unique_fields: Iterable[str] = (),
    ) -> Record:
        with self.lock():
            records = self.load_all()
            index = self._index_of(records, record_id)
            current = records[index]
            patch = validate_patch(current=current, payload=dict(payload), policy=self.policy)
            self._check_unique(records, patch, unique_fields, exclude_id=record_id)

            updated = dict(current)
            updated.update(patch)
            if patch:
                updated["language"] = self.detect_language(updated)
            updated["updatedAt"] = now_z()

            records[index] = updated
            self.save_all(records)
        return updated

    def delete(self, record_id: str) -> Record:
        with self.lock():
            records = self.load_all()
            index = self._index_of(records, record_id)
            removed = records.pop(index)
            self.save_all(records)
        logger.info("Deleted %s %s", self.name, removed.get("number"))
        return removed

    def patch_artifact(self, record_id: str, **fields: Any) -> Record:
        """
        Set (or, with None values, remove) artifact reference fields.

        Bypasses payload validation and language detection: only the
        artifact bookkeeping of the record changes.
        """
        unknown = set(fields) - set(ARTIFACT_FIELDS)
        if unknown:
            raise ValueError(f"Not artifact fields: {', '.join(sorted(unknown))}")

        with self.lock():
            records = self.load_all()
            index = self._index_of(records, record_id)
            updated = dict(records[index])
            for key, value in fields.items():
                if value is None:
                    updated.pop(key, None)
                else:
                    updated[key] = value
            updated["updatedAt"] = now_z()
            records[index] = updated
            self.save_all(records)
        return updated

    def find_by_artifact(self, filename: str) -> Optional[Record]:
        if not filename:
            return None
        return self.find_by("artifactFilename", filename)

    def clear(self) -> list[Record]:
        """Empty the collection; returns what was removed. Caller pairs this with a counter reset."""
        with self.lock():
            removed = self.load_all()
            self.save_all([])
        return removed

    def _index_of(self, records: list[Record], record_id: str) -> int:
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                return index
        raise NotFoundError(f"{self.name} record not found: {record_id}")

    def _check_unique(
        self,
        records: list[Record],
        patch: Mapping[str, Any],
        unique_fields: Iterable[str],
        *,
        exclude_id: Optional[str],
    ) -> None:
        for field_name in unique_fields:
            value = patch.get(field_name)
            if value in (None, ""):
                continue
            needle = str(value).strip().lower()
            for record in records:
                if record.get("id") == exclude_id:
                    continue
                existing = record.get(field_name)
                if existing not in (None, "") and str(existing).strip().lower() == needle:
                    raise ConflictError(f"{field_name} '{value}' already exists in {self.name}")

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _matches_search(self, record: Record, needle: str) -> bool:
        for field_name in ("number",) + tuple(self.spec.search_fields):
            value = record.get(field_name)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False

    def filter(
        self,
        records: Iterable[Record],
        options: QueryOptions,
        visible: Optional[Predicate] = None,
    ) -> list[Record]:
        result = [r for r in records if visible is None or visible(r)]

        for key, wanted in (options.filters or {}).items():
            if wanted in (None, ""):
                continue
            result = [r for r in result if r.get(key) == wanted]

        if options.search:
            needle = options.search.strip().lower()
            if needle:
                result = [r for r in result if self._matches_search(r, needle)]

        date_field = self.spec.date_field
        if options.start_date:
            result = [r for r in result if str(r.get(date_field) or "") >= options.start_date]
        if options.end_date:
            result = [r for r in result if str(r.get(date_field) or "") <= options.end_date]

        descending = str(options.sort_order).lower() != "asc"
        # Missing values stay last in either direction.
        present = [r for r in result if r.get(options.sort_by) not in (None, "")]
        missing = [r for r in result if r.get(options.sort_by) in (None, "")]
        present.sort(key=lambda r: sort_key(r.get(options.sort_by)), reverse=descending)
        return present + missing

    def query(
        self,
        options: Optional[QueryOptions] = None,
        *,
        visible: Optional[Predicate] = None,
    ) -> Page:
        """
        Search, bound, sort and paginate the collection.

        `visible` is a caller-supplied ownership predicate ("only my
        records"); it runs before pagination so page counts are right.
        """
        options = options or QueryOptions()
        matched = self.filter(self.load_all(), options, visible)

        limit = min(max(int(options.limit or 1), 1), self.max_limit)
        page = max(int(options.page or 1), 1)
        start = (page - 1) * limit

        return Page(
            items=matched[start:start + limit],
            page=page,
            limit=limit,
            total=len(matched),
            total_pages=math.ceil(len(matched) / limit) if matched else 0,
        )

    def stats(self, *, visible: Optional[Predicate] = None) -> dict:
        records = [r for r in self.load_all() if visible is None or visible(r)]
        start_of_day, start_of_week, start_of_month = period_starts()

        by_status: dict[str, int] = {}
        today = this_week = this_month = 0
        for record in records:
            status = record.get("status") or DEFAULT_STATUS
            by_status[status] = by_status.get(status, 0) + 1

            try:
                created = parse_iso_datetime(record.get("createdAt"))
            except ValueError:
                created = None
            if created is None:
                continue
            if created >= start_of_month:
                this_month += 1
            if created >= start_of_week:
                this_week += 1
            if created >= start_of_day:
                today += 1

        return {
            "total": len(records),
            "byStatus": by_status,
            "thisMonth": this_month,
            "thisWeek": this_week,
            "today": today,
        }
