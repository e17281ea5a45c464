# Overview: Service-layer reconciliation of artifact files on disk with the records that own them.

"""
File Registry

A derived view, never a source of truth. Every call rebuilds it from two
independent inputs:

- each known collection (records carry `artifactFilename`)
- each known directory (what is physically on disk)

joined on the filename. Outcomes per file:

- linked:   a record names the file and the file exists
- orphaned: the file exists but no record names it
- broken:   a record names a file that is not on disk

Orphaned and broken entries are diagnostics only; nothing here repairs
them implicitly. The one destructive bulk operation, cleanup_orphans,
does nothing unless the caller passes confirm=True.

delete_by_filename removes the record's reference first (persisted via
the collection store), then the file. Finding no owning record is a
Degraded outcome: a RegistryResult with ok=False and a warning in the
log, with no file-system change.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..atomic_io import remove_file
from ..text_utils import format_file_size
from ..time_utils import to_utc_z
from ..validation import NotFoundError, ValidationError
from .collection_service import ARTIFACT_FIELDS, Page, RecordCollection, sort_key

logger = logging.getLogger(__name__)

CATEGORIES = {
    "pdf": ("pdf",),
    "cad": ("dwg", "dxf", "dwt"),
    "cnc": ("nc", "txt"),
    "image": ("jpg", "jpeg", "png", "gif", "bmp", "webp"),
    "document": ("doc", "docx", "xls", "xlsx"),
}

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".dwg": "application/acad",
    ".dxf": "application/dxf",
    ".nc": "text/plain",
    ".txt": "text/plain",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

LINKED = "linked"
ORPHANED = "orphaned"
BROKEN = "broken"

RECENT_FILES = 10


def file_category(filename: str) -> str:
    extension = Path(filename).suffix.lower().lstrip(".")
    for category, extensions in CATEGORIES.items():
        if extension in extensions:
            return category
    return "other"


def mime_type(extension: str) -> str:
    extension = (extension or "").lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return MIME_TYPES.get(extension, "application/octet-stream")


@dataclass(frozen=True)
class FileSource:
    """One scanned directory, optionally paired with the collection that owns its files."""
    type: str
    directory: Path
    collection: Optional[RecordCollection] = None


@dataclass
class FileEntry:
    id: str
    name: str
    path: str
    relative_path: str
    type: str
    category: str
    extension: str
    size: int
    formatted_size: str
    created_at: Optional[str]
    modified_at: Optional[str]
    status: str
    record_id: Optional[str] = None
    document_number: Optional[str] = None
    counterparty: Optional[str] = None
    created_by: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "id": data["id"],
            "name": data["name"],
            "path": data["path"],
            "relativePath": data["relative_path"],
            "type": data["type"],
            "category": data["category"],
            "extension": data["extension"],
            "size": data["size"],
            "formattedSize": data["formatted_size"],
            "createdAt": data["created_at"],
            "modifiedAt": data["modified_at"],
            "status": data["status"],
            "recordId": data["record_id"],
            "documentNumber": data["document_number"],
            "counterparty": data["counterparty"],
            "createdBy": data["created_by"],
        }


@dataclass(frozen=True)
class RegistryResult:
    ok: bool
    filename: str
    message: str
    type: Optional[str] = None
    record_id: Optional[str] = None
    file_removed: bool = False


@dataclass
class FileFilters:
    type: Optional[str] = None
    category: Optional[str] = None
    extension: Optional[str] = None
    search: Optional[str] = None
    created_by: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 50


_SORTABLE = {
    "name": "name",
    "size": "size",
    "createdAt": "created_at",
    "created_at": "created_at",
    "modifiedAt": "modified_at",
    "modified_at": "modified_at",
    "type": "type",
}


def _timestamp(value: float) -> str:
    return to_utc_z(datetime.fromtimestamp(value, tz=timezone.utc))


class FileRegistry:
    def __init__(
        self,
        sources: Iterable[FileSource],
        *,
        root: Optional[Path] = None,
        max_limit: int = 500,
    ) -> None:
        self.sources: list[FileSource] = list(sources)
        self.root = Path(root) if root else None
        self.max_limit = max_limit

    def _sources(self, type_: Optional[str] = None) -> list[FileSource]:
        if type_ is None:
            return self.sources
        matched = [s for s in self.sources if s.type == type_]
        if not matched:
            raise ValidationError(f"Unknown file type: {type_}")
        return matched

    def _relative(self, path: Path) -> str:
        if self.root is not None:
            try:
                return path.relative_to(self.root).as_posix()
            except ValueError:
                pass
        return path.name

    def _entry(self, source: FileSource, path: Path, record: Optional[dict]) -> FileEntry:
        stat = path.stat()
        counterparty_field = source.collection.spec.counterparty_field if source.collection else None
        return FileEntry(
            id=f"{source.type}-{path.name}",
            name=path.name,
            path=str(path),
            relative_path=self._relative(path),
            type=source.type,
            category=file_category(path.name),
            extension=path.suffix.lower(),
            size=stat.st_size,
            formatted_size=format_file_size(stat.st_size),
            created_at=(record or {}).get("createdAt") or _timestamp(stat.st_ctime),
            modified_at=_timestamp(stat.st_mtime),
            status=LINKED if record is not None else ORPHANED,
            record_id=(record or {}).get("id"),
            document_number=(record or {}).get("number"),
            counterparty=(record or {}).get(counterparty_field) if counterparty_field else None,
            created_by=(record or {}).get("createdBy"),
        )

    def _scan_source(self, source: FileSource) -> tuple[list[FileEntry], list[FileEntry]]:
        """(files on disk, broken references) for one source."""
        records = source.collection.load_all() if source.collection else []
        by_filename = {r["artifactFilename"]: r for r in records if r.get("artifactFilename")}

        files: list[FileEntry] = []
        seen: set[str] = set()
        if source.directory.is_dir():
            for path in sorted(source.directory.iterdir()):
                # Dotfiles are in-flight atomic-write temps or lock sidecars.
                if path.name.startswith(".") or not path.is_file():
                    continue
                seen.add(path.name)
                files.append(self._entry(source, path, by_filename.get(path.name)))

        broken = []
        for filename, record in by_filename.items():
            if filename in seen:
                continue
            path = source.directory / filename
            broken.append(FileEntry(
                id=f"{source.type}-{filename}",
                name=filename,
                path=str(path),
                relative_path=self._relative(path),
                type=source.type,
                category=file_category(filename),
                extension=path.suffix.lower(),
                size=0,
                formatted_size=format_file_size(0),
                created_at=record.get("createdAt"),
                modified_at=None,
                status=BROKEN,
                record_id=record.get("id"),
                document_number=record.get("number"),
                counterparty=record.get(source.collection.spec.counterparty_field),
                created_by=record.get("createdBy"),
            ))
        return files, broken

    def scan(self, type_: Optional[str] = None) -> tuple[list[FileEntry], list[FileEntry]]:
        files: list[FileEntry] = []
        broken: list[FileEntry] = []
        for source in self._sources(type_):
            source_files, source_broken = self._scan_source(source)
            files.extend(source_files)
            broken.extend(source_broken)
        return files, broken

    # ------------------------------------------------------------------
    # Listing and diagnostics
    # ------------------------------------------------------------------

    def list(self, filters: Optional[FileFilters] = None) -> Page:
        filters = filters or FileFilters()
        files, _ = self.scan(filters.type)

        if filters.category:
            files = [f for f in files if f.category == filters.category]
        if filters.extension:
            wanted = filters.extension.lower()
            if not wanted.startswith("."):
                wanted = "." + wanted
            files = [f for f in files if f.extension == wanted]
        if filters.status:
            files = [f for f in files if f.status == filters.status]
        if filters.created_by:
            files = [f for f in files if f.created_by == filters.created_by]
        if filters.search:
            needle = filters.search.strip().lower()
            files = [
                f for f in files
                if any(
                    needle in value.lower()
                    for value in (f.name, f.document_number, f.counterparty, f.created_by)
                    if isinstance(value, str)
                )
            ]
        if filters.start_date:
            files = [f for f in files if (f.created_at or "") >= filters.start_date]
        if filters.end_date:
            # A bare date bound includes the whole day.
            end = filters.end_date + "T23:59:59.999Z" if len(filters.end_date) == 10 else filters.end_date
            files = [f for f in files if (f.created_at or "") <= end]

        attr = _SORTABLE.get(filters.sort_by, "created_at")
        descending = str(filters.sort_order).lower() != "asc"
        files.sort(
            key=lambda f: sort_key(f.name.lower() if attr == "name" else getattr(f, attr)),
            reverse=descending,
        )

        limit = min(max(int(filters.limit or 1), 1), self.max_limit)
        page = max(int(filters.page or 1), 1)
        start = (page - 1) * limit
        return Page(
            items=[f.to_dict() for f in files[start:start + limit]],
            page=page,
            limit=limit,
            total=len(files),
            total_pages=math.ceil(len(files) / limit) if files else 0,
        )

    def get(self, file_id: str) -> FileEntry:
        files, _ = self.scan()
        for entry in files:
            if entry.id == file_id:
                return entry
        raise NotFoundError(f"File not found: {file_id}")

    def orphans(self) -> list[FileEntry]:
        files, _ = self.scan()
        return [f for f in files if f.status == ORPHANED]

    def broken(self) -> list[FileEntry]:
        _, broken = self.scan()
        return broken

    def statistics(self) -> dict:
        files, broken = self.scan()
        by_type: dict[str, int] = {}
        by_category: dict[str, int] = {}
        by_extension: dict[str, int] = {}
        by_creator: dict[str, int] = {}
        total_size = 0
        for entry in files:
            total_size += entry.size
            by_type[entry.type] = by_type.get(entry.type, 0) + 1
            by_category[entry.category] = by_category.get(entry.category, 0) + 1
            by_extension[entry.extension] = by_extension.get(entry.extension, 0) + 1
            creator = entry.created_by or "unknown"
            by_creator[creator] = by_creator.get(creator, 0) + 1

        recent = sorted(files, key=lambda f: f.modified_at or "", reverse=True)[:RECENT_FILES]
        return {
            "totalFiles": len(files),
            "totalSize": total_size,
            "formattedTotalSize": format_file_size(total_size),
            "byType": by_type,
            "byCategory": by_category,
            "byExtension": by_extension,
            "byCreator": by_creator,
            "orphaned": sum(1 for f in files if f.status == ORPHANED),
            "broken": len(broken),
            "recentFiles": [f.to_dict() for f in recent],
        }

    def duplicates(self) -> list[dict]:
        """Filenames present in more than one directory."""
        files, _ = self.scan()
        groups: dict[str, list[FileEntry]] = {}
        for entry in files:
            groups.setdefault(entry.name, []).append(entry)
        return [
            {"name": name, "count": len(entries), "files": [e.to_dict() for e in entries]}
            for name, entries in sorted(groups.items())
            if len(entries) > 1
        ]

    def storage_usage(self) -> dict:
        files, _ = self.scan()
        usage: dict[str, dict] = {s.type: {"count": 0, "size": 0} for s in self.sources}
        for entry in files:
            bucket = usage[entry.type]
            bucket["count"] += 1
            bucket["size"] += entry.size
        for bucket in usage.values():
            bucket["formattedSize"] = format_file_size(bucket["size"])
        return usage

    mime_type = staticmethod(mime_type)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def delete_by_filename(self, filename: str, type_: Optional[str] = None) -> RegistryResult:
        """
        Drop the owning record's artifact reference, then the file.

        Idempotent: when no record references `filename` (including a
        second call for the same file) the result is ok=False and the
        file system is left alone.
        """
        if not filename or Path(filename).name != filename:
            raise ValidationError(f"Invalid filename: {filename!r}")

        for source in self._sources(type_):
            collection = source.collection
            if collection is None:
                continue
            with collection.lock():
                record = collection.find_by_artifact(filename)
                if record is None:
                    continue
                collection.patch_artifact(record["id"], **{key: None for key in ARTIFACT_FIELDS})
                removed = remove_file(source.directory / filename)

            if not removed:
                logger.warning("Artifact %s was already missing from %s", filename, source.directory)
            logger.info("Deleted artifact %s of %s %s", filename, source.type, record.get("number"))
            return RegistryResult(
                ok=True,
                filename=filename,
                message="File deleted" if removed else "Reference removed; file was already missing",
                type=source.type,
                record_id=record.get("id"),
                file_removed=removed,
            )

        logger.warning("No record references artifact %s; nothing deleted", filename)
        return RegistryResult(ok=False, filename=filename, message="No record references this file")

    def cleanup_orphans(self, *, confirm: bool = False) -> dict:
        """
        Delete orphaned files. Without confirm=True this only reports
        the candidates.
        """
        candidates = self.orphans()
        if not confirm:
            return {
                "confirmed": False,
                "candidates": [f.to_dict() for f in candidates],
                "deleted": [],
            }

        deleted: list[str] = []
        for source in self.sources:
            targets = [f for f in candidates if f.type == source.type]
            if not targets:
                continue
            if source.collection is None:
                deleted.extend(self._remove_orphans(source, targets))
                continue
            # Re-check under the lock: a record may have claimed the file meanwhile.
            with source.collection.lock():
                deleted.extend(self._remove_orphans(source, targets))

        logger.warning("Removed %d orphaned files", len(deleted))
        return {
            "confirmed": True,
            "candidates": [f.to_dict() for f in candidates],
            "deleted": deleted,
        }

    def _remove_orphans(self, source: FileSource, targets: Sequence[FileEntry]) -> list[str]:
        claimed: set[str] = set()
        if source.collection is not None:
            claimed = {
                r["artifactFilename"]
                for r in source.collection.load_all()
                if r.get("artifactFilename")
            }
        removed = []
        for entry in targets:
            if entry.name in claimed:
                continue
            if remove_file(source.directory / entry.name):
                removed.append(entry.relative_path)
        return removed
