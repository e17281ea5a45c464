# Overview: Service-layer workflow for business documents; records, generated artifacts and paired resets.

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from flask import current_app

from ..atomic_io import atomic_write, remove_file
from ..domains import DomainSpec
from ..extensions import vault
from ..text_utils import sanitize_name
from ..time_utils import now_z, to_dmy
from ..validation import DocVaultError, StorageError, ValidationError
from .collection_service import Page, QueryOptions
from .compose_service import Attachment, MergePlan, StampOptions
from .file_registry_service import RegistryResult

AttachmentSource = Union[bytes, bytearray, str, Path]


def artifact_filename(spec: DomainSpec, record: Mapping[str, Any], *, max_name: int = 30) -> str:
    """<number>_<sanitized counterparty>_<DD-MM-YYYY>.pdf"""
    number = record.get("number")
    if not number:
        raise ValidationError("Record has no document number")
    try:
        issued = to_dmy(record.get(spec.date_field))
    except ValueError:
        raise ValidationError(f"Invalid {spec.date_field}: {record.get(spec.date_field)!r}")
    counterparty = sanitize_name(record.get(spec.counterparty_field), max_name)
    return f"{number}_{counterparty}_{issued}.pdf"


def create_record(key: str, payload: Mapping[str, Any], *, created_by: Optional[str] = None) -> dict:
    return vault.collection(key).create(payload, created_by=created_by)


def update_record(key: str, record_id: str, payload: Mapping[str, Any]) -> dict:
    return vault.collection(key).update(record_id, payload)


def get_record(key: str, record_id: str) -> dict:
    return vault.collection(key).get(record_id)


def list_records(
    key: str,
    *,
    options: Optional[QueryOptions] = None,
    visible: Optional[Callable[[dict], bool]] = None,
) -> Page:
    if options is None:
        options = QueryOptions(limit=vault.page_limit_default)
    return vault.collection(key).query(options, visible=visible)


def delete_record(key: str, record_id: str) -> dict:
    """
    Delete a record together with its artifact file.

    The artifact cleanup is a side effect: if the registry cannot find or
    remove the file the failure is logged as degraded and the record is
    still deleted.
    """
    collection = vault.collection(key)
    record = collection.get(record_id)

    artifact: Optional[RegistryResult] = None
    filename = record.get("artifactFilename")
    if filename:
        try:
            artifact = vault.registry.delete_by_filename(filename, key)
        except (DocVaultError, OSError) as exc:
            current_app.logger.warning(
                "Degraded: artifact %s of %s %s not removed: %s",
                filename, key, record.get("number"), exc,
            )
        else:
            if not artifact.ok:
                current_app.logger.warning(
                    "Degraded: artifact %s of %s %s: %s",
                    filename, key, record.get("number"), artifact.message,
                )

    removed = collection.delete(record_id)
    return {"record": removed, "artifact": artifact}


def generate_artifact(
    key: str,
    record_id: str,
    attachment: Optional[AttachmentSource] = None,
    *,
    issue_date: Optional[str] = None,
) -> dict:
    """
    Render, merge, stamp and store the PDF for one record.

    Order of effects:
    1) validate the user attachment (rejected before any rendering)
    2) render and compose in memory
    3) atomically write the final file
    4) point the record at it
    5) only then remove the previous artifact, if it had another name

    A failure in 1-3 leaves the record and its previous artifact untouched.
    """
    spec = vault.spec(key)
    collection = vault.collection(key)
    record = collection.get(record_id)

    user_attachment = None
    if attachment is not None:
        user_attachment = Attachment.from_source(attachment, label="user attachment")

    rendered = vault.renderer.render(spec, record)
    plan = MergePlan(base=rendered)
    if user_attachment is not None:
        plan.add_user_attachment(user_attachment)

    if record.get("includeAddendum") or record.get("includeStaticFile"):
        addendum = vault.addendum_path
        if addendum.is_file():
            plan.add_addendum(Attachment.from_source(addendum, label="terms and conditions"))
        else:
            current_app.logger.warning(
                "Degraded: %s %s asks for the addendum but %s is missing",
                key, record.get("number"), addendum,
            )

    composed = vault.composer.compose_plan(
        plan,
        StampOptions(doc_code=spec.doc_code, accent=spec.accent, issue_date=issue_date),
    )

    filename = artifact_filename(spec, record, max_name=vault.filename_max_name)
    target = vault.artifact_dir(key) / filename
    try:
        atomic_write(target, composed.pdf_bytes)
    except OSError as exc:
        current_app.logger.exception("Failed to write artifact %s", target)
        raise StorageError(exc.errno, f"Could not write artifact: {exc.strerror or exc}", str(target)) from exc

    previous = record.get("artifactFilename")
    try:
        updated = collection.patch_artifact(
            record_id,
            artifactFilename=filename,
            artifactLanguage=composed.language,
            artifactGeneratedAt=now_z(),
            artifactMerged=bool(plan.attachments),
            artifactPageCount=composed.page_count,
        )
    except DocVaultError:
        # The record still points at its previous file; drop the one nobody references.
        if filename != previous:
            remove_file(target)
        raise

    if previous and previous != filename:
        if not remove_file(vault.artifact_dir(key) / previous):
            current_app.logger.warning("Degraded: previous artifact %s was already gone", previous)

    current_app.logger.info(
        "Generated %s for %s %s (%d pages)",
        filename, key, record.get("number"), composed.page_count,
    )
    return {
        "record": updated,
        "filename": filename,
        "path": str(target),
        "language": composed.language,
        "direction": composed.direction,
        "pages": composed.page_counts(),
    }


def reset_domain(key: str) -> dict:
    """
    Clear a collection and reset its counter as one operation.

    Both locks are held (collection, then counter). The collection is
    emptied first, so a crash before the counter reset leaves an empty
    collection with a higher counter, which never mints a duplicate.
    """
    spec = vault.spec(key)
    collection = vault.collection(key)
    sequences = vault.sequences
    artifact_dir = vault.artifact_dir(key)

    with collection.lock(), sequences.lock():
        records = collection.load_all()
        deleted_files = 0
        for record in records:
            filename = record.get("artifactFilename")
            if filename and remove_file(artifact_dir / Path(filename).name):
                deleted_files += 1
        collection.clear()
        previous = sequences.reset(spec.counter)

    current_app.logger.warning(
        "Reset %s: removed %d records and %d files, counter %s was %d",
        key, len(records), deleted_files, spec.counter, previous,
    )
    return {
        "counter": spec.counter,
        "previousValue": previous,
        "deletedRecords": len(records),
        "deletedFiles": deleted_files,
        "nextNumber": sequences.format(spec.counter, 1),
    }
