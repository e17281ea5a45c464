from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any


# Upper bound for a single line quantity or unit price. Anything larger is
# almost certainly a typo (an extra few zeros) rather than a real order.
MAX_LINE_VALUE = Decimal("999999999")

SUPPORTED_LANGUAGES = ("ar", "en")

_DIRECTION_ALIASES = {
    "rtl": "ar",
    "ltr": "en",
}


class DocVaultError(Exception):
    """Base class for every error raised by the document store."""

    status_code = 500


class ValidationError(DocVaultError, ValueError):
    """400-level input problem (malformed attachment, bad field, bad language)."""

    status_code = 400


class NotFoundError(DocVaultError, LookupError):
    """404-level: record or file absent."""

    status_code = 404


class ConflictError(DocVaultError, ValueError):
    """409-level business rule conflict (e.g., duplicate supplier email)."""

    status_code = 409


class StorageError(DocVaultError, OSError):
    """
    Disk, permission or corruption failure on a collection/counter file.

    Always fatal to the current operation. Never retried here; the caller
    decides whether to retry the whole operation.
    """

    status_code = 500


class RenderError(DocVaultError):
    """The renderer produced something other than canonical pages."""

    status_code = 500


IDENTITY_FIELDS = frozenset({"id", "number", "createdBy", "createdAt"})
SYSTEM_FIELDS = frozenset({"updatedAt"})


@dataclass(frozen=True)
class RecordPatchPolicy:
    """
    Central policy layer for record writes:
    - immutable_fields: identity fields fixed at creation time
    - system_fields: stamped by the store, silently dropped from input
    - protected_fields: written only by the store's own bookkeeping;
      a payload may echo the current value but never set or change one
    - required_on_create: fields a caller must supply on create
    """
    immutable_fields: frozenset[str] = IDENTITY_FIELDS
    system_fields: frozenset[str] = SYSTEM_FIELDS
    protected_fields: frozenset[str] = field(default_factory=frozenset)
    required_on_create: frozenset[str] = field(default_factory=frozenset)


DEFAULT_POLICY = RecordPatchPolicy()


def validate_patch(
    *,
    current: dict | None,
    payload: Any,
    policy: RecordPatchPolicy = DEFAULT_POLICY,
) -> dict:
    """
    Validates + normalizes an incoming record payload.

    current=None: create semantics. Identity fields in the payload are
    ignored (the store mints them) and required_on_create is enforced.

    current=<record>: update semantics. An identity field may be echoed
    back unchanged, but any attempt to change one is rejected.

    Protected fields raise ValidationError on either path unless the
    payload repeats the stored value.

    Returns a cleaned patch dict holding only mutable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid record payload")

    if current is None:
        missing = sorted(f for f in policy.required_on_create if not payload.get(f))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            raise ValidationError(f"Field names must be strings, got {key!r}")
        if key in policy.system_fields:
            continue
        if key in policy.protected_fields:
            existing = current.get(key) if current is not None else None
            if value != existing:
                raise ValidationError(f"Field is not writable: {key}")
            continue
        if key in policy.immutable_fields:
            if current is not None and current.get(key) != value:
                raise ValidationError(f"Field is immutable: {key}")
            continue
        if isinstance(value, str):
            value = value.strip()
        patch[key] = value

    if "items" in patch:
        enforce_rules_items(patch["items"])

    return patch


def as_decimal(value: Any, label: str) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{label} must be a number")


def enforce_rules_items(items: Any) -> None:
    """
    Line items must be a list of objects whose quantity and unitPrice
    (when present) are non-negative numbers within MAX_LINE_VALUE.
    """
    if items is None:
        return
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        for key in ("quantity", "unitPrice"):
            amount = as_decimal(item.get(key), f"items[{index}].{key}")
            if not amount.is_finite():
                raise ValidationError(f"items[{index}].{key} must be a finite number")
            if amount < 0:
                raise ValidationError(f"items[{index}].{key} must be >= 0")
            if amount > MAX_LINE_VALUE:
                raise ValidationError(f"items[{index}].{key} cannot exceed {MAX_LINE_VALUE}")


def normalize_language(value: str | None) -> str:
    """Map a language code or a direction ("rtl"/"ltr") onto "ar"/"en"."""
    if value is None:
        raise ValidationError("Language is required")
    code = str(value).strip().lower()
    code = _DIRECTION_ALIASES.get(code, code)
    if code not in SUPPORTED_LANGUAGES:
        raise ValidationError(f"Unsupported language: {value!r}")
    return code


def direction_for(language: str) -> str:
    return "rtl" if normalize_language(language) == "ar" else "ltr"
