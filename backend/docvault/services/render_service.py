# Overview: Service-layer rendering of records into paginated A4 PDF documents.

"""
Document Renderer

One parameterized renderer for every domain: the DomainSpec says which
sections exist and which fields feed them, the label table supplies the
printed captions for the detected language, and a single Jinja2 template
lays it out. WeasyPrint turns the HTML into PDF.

Sections are built here, not decided in the template: a section that has
no non-empty field is simply absent from the context, so an empty notes
field leaves no box, heading or border behind.

Every page the renderer hands out is canonical A4; a page of any other
size is a RenderError, never something the composer is expected to fix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

import fitz
from jinja2 import Environment, PackageLoader, select_autoescape

from ..domains import DomainSpec
from ..labels import labels_for
from ..text_utils import detect_record_language
from ..validation import (
    RenderError,
    ValidationError,
    as_decimal,
    direction_for,
    enforce_rules_items,
    normalize_language,
)

logger = logging.getLogger(__name__)

# A4 in PDF points.
CANONICAL_SIZE = (595.28, 841.89)
SIZE_TOLERANCE = 1.0

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class RenderedDocument:
    pdf_bytes: bytes
    language: str
    page_count: int
    attachment_pages: int = 0

    @property
    def direction(self) -> str:
        return direction_for(self.language)

    @property
    def generated_pages(self) -> int:
        return self.page_count - self.attachment_pages

    def page_counts(self) -> dict:
        return {
            "generated": self.generated_pages,
            "attachments": self.attachment_pages,
            "total": self.page_count,
        }


def is_canonical(rect) -> bool:
    width, height = CANONICAL_SIZE
    return abs(rect.width - width) <= SIZE_TOLERANCE and abs(rect.height - height) <= SIZE_TOLERANCE


def _money(value: Decimal) -> str:
    return str(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


def calculate_totals(items: Optional[Iterable[Mapping[str, Any]]], tax_rate: Any = 0) -> dict:
    """
    subtotal = sum(quantity * unitPrice); tax = subtotal * taxRate / 100.

    Amounts come back as 2-decimal strings, ready for printing. Negative
    quantities, prices or tax rates raise ValidationError.
    """
    items = list(items or [])
    enforce_rules_items(items)

    rate = as_decimal(tax_rate, "taxRate")
    if not rate.is_finite() or rate < 0:
        raise ValidationError("taxRate must be a non-negative number")

    subtotal = Decimal(0)
    for index, item in enumerate(items, start=1):
        quantity = as_decimal(item.get("quantity"), f"items[{index}].quantity")
        price = as_decimal(item.get("unitPrice"), f"items[{index}].unitPrice")
        subtotal += quantity * price

    tax = subtotal * rate / 100
    return {
        "subtotal": _money(subtotal),
        "tax": _money(tax),
        "grand_total": _money(subtotal + tax),
        "tax_rate": f"{rate.normalize():f}",
        "show_tax": rate > 0,
    }


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


class DocumentRenderer:
    def __init__(
        self,
        *,
        default_language: str = "ar",
        env: Optional[Environment] = None,
        template_name: str = "document.html",
        base_url: Optional[str] = None,
    ) -> None:
        self.default_language = normalize_language(default_language)
        self.env = env or Environment(
            loader=PackageLoader("docvault", "templates"),
            autoescape=select_autoescape(["html"]),
        )
        self.template_name = template_name
        self.base_url = base_url

    def resolve_language(self, spec: DomainSpec, record: Mapping[str, Any]) -> str:
        return detect_record_language(record, spec.language_fields, self.default_language)

    def _display(self, value: Any, labels: Mapping[str, str]) -> str:
        if value is True:
            return labels["yes"]
        if _is_empty(value):
            return ""
        return str(value).strip()

    def build_context(self, spec: DomainSpec, record: Mapping[str, Any], language: str) -> dict:
        labels = labels_for(language)
        direction = direction_for(language)

        blocks = []
        for block in spec.blocks:
            rows = [
                (labels[label_key], self._display(record.get(field_name), labels))
                for label_key, field_name in block.fields
                if not _is_empty(record.get(field_name))
            ]
            if rows:
                blocks.append({"title": labels[block.title], "rows": rows})

        notice = None
        if spec.notice_field:
            notice = self._display(record.get(spec.notice_field), labels) or None

        items = [item for item in (record.get("items") or []) if isinstance(item, dict)]
        rows = []
        for item in items:
            if all(_is_empty(item.get(column.field)) for column in spec.item_columns):
                continue
            cells = [
                {"value": self._display(item.get(column.field), labels), "align": column.align}
                for column in spec.item_columns
            ]
            row = {"cells": cells}
            if spec.has_totals:
                quantity = as_decimal(item.get("quantity"), "quantity")
                price = as_decimal(item.get("unitPrice"), "unitPrice")
                row["total"] = _money(quantity * price)
            rows.append(row)

        totals = None
        if spec.has_totals and rows:
            totals = calculate_totals(items, record.get("taxRate") or 0)

        notes = [
            (labels[label_key], self._display(record.get(field_name), labels))
            for label_key, field_name in spec.notes_fields
            if not _is_empty(record.get(field_name))
        ]

        return {
            "language": language,
            "direction": direction,
            "start": "right" if direction == "rtl" else "left",
            "end": "left" if direction == "rtl" else "right",
            "accent": spec.accent,
            "labels": labels,
            "title": labels[spec.title],
            "number": record.get("number") or "",
            "date": record.get(spec.date_field) or "",
            "blocks": blocks,
            "notice": notice,
            "columns": [
                {"label": labels[c.label], "width": c.width, "align": c.align}
                for c in spec.item_columns
            ],
            "rows": rows,
            "totals": totals,
            "notes": notes,
            "signatures": [labels[key] for key in spec.signatures],
        }

    def render_html(self, spec: DomainSpec, record: Mapping[str, Any], language: Optional[str] = None) -> str:
        if record.get("items") is not None:
            enforce_rules_items(record.get("items"))
        language = normalize_language(language) if language else self.resolve_language(spec, record)
        template = self.env.get_template(self.template_name)
        return template.render(**self.build_context(spec, record, language))

    def render(self, spec: DomainSpec, record: Mapping[str, Any]) -> RenderedDocument:
        language = self.resolve_language(spec, record)
        html = self.render_html(spec, record, language)
        pdf_bytes = self._write_pdf(html)
        page_count = self._verify_pages(pdf_bytes)
        logger.info(
            "Rendered %s %s (%s, %d pages)",
            spec.key, record.get("number"), language, page_count,
        )
        return RenderedDocument(pdf_bytes=pdf_bytes, language=language, page_count=page_count)

    def _write_pdf(self, html: str) -> bytes:
        # WeasyPrint loads Pango/HarfBuzz on import; only pay for it when rendering.
        from weasyprint import HTML

        return HTML(string=html, base_url=self.base_url).write_pdf()

    def _verify_pages(self, pdf_bytes: bytes) -> int:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            if doc.page_count == 0:
                raise RenderError("Renderer produced an empty document")
            for page in doc:
                if not is_canonical(page.rect):
                    raise RenderError(
                        f"Rendered page {page.number + 1} is {page.rect.width:.2f}x{page.rect.height:.2f}pt, not A4"
                    )
            return doc.page_count
