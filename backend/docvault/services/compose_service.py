# Overview: Service-layer PDF composition: merge attachments, normalize page size, stamp headers/footers.

"""
Document Composer

compose() takes the generated document plus an ordered list of
attachments and returns one stamped PDF:

1) Concatenate. The generated pages always come first, then each
   attachment in the order given. MergePlan is the explicit ordered list
   callers build (user attachment before the static addendum).
2) Normalize. A page that is not canonical A4 (size off by more than 1pt,
   or rotated) is redrawn onto a fresh A4 page: scaled by
   min(sx, sy, 1) and centered. Never cropped, never stretched, never
   enlarged.
3) Stamp. Every page gets a logo, a header rule and the issue-date
   caption in the top band; a footer rule, the document code and
   "Page i of N" in the bottom band. Left/right placement mirrors for
   right-to-left documents. Stamping only draws; it never adds or removes
   pages. It runs even when there are no attachments.

Attachments are validated when they are built (Attachment.from_source):
anything PyMuPDF cannot open as an unencrypted PDF with at least one
page is rejected with ValidationError, never silently skipped.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional, Sequence, Union

import fitz

from ..labels import STAMP_CAPTIONS
from ..validation import RenderError, ValidationError, normalize_language
from .render_service import CANONICAL_SIZE, RenderedDocument, is_canonical

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = CANONICAL_SIZE

# Stamp geometry, PDF points measured from the top-left corner.
MARGIN_X = 50
CAPTION_INSET = 60
LOGO_SIZE = (80, 50)
LOGO_TOP = 20
LOGO_INSET = 60
HEADER_RULE_Y = 90
HEADER_CAPTION_Y = 50
FOOTER_RULE_Y = PAGE_HEIGHT - 50
FOOTER_CAPTION_Y = PAGE_HEIGHT - 35

CAPTION_FONT = "helv"
CAPTION_SIZE = 9
CAPTION_COLOR = (0.333, 0.333, 0.333)
FOOTER_RULE_COLOR = (0.8, 0.8, 0.8)

DEFAULT_REVISION = "REV. No: 01"

Source = Union[bytes, bytearray, str, "os.PathLike[str]"]


def hex_to_rgb(value: str) -> tuple[float, float, float]:
    """'#2B4C8C' -> (0.169, 0.298, 0.549), the 0..1 floats PyMuPDF wants."""
    text = (value or "").lstrip("#")
    if len(text) != 6:
        raise ValidationError(f"Colour must be #RRGGBB, got {value!r}")
    try:
        red, green, blue = (int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValidationError(f"Colour must be #RRGGBB, got {value!r}")
    return (red / 255, green / 255, blue / 255)


def fit_rect(width: float, height: float) -> fitz.Rect:
    """Where a width x height page lands on A4: scaled down to fit, centered."""
    if width <= 0 or height <= 0:
        raise ValidationError("Page has no area")
    scale = min(PAGE_WIDTH / width, PAGE_HEIGHT / height, 1.0)
    fitted_w, fitted_h = width * scale, height * scale
    x0 = (PAGE_WIDTH - fitted_w) / 2
    y0 = (PAGE_HEIGHT - fitted_h) / 2
    return fitz.Rect(x0, y0, x0 + fitted_w, y0 + fitted_h)


@dataclass(frozen=True)
class Attachment:
    label: str
    pdf_bytes: bytes
    page_count: int

    @classmethod
    def from_source(cls, source: Source, label: Optional[str] = None) -> "Attachment":
        """Build from raw bytes or a path to an existing PDF; validates on the way in."""
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
            label = label or "attachment"
        else:
            path = Path(source)
            label = label or path.name
            if not path.is_file():
                raise ValidationError(f"Attachment '{label}' does not exist: {path}")
            data = path.read_bytes()

        if not data:
            raise ValidationError(f"Attachment '{label}' is empty")

        try:
            with fitz.open(stream=data, filetype="pdf") as doc:
                is_pdf, encrypted, page_count = doc.is_pdf, doc.needs_pass, doc.page_count
                # MuPDF rebuilds a broken xref silently; pages past the damage come back blank.
                repaired = doc.is_repaired
        except (RuntimeError, ValueError) as exc:
            raise ValidationError(f"Attachment '{label}' is not a readable PDF: {exc}") from exc

        if not is_pdf:
            raise ValidationError(f"Attachment '{label}' is not a PDF")
        if encrypted:
            raise ValidationError(f"Attachment '{label}' is password protected")
        if repaired:
            raise ValidationError(f"Attachment '{label}' is damaged")
        if page_count < 1:
            raise ValidationError(f"Attachment '{label}' has no pages")
        return cls(label=label, pdf_bytes=data, page_count=page_count)


@dataclass
class MergePlan:
    """
    Ordered merge list. User attachments always precede addenda, no
    matter which was added first.
    """
    base: RenderedDocument
    user_attachments: list[Attachment] = field(default_factory=list)
    addenda: list[Attachment] = field(default_factory=list)

    def add_user_attachment(self, attachment: Attachment) -> "MergePlan":
        self.user_attachments.append(attachment)
        return self

    def add_addendum(self, attachment: Attachment) -> "MergePlan":
        self.addenda.append(attachment)
        return self

    @property
    def attachments(self) -> tuple[Attachment, ...]:
        return tuple(self.user_attachments) + tuple(self.addenda)


@dataclass(frozen=True)
class StampOptions:
    doc_code: str
    accent: str = "#2B4C8C"
    revision: str = DEFAULT_REVISION
    issue_date: Optional[str] = None

    def issue_date_text(self) -> str:
        return self.issue_date or date.today().isoformat()


class DocumentComposer:
    def __init__(self, logo_path: Optional[Union[str, "os.PathLike[str]"]] = None) -> None:
        self.logo_path = Path(logo_path) if logo_path else None
        self._logo: Optional[bytes] = None

    def _logo_bytes(self) -> Optional[bytes]:
        if self._logo is None and self.logo_path is not None:
            try:
                self._logo = self.logo_path.read_bytes()
            except OSError as exc:
                logger.warning("Logo %s unavailable, stamping without it: %s", self.logo_path, exc)
                self.logo_path = None
        return self._logo

    def compose_plan(self, plan: MergePlan, options: StampOptions) -> RenderedDocument:
        return self.compose(plan.base, plan.attachments, plan.base.language, options)

    def compose(
        self,
        base: Union[RenderedDocument, bytes],
        attachments: Sequence[Attachment],
        language: str,
        options: StampOptions,
    ) -> RenderedDocument:
        language = normalize_language(language)
        base_bytes = base.pdf_bytes if isinstance(base, RenderedDocument) else bytes(base)

        out = fitz.open()
        try:
            try:
                generated = self._append(out, base_bytes)
            except (RuntimeError, ValueError) as exc:
                raise RenderError(f"Generated document could not be opened: {exc}") from exc

            attachment_pages = 0
            for attachment in attachments:
                attachment_pages += self._append(out, attachment.pdf_bytes)

            self.stamp(out, language, options)
            pdf_bytes = out.tobytes(garbage=3, deflate=True)
            total = out.page_count
        finally:
            out.close()

        if total != generated + attachment_pages:
            raise RenderError(f"Merged page count {total} != {generated} + {attachment_pages}")

        logger.info(
            "Composed %s: %d generated + %d attached pages",
            options.doc_code, generated, attachment_pages,
        )
        return RenderedDocument(
            pdf_bytes=pdf_bytes,
            language=language,
            page_count=total,
            attachment_pages=attachment_pages,
        )

    def _append(self, out: fitz.Document, pdf_bytes: bytes) -> int:
        """Append every page of `pdf_bytes` to `out` at A4; returns pages added."""
        with fitz.open(stream=pdf_bytes, filetype="pdf") as src:
            for page in src:
                if page.rotation == 0 and is_canonical(page.rect):
                    out.insert_pdf(src, from_page=page.number, to_page=page.number)
                    continue
                target = out.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                target.show_pdf_page(fit_rect(page.rect.width, page.rect.height), src, page.number)
            return src.page_count

    def stamp(self, doc: fitz.Document, language: str, options: StampOptions) -> None:
        rtl = normalize_language(language) == "ar"
        accent = hex_to_rgb(options.accent)
        logo = self._logo_bytes()
        total = doc.page_count

        date_caption = f"{STAMP_CAPTIONS['issueDate']}: {options.issue_date_text()}"
        code_caption = f"{options.doc_code}  {options.revision}".strip()

        for page in doc:
            width = page.rect.width

            if logo is not None:
                logo_w, logo_h = LOGO_SIZE
                logo_x = LOGO_INSET if rtl else width - LOGO_INSET - logo_w
                page.insert_image(
                    fitz.Rect(logo_x, LOGO_TOP, logo_x + logo_w, LOGO_TOP + logo_h),
                    stream=logo,
                    keep_proportion=True,
                )

            page.draw_line(
                fitz.Point(MARGIN_X, HEADER_RULE_Y),
                fitz.Point(width - MARGIN_X, HEADER_RULE_Y),
                color=accent,
                width=2,
            )
            # Caption sits on the side opposite the logo.
            self._caption(page, date_caption, HEADER_CAPTION_Y, right=rtl)

            page.draw_line(
                fitz.Point(MARGIN_X, FOOTER_RULE_Y),
                fitz.Point(width - MARGIN_X, FOOTER_RULE_Y),
                color=FOOTER_RULE_COLOR,
                width=1,
            )
            page_caption = STAMP_CAPTIONS["page"].format(current=page.number + 1, total=total)
            self._caption(page, page_caption, FOOTER_CAPTION_Y, right=rtl)
            self._caption(page, code_caption, FOOTER_CAPTION_Y, right=not rtl)

    def _caption(self, page: fitz.Page, text: str, baseline: float, *, right: bool) -> None:
        if right:
            length = fitz.get_text_length(text, fontname=CAPTION_FONT, fontsize=CAPTION_SIZE)
            x = page.rect.width - CAPTION_INSET - length
        else:
            x = CAPTION_INSET
        page.insert_text(
            fitz.Point(x, baseline),
            text,
            fontname=CAPTION_FONT,
            fontsize=CAPTION_SIZE,
            color=CAPTION_COLOR,
        )
