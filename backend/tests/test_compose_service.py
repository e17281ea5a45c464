# Overview: Pytest coverage for PDF merge order, page normalization and header/footer stamping.

import fitz
import pytest

from docvault.services.compose_service import (
    PAGE_HEIGHT,
    PAGE_WIDTH,
    Attachment,
    DocumentComposer,
    MergePlan,
    StampOptions,
    fit_rect,
    hex_to_rgb,
)
from docvault.services.render_service import RenderedDocument, is_canonical
from docvault.validation import ValidationError

pytestmark = pytest.mark.pdf

OPTIONS = StampOptions(doc_code="OMEGA-PUR-05", accent="#2B4C8C", issue_date="2026-02-01")


@pytest.fixture
def composer():
    from docvault.extensions import DEFAULT_LOGO

    return DocumentComposer(DEFAULT_LOGO)


def base_document(make_pdf, pages=2, language="en"):
    return RenderedDocument(pdf_bytes=make_pdf(pages, label="generated"), language=language, page_count=pages)


def page_texts(pdf_bytes):
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text() for page in doc]


class TestMerge:
    def test_base_user_attachment_and_addendum(self, composer, make_pdf):
        """
        SCENARIO: base (2 pages) + user attachment (1 Letter page) + addendum (3 A4 pages).
        EXPECTED: 6 pages, all A4, in that order, each footer reading "Page k of 6".
        """
        plan = MergePlan(base=base_document(make_pdf))
        plan.add_user_attachment(Attachment.from_source(make_pdf(1, width=612, height=792, label="drawing")))
        plan.add_addendum(Attachment.from_source(make_pdf(3, label="terms")))

        result = composer.compose_plan(plan, OPTIONS)

        assert result.page_count == 6
        assert result.page_counts() == {"generated": 2, "attachments": 4, "total": 6}
        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            assert doc.page_count == 6
            assert all(is_canonical(page.rect) for page in doc)

        texts = page_texts(result.pdf_bytes)
        for k, text in enumerate(texts, start=1):
            assert f"Page {k} of 6" in text
        assert "generated 1" in texts[0]
        assert "generated 2" in texts[1]
        assert "drawing 1" in texts[2]
        assert "terms 1" in texts[3]
        assert "terms 3" in texts[5]

    def test_plan_keeps_user_attachments_before_addenda(self, make_pdf):
        addendum = Attachment.from_source(make_pdf(1), label="terms")
        upload = Attachment.from_source(make_pdf(1), label="upload")
        plan = MergePlan(base=base_document(make_pdf, 1))
        plan.add_addendum(addendum)
        plan.add_user_attachment(upload)
        assert [a.label for a in plan.attachments] == ["upload", "terms"]

    def test_oversized_page_scaled_into_bounds(self, composer, make_pdf):
        a3_landscape = Attachment.from_source(make_pdf(1, width=1190.55, height=841.89, label="plan"))
        result = composer.compose(base_document(make_pdf, 1), [a3_landscape], "en", OPTIONS)

        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            page = doc[1]
            assert is_canonical(page.rect)
            for x0, y0, x1, y1, *_ in page.get_text("words"):
                assert 0 <= x0 <= x1 <= PAGE_WIDTH
                assert 0 <= y0 <= y1 <= PAGE_HEIGHT

    def test_rotated_a4_page_is_normalized(self, composer, make_pdf):
        doc = fitz.open(stream=make_pdf(1, width=PAGE_HEIGHT, height=PAGE_WIDTH), filetype="pdf")
        doc[0].set_rotation(90)
        rotated = doc.tobytes()
        doc.close()

        result = composer.compose(base_document(make_pdf, 1), [Attachment.from_source(rotated)], "en", OPTIONS)
        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as out:
            assert out[1].rotation == 0
            assert is_canonical(out[1].rect)


class TestFitRect:
    def test_scales_down_proportionally(self):
        rect = fit_rect(PAGE_WIDTH * 2, PAGE_HEIGHT)
        assert rect.width == pytest.approx(PAGE_WIDTH)
        assert rect.height == pytest.approx(PAGE_HEIGHT / 2)
        assert rect.y0 == pytest.approx(PAGE_HEIGHT / 4)

    def test_small_page_is_centered_not_enlarged(self):
        rect = fit_rect(200, 100)
        assert rect.width == pytest.approx(200)
        assert rect.height == pytest.approx(100)
        assert rect.x0 == pytest.approx((PAGE_WIDTH - 200) / 2)
        assert rect.y0 == pytest.approx((PAGE_HEIGHT - 100) / 2)

    def test_letter_page(self):
        rect = fit_rect(612, 792)
        assert rect.width <= PAGE_WIDTH + 1e-6
        assert rect.height <= PAGE_HEIGHT + 1e-6
        assert rect.width / rect.height == pytest.approx(612 / 792)


class TestStamp:
    def test_stamping_alone_keeps_page_count(self, composer, make_pdf):
        result = composer.compose(base_document(make_pdf, 3), [], "en", OPTIONS)
        assert result.page_count == 3
        texts = page_texts(result.pdf_bytes)
        for k, text in enumerate(texts, start=1):
            assert f"Page {k} of 3" in text
            assert "DATE OF ISSUE: 2026-02-01" in text
            assert "OMEGA-PUR-05" in text
            assert "REV. No: 01" in text

    def test_logo_embedded_on_every_page(self, composer, make_pdf):
        result = composer.compose(base_document(make_pdf, 2), [], "en", OPTIONS)
        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            assert all(page.get_images() for page in doc)

    def test_default_logo_is_a_real_raster(self, composer, make_pdf):
        result = composer.compose(base_document(make_pdf, 1), [], "en", OPTIONS)
        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            xref = doc[0].get_images()[0][0]
            image = doc.extract_image(xref)
        assert image["width"] >= 160
        assert image["height"] >= 100

    def test_footer_mirrors_for_rtl(self, composer, make_pdf):
        ltr = composer.compose(base_document(make_pdf, 1), [], "en", OPTIONS)
        rtl = composer.compose(base_document(make_pdf, 1, language="ar"), [], "ar", OPTIONS)

        with fitz.open(stream=ltr.pdf_bytes, filetype="pdf") as doc:
            ltr_page = doc[0].search_for("Page 1 of 1")[0]
            ltr_code = doc[0].search_for("OMEGA-PUR-05")[0]
        with fitz.open(stream=rtl.pdf_bytes, filetype="pdf") as doc:
            rtl_page = doc[0].search_for("Page 1 of 1")[0]
            rtl_code = doc[0].search_for("OMEGA-PUR-05")[0]

        assert ltr_page.x0 < PAGE_WIDTH / 2 < ltr_code.x0
        assert rtl_code.x0 < PAGE_WIDTH / 2 < rtl_page.x0
        assert ltr.direction == "ltr"
        assert rtl.direction == "rtl"

    def test_missing_logo_still_stamps(self, tmp_path, make_pdf):
        composer = DocumentComposer(tmp_path / "no-logo.png")
        result = composer.compose(base_document(make_pdf, 1), [], "en", OPTIONS)
        assert "Page 1 of 1" in page_texts(result.pdf_bytes)[0]

    def test_issue_date_defaults_to_today(self, composer, make_pdf):
        from datetime import date

        options = StampOptions(doc_code="OMEGA-MAT-01")
        result = composer.compose(base_document(make_pdf, 1), [], "en", options)
        assert date.today().isoformat() in page_texts(result.pdf_bytes)[0]

    def test_hex_to_rgb(self):
        assert hex_to_rgb("#2B4C8C") == pytest.approx((0.169, 0.298, 0.549), abs=1e-3)
        with pytest.raises(ValidationError):
            hex_to_rgb("blue")


class TestAttachmentValidation:
    def test_malformed_bytes_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            Attachment.from_source(b"this is not a pdf at all", label="upload.pdf")
        assert "upload.pdf" in str(excinfo.value)

    def test_empty_bytes_rejected(self):
        with pytest.raises(ValidationError):
            Attachment.from_source(b"")

    def test_missing_path_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            Attachment.from_source(tmp_path / "missing.pdf")

    def test_path_source_uses_file_name_as_label(self, tmp_path, make_pdf):
        path = tmp_path / "drawing.pdf"
        path.write_bytes(make_pdf(2))
        attachment = Attachment.from_source(path)
        assert attachment.label == "drawing.pdf"
        assert attachment.page_count == 2

    def test_truncated_pdf_rejected(self, make_pdf):
        """
        SCENARIO: a 3-page PDF cut off halfway through (interrupted upload).
        EXPECTED: rejected as damaged instead of merged with blank pages.
        """
        data = make_pdf(3, label="drawing")
        with pytest.raises(ValidationError) as excinfo:
            Attachment.from_source(data[: len(data) // 2], label="drawing.pdf")
        assert "drawing.pdf" in str(excinfo.value)

    def test_encrypted_pdf_rejected(self, make_pdf):
        doc = fitz.open(stream=make_pdf(1), filetype="pdf")
        locked = doc.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="owner", user_pw="user")
        doc.close()
        with pytest.raises(ValidationError):
            Attachment.from_source(locked)
