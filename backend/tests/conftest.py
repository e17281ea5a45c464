"""
Pytest fixtures for docvault backend tests.

Every test gets its own app with a fresh data directory under tmp_path, so
collections, counters and artifact files never leak between tests.
"""

import fitz
import pytest

from docvault import create_app
from docvault.services.render_service import CANONICAL_SIZE

A4_WIDTH, A4_HEIGHT = CANONICAL_SIZE


def build_pdf(pages=1, width=A4_WIDTH, height=A4_HEIGHT, label="page"):
    """PDF bytes with `pages` pages of the given size, each captioned '<label> <n>'."""
    doc = fitz.open()
    for index in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 120), f"{label} {index + 1}", fontsize=14)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def app(data_dir):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'DOCVAULT_DATA_DIR': str(data_dir),
        'DOCVAULT_DEFAULT_LANGUAGE': 'ar',
        'DOCVAULT_EXTRA_FILE_DIRS': 'uploads=uploads',
    })
    with app.app_context():
        yield app


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def weasyprint():
    """WeasyPrint needs Pango at import time; skip PDF rendering tests without it."""
    try:
        import weasyprint as module
    except (ImportError, OSError) as exc:
        pytest.skip(f"WeasyPrint unavailable: {exc}")
    return module


@pytest.fixture
def canned_render(monkeypatch):
    """
    Replace the HTML-to-PDF step with a fixed A4 document.

    Everything around it (context building, template rendering, page
    verification) still runs.
    """
    from docvault.services.render_service import DocumentRenderer

    def use(pages=2):
        pdf = build_pdf(pages, label="generated")
        monkeypatch.setattr(DocumentRenderer, "_write_pdf", lambda self, html: pdf)
        return pdf

    use()
    return use
