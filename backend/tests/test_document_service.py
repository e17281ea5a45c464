# Overview: Pytest coverage for the document workflow: artifact naming, generation, deletion and paired reset.

"""
Document Workflow Tests

Covers:
- Artifact filenames (<number>_<counterparty>_<DD-MM-YYYY>.pdf)
- generate_artifact: file written, record patched, attachments merged,
  addendum included or degraded, stale artifact replaced
- Failure ordering: a rejected attachment changes nothing
- delete_record removes both record and file
- reset_domain clears records and counter together
"""

import fitz
import pytest

from docvault.domains import MATERIALS, PURCHASES
from docvault.extensions import vault
from docvault.services.document_service import (
    artifact_filename,
    create_record,
    delete_record,
    generate_artifact,
    get_record,
    list_records,
    reset_domain,
    update_record,
)
from docvault.services.collection_service import QueryOptions
from docvault.validation import NotFoundError, ValidationError

pytestmark = pytest.mark.usefixtures("canned_render")


class TestArtifactFilename:
    def test_number_counterparty_and_date(self):
        record = {"number": "PO00007", "supplier": "ACME Trading, LLC", "date": "2026-02-01"}
        assert artifact_filename(PURCHASES, record) == "PO00007_ACME_Trading_LLC_01-02-2026.pdf"

    def test_arabic_letters_kept(self):
        record = {"number": "IMR0003", "project": "برج النور", "date": "2026-03-09"}
        assert artifact_filename(MATERIALS, record) == "IMR0003_برج_النور_09-03-2026.pdf"

    def test_missing_counterparty_is_unknown(self):
        record = {"number": "PO00001", "date": "2026-02-01"}
        assert artifact_filename(PURCHASES, record) == "PO00001_Unknown_01-02-2026.pdf"

    def test_long_names_truncated(self):
        record = {"number": "PO00001", "supplier": "A" * 80, "date": "2026-02-01"}
        name = artifact_filename(PURCHASES, record, max_name=10)
        assert name == "PO00001_AAAAAAAAAA_01-02-2026.pdf"

    def test_path_separators_stripped(self):
        record = {"number": "PO00001", "supplier": "../../etc/passwd", "date": "2026-02-01"}
        assert "/" not in artifact_filename(PURCHASES, record)

    def test_invalid_date_rejected(self):
        with pytest.raises(ValidationError):
            artifact_filename(PURCHASES, {"number": "PO00001", "date": "yesterday"})

    def test_missing_number_rejected(self):
        with pytest.raises(ValidationError):
            artifact_filename(PURCHASES, {"date": "2026-02-01"})


@pytest.fixture
def purchase(app):
    return create_record(
        "purchases",
        {"supplier": "ACME Trading", "date": "2026-02-01", "items": [{"description": "Bolt", "quantity": 2, "unitPrice": 3}]},
        created_by="u1",
    )


class TestGenerate:
    def test_generate_writes_file_and_patches_record(self, purchase):
        result = generate_artifact("purchases", purchase["id"], issue_date="2026-02-01")

        assert result["filename"] == "PO00001_ACME_Trading_01-02-2026.pdf"
        assert result["language"] == "en"
        assert result["direction"] == "ltr"
        assert result["pages"] == {"generated": 2, "attachments": 0, "total": 2}

        path = vault.artifact_dir("purchases") / result["filename"]
        with fitz.open(path) as doc:
            assert doc.page_count == 2
            assert "Page 2 of 2" in doc[1].get_text()

        record = get_record("purchases", purchase["id"])
        assert record["artifactFilename"] == result["filename"]
        assert record["artifactLanguage"] == "en"
        assert record["artifactPageCount"] == 2
        assert record["artifactMerged"] is False

    def test_attachment_pages_follow_generated_pages(self, purchase, make_pdf):
        result = generate_artifact("purchases", purchase["id"], make_pdf(3, label="drawing"))
        assert result["pages"] == {"generated": 2, "attachments": 3, "total": 5}
        assert result["record"]["artifactMerged"] is True

        with fitz.open(result["path"]) as doc:
            assert "drawing 1" in doc[2].get_text()
            assert "Page 5 of 5" in doc[4].get_text()

    def test_addendum_appended_after_attachment(self, app, purchase, make_pdf):
        vault.addendum_path.parent.mkdir(parents=True, exist_ok=True)
        vault.addendum_path.write_bytes(make_pdf(1, label="terms"))
        update_record("purchases", purchase["id"], {"includeAddendum": True})

        result = generate_artifact("purchases", purchase["id"], make_pdf(1, label="drawing"))

        assert result["pages"]["total"] == 4
        with fitz.open(result["path"]) as doc:
            assert "drawing 1" in doc[2].get_text()
            assert "terms 1" in doc[3].get_text()

    def test_missing_addendum_is_degraded(self, app, purchase, caplog):
        update_record("purchases", purchase["id"], {"includeStaticFile": True})
        result = generate_artifact("purchases", purchase["id"])
        assert result["pages"]["total"] == 2
        assert "Degraded" in caplog.text

    def test_regenerate_replaces_stale_artifact(self, purchase):
        """
        SCENARIO: generate, rename the supplier, generate again.
        EXPECTED: the new file exists, the old one is gone, the record
        points at the new name.
        """
        first = generate_artifact("purchases", purchase["id"])
        update_record("purchases", purchase["id"], {"supplier": "Beta Glass"})
        second = generate_artifact("purchases", purchase["id"])

        directory = vault.artifact_dir("purchases")
        assert second["filename"] == "PO00001_Beta_Glass_01-02-2026.pdf"
        assert (directory / second["filename"]).exists()
        assert not (directory / first["filename"]).exists()
        assert get_record("purchases", purchase["id"])["artifactFilename"] == second["filename"]

    def test_rejected_attachment_changes_nothing(self, purchase):
        first = generate_artifact("purchases", purchase["id"])
        update_record("purchases", purchase["id"], {"supplier": "Beta Glass"})
        before = get_record("purchases", purchase["id"])

        with pytest.raises(ValidationError):
            generate_artifact("purchases", purchase["id"], b"not a pdf")

        assert get_record("purchases", purchase["id"]) == before
        assert (vault.artifact_dir("purchases") / first["filename"]).exists()
        assert sorted(p.name for p in vault.artifact_dir("purchases").iterdir()) == [first["filename"]]

    def test_arabic_record_is_rtl(self, app):
        record = create_record("materials", {"project": "برج النور", "date": "2026-03-09"})
        result = generate_artifact("materials", record["id"])
        assert result["language"] == "ar"
        assert result["direction"] == "rtl"
        assert result["filename"] == "IMR0001_برج_النور_09-03-2026.pdf"

    def test_unknown_record_is_not_found(self, app):
        with pytest.raises(NotFoundError):
            generate_artifact("purchases", "PO-99999")

    def test_unknown_domain_is_not_found(self, app):
        with pytest.raises(NotFoundError):
            generate_artifact("invoices", "X-1")


class TestDeleteRecord:
    def test_removes_record_and_file(self, purchase):
        result = generate_artifact("purchases", purchase["id"])
        outcome = delete_record("purchases", purchase["id"])

        assert outcome["artifact"].ok is True
        assert not (vault.artifact_dir("purchases") / result["filename"]).exists()
        with pytest.raises(NotFoundError):
            get_record("purchases", purchase["id"])

    def test_record_deleted_even_if_file_already_gone(self, purchase, caplog):
        result = generate_artifact("purchases", purchase["id"])
        (vault.artifact_dir("purchases") / result["filename"]).unlink()

        outcome = delete_record("purchases", purchase["id"])

        assert outcome["record"]["id"] == purchase["id"]
        assert outcome["artifact"].file_removed is False
        assert vault.collection("purchases").load_all() == []

    def test_record_without_artifact(self, purchase):
        outcome = delete_record("purchases", purchase["id"])
        assert outcome["artifact"] is None

    def test_cannot_claim_another_records_file(self, purchase):
        """
        SCENARIO: record A is updated to name record B's artifact, then A is deleted.
        EXPECTED: the update is rejected and B's file survives A's deletion.
        """
        other = create_record("purchases", {"supplier": "Globex", "date": "2026-02-02"})
        result = generate_artifact("purchases", other["id"])

        with pytest.raises(ValidationError):
            update_record("purchases", purchase["id"], {"artifactFilename": result["filename"]})
        outcome = delete_record("purchases", purchase["id"])

        assert outcome["artifact"] is None
        assert (vault.artifact_dir("purchases") / result["filename"]).exists()
        assert get_record("purchases", other["id"])["artifactFilename"] == result["filename"]


class TestListRecords:
    def test_default_page_limit_from_config(self, app):
        for index in range(12):
            create_record("rfqs", {"supplier": f"S{index}"})
        page = list_records("rfqs")
        assert page.limit == 10
        assert page.total == 12
        assert len(page.items) == 10

    def test_options_pass_through(self, app):
        create_record("rfqs", {"supplier": "ACME"})
        create_record("rfqs", {"supplier": "Beta"})
        page = list_records("rfqs", options=QueryOptions(search="beta"))
        assert [r["supplier"] for r in page.items] == ["Beta"]


class TestResetDomain:
    def test_material_request_numbering_scenario(self, app):
        """
        SCENARIO: create IMR0001, delete it, create IMR0002, reset the
        materials domain, create again.
        EXPECTED: numbers are never reused until the paired reset, which
        restarts numbering at IMR0001 with an empty collection.
        """
        first = create_record("materials", {"project": "Tower A"})
        assert first["number"] == "IMR0001"
        delete_record("materials", first["id"])

        second = create_record("materials", {"project": "Tower B"})
        assert second["number"] == "IMR0002"
        generate_artifact("materials", second["id"])

        summary = reset_domain("materials")
        assert summary == {
            "counter": "IMR",
            "previousValue": 2,
            "deletedRecords": 1,
            "deletedFiles": 1,
            "nextNumber": "IMR0001",
        }
        assert vault.collection("materials").load_all() == []
        assert [p for p in vault.artifact_dir("materials").iterdir() if not p.name.startswith(".")] == []

        third = create_record("materials", {"project": "Tower C"})
        assert third["number"] == "IMR0001"

    def test_reset_leaves_other_domains_alone(self, app):
        create_record("purchases", {"supplier": "ACME"})
        create_record("materials", {"project": "Tower A"})
        reset_domain("materials")
        assert vault.sequences.peek("PO") == 1
        assert len(vault.collection("purchases").load_all()) == 1
