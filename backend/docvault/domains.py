# Overview: Static per-domain configuration: numbering, layout sections and storage locations.

"""
Domain table

Every business document type (purchase orders, material requests, costing
sheets, ...) runs through the same store, renderer and composer. What
differs between them is data, not code, and lives here:

- numbering: counter name, number prefix and zero-padding width
- storage: collection file and artifact directory (relative to DATA_DIR)
- layout: info blocks, notice, items table, totals, notes, signatures
- stamping: document code and accent colour
- language detection: primary field first, then secondary fields
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class InfoBlock:
    """A titled group of label/value rows. Hidden when every field is empty."""
    title: str
    fields: tuple[tuple[str, str], ...]


@dataclass(frozen=True)
class ItemColumn:
    field: str
    label: str
    width: int
    align: str = "center"


@dataclass(frozen=True)
class DomainSpec:
    key: str
    counter: str
    number_prefix: str
    width: int
    id_prefix: str
    doc_code: str
    accent: str
    title: str
    primary_field: str
    secondary_fields: tuple[str, ...] = ()
    search_fields: tuple[str, ...] = ()
    blocks: tuple[InfoBlock, ...] = ()
    notice_field: Optional[str] = None
    item_columns: tuple[ItemColumn, ...] = ()
    has_totals: bool = False
    notes_fields: tuple[tuple[str, str], ...] = ()
    signatures: tuple[str, ...] = ()
    date_field: str = "date"
    required_on_create: frozenset[str] = field(default_factory=frozenset)
    collection_file: str = ""
    artifact_dir: str = ""

    def format_id(self, value: int) -> str:
        return f"{self.id_prefix}-{value:0{self.width}d}"

    @property
    def counterparty_field(self) -> str:
        """The field used to name artifact files."""
        return self.primary_field

    @property
    def language_fields(self) -> tuple[str, ...]:
        return (self.primary_field,) + tuple(
            f for f in self.secondary_fields if f != self.primary_field
        )


_PRICED_COLUMNS = (
    ItemColumn("description", "description", 38, "start"),
    ItemColumn("unit", "unit", 12),
    ItemColumn("quantity", "quantity", 12),
    ItemColumn("unitPrice", "unitPrice", 16),
)


PURCHASES = DomainSpec(
    key="purchases",
    counter="PO",
    number_prefix="PO",
    width=5,
    id_prefix="PO",
    doc_code="OMEGA-PUR-05",
    accent="#2B4C8C",
    title="purchaseOrder",
    primary_field="supplier",
    secondary_fields=(
        "supplierAddress",
        "receiver",
        "receiverCity",
        "receiverAddress",
        "tableHeaderText",
        "notes",
    ),
    search_fields=("supplier", "receiver", "notes", "createdBy"),
    blocks=(
        InfoBlock("supplierInfo", (
            ("supplierName", "supplier"),
            ("supplierAddress", "supplierAddress"),
            ("supplierPhone", "supplierPhone"),
        )),
        InfoBlock("receiverInfo", (
            ("receiverName", "receiver"),
            ("receiverCity", "receiverCity"),
            ("receiverAddress", "receiverAddress"),
            ("receiverPhone", "receiverPhone"),
        )),
    ),
    notice_field="tableHeaderText",
    item_columns=_PRICED_COLUMNS,
    has_totals=True,
    notes_fields=(("notes", "notes"),),
    signatures=("purchaseManager", "productionManager", "accountant"),
    collection_file="purchases/index.json",
    artifact_dir="purchases/pdfs",
)

MATERIALS = DomainSpec(
    key="materials",
    counter="IMR",
    number_prefix="IMR",
    width=4,
    id_prefix="IMR",
    doc_code="OMEGA-MAT-01",
    accent="#2B4C8C",
    title="materialRequest",
    primary_field="project",
    secondary_fields=("section", "requestReason", "additionalNotes"),
    search_fields=("project", "section", "requestReason", "createdBy"),
    blocks=(
        InfoBlock("requestInfo", (
            ("section", "section"),
            ("project", "project"),
            ("requestPriority", "requestPriority"),
            ("requestReason", "requestReason"),
        )),
    ),
    item_columns=(
        ItemColumn("description", "description", 44, "start"),
        ItemColumn("unit", "unit", 12),
        ItemColumn("quantity", "quantity", 12),
        ItemColumn("requiredDate", "requiredDate", 16),
        ItemColumn("priority", "priority", 16),
    ),
    notes_fields=(("additionalNotes", "additionalNotes"),),
    signatures=("requester", "storeKeeper", "productionManager"),
    collection_file="materials-requests/index.json",
    artifact_dir="materials-requests/pdfs",
)

COSTING_SHEETS = DomainSpec(
    key="costing_sheets",
    counter="ICS",
    number_prefix="CS",
    width=4,
    id_prefix="CS",
    doc_code="OMEGA-CS-01",
    accent="#1F6B3D",
    title="costingSheet",
    primary_field="client",
    secondary_fields=("project", "notes", "additionalNotes"),
    search_fields=("client", "project", "notes", "createdBy"),
    blocks=(
        InfoBlock("projectInfo", (
            ("client", "client"),
            ("project", "project"),
            ("profitPercentage", "profitPercentage"),
        )),
    ),
    item_columns=_PRICED_COLUMNS,
    has_totals=True,
    notes_fields=(("notes", "notes"), ("additionalNotes", "additionalNotes")),
    signatures=("preparedBy", "reviewedBy", "approvedBy"),
    collection_file="costing-sheets/index.json",
    artifact_dir="costing-sheets/pdfs",
)

RECEIPTS = DomainSpec(
    key="receipts",
    counter="RC",
    number_prefix="RC",
    width=4,
    id_prefix="RC",
    doc_code="OMEGA-RIC-01",
    accent="#0B4FA2",
    title="receipt",
    primary_field="to",
    secondary_fields=("attention", "address", "workLocation", "additionalText"),
    search_fields=("to", "attention", "projectCode", "createdBy"),
    blocks=(
        InfoBlock("recipientInfo", (
            ("to", "to"),
            ("attention", "attention"),
            ("address", "address"),
            ("workLocation", "workLocation"),
            ("projectCode", "projectCode"),
        )),
    ),
    item_columns=(
        ItemColumn("element", "element", 30, "start"),
        ItemColumn("description", "description", 50, "start"),
        ItemColumn("quantity", "quantity", 14),
    ),
    notes_fields=(("additionalText", "additionalText"),),
    signatures=("deliveredBy", "receivedBy"),
    collection_file="receipts/index.json",
    artifact_dir="receipts/pdfs",
)

RFQS = DomainSpec(
    key="rfqs",
    counter="RFQ",
    number_prefix="RFQ",
    width=4,
    id_prefix="RFQ",
    doc_code="OMEGA-PUR-04",
    accent="#2B4C8C",
    title="rfq",
    primary_field="supplier",
    secondary_fields=("supplierAddress", "requester", "production", "notes"),
    search_fields=("supplier", "requester", "production", "notes", "createdBy"),
    blocks=(
        InfoBlock("supplierInfo", (
            ("supplierName", "supplier"),
            ("supplierAddress", "supplierAddress"),
        )),
        InfoBlock("requestInfo", (
            ("requester", "requester"),
            ("production", "production"),
            ("urgent", "urgent"),
        )),
    ),
    item_columns=(
        ItemColumn("jobNo", "jobNo", 10),
        ItemColumn("taskNo", "taskNo", 10),
        ItemColumn("description", "description", 40, "start"),
        ItemColumn("unit", "unit", 10),
        ItemColumn("quantity", "quantity", 10),
        ItemColumn("estimatedUnitPrice", "estimatedUnitPrice", 14),
    ),
    notes_fields=(("notes", "notes"),),
    signatures=("requester", "purchaseManager"),
    collection_file="rfqs/index.json",
    artifact_dir="rfqs/pdfs",
)

EMPTY_RECEIPTS = DomainSpec(
    key="empty_receipts",
    counter="ER",
    number_prefix="ER-",
    width=5,
    id_prefix="ER",
    doc_code="OMEGA-RIC-02",
    accent="#0B4FA2",
    title="receipt",
    primary_field="to",
    secondary_fields=("notes",),
    search_fields=("to", "notes", "createdBy"),
    blocks=(
        InfoBlock("recipientInfo", (("to", "to"),)),
    ),
    notes_fields=(("notes", "notes"),),
    signatures=("deliveredBy", "receivedBy"),
    collection_file="empty-receipts/index.json",
    artifact_dir="empty-receipts/pdfs",
)


DOMAINS: dict[str, DomainSpec] = {
    spec.key: spec
    for spec in (PURCHASES, MATERIALS, COSTING_SHEETS, RECEIPTS, RFQS, EMPTY_RECEIPTS)
}


def number_formats() -> dict[str, tuple[str, int]]:
    """counter name -> (prefix, width), fed to the sequence store."""
    return {spec.counter: (spec.number_prefix, spec.width) for spec in DOMAINS.values()}
