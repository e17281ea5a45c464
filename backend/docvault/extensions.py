# Overview: Flask extension wiring the stores, renderer, composer and file registry to app config.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from flask import Flask, current_app

from .domains import DOMAINS, DomainSpec, number_formats
from .services.collection_service import RecordCollection
from .services.compose_service import DocumentComposer
from .services.file_registry_service import FileRegistry, FileSource
from .services.render_service import DocumentRenderer
from .services.sequence_service import SequenceStore
from .validation import NotFoundError, ValidationError

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_LOGO = PACKAGE_DIR / "assets" / "logo.png"


def _extra_dirs(value: str, data_dir: Path) -> list[tuple[str, Path]]:
    pairs = []
    for chunk in (value or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        type_, sep, raw_path = chunk.partition("=")
        if not sep or not type_.strip() or not raw_path.strip():
            raise ValidationError(f"DOCVAULT_EXTRA_FILE_DIRS entry must be TYPE=PATH, got {chunk!r}")
        path = Path(raw_path.strip())
        pairs.append((type_.strip(), path if path.is_absolute() else data_dir / path))
    return pairs


@dataclass
class VaultState:
    data_dir: Path
    sequences: SequenceStore
    collections: dict[str, RecordCollection]
    renderer: DocumentRenderer
    composer: DocumentComposer
    registry: FileRegistry
    addendum_path: Path
    filename_max_name: int
    page_limit_default: int

    @classmethod
    def from_config(cls, config) -> "VaultState":
        data_dir = Path(config["DOCVAULT_DATA_DIR"]).expanduser()
        default_language = config["DOCVAULT_DEFAULT_LANGUAGE"]
        max_limit = int(config["DOCVAULT_PAGE_LIMIT_MAX"])

        sequences = SequenceStore(
            Path(config.get("DOCVAULT_COUNTERS_FILE") or data_dir / "counters.json"),
            number_formats(),
        )
        collections = {
            key: RecordCollection(
                data_dir / spec.collection_file,
                spec,
                sequences,
                default_language=default_language,
                max_limit=max_limit,
            )
            for key, spec in DOMAINS.items()
        }

        sources = [
            FileSource(type=key, directory=data_dir / spec.artifact_dir, collection=collections[key])
            for key, spec in DOMAINS.items()
        ]
        for type_, directory in _extra_dirs(config.get("DOCVAULT_EXTRA_FILE_DIRS", ""), data_dir):
            sources.append(FileSource(type=type_, directory=directory))

        return cls(
            data_dir=data_dir,
            sequences=sequences,
            collections=collections,
            renderer=DocumentRenderer(default_language=default_language),
            composer=DocumentComposer(config.get("DOCVAULT_LOGO_PATH") or DEFAULT_LOGO),
            registry=FileRegistry(sources, root=data_dir, max_limit=max_limit),
            addendum_path=Path(
                config.get("DOCVAULT_ADDENDUM_PATH") or data_dir / "terms-and-conditions.pdf"
            ),
            filename_max_name=int(config["DOCVAULT_FILENAME_MAX_NAME"]),
            page_limit_default=int(config["DOCVAULT_PAGE_LIMIT_DEFAULT"]),
        )

    def spec(self, key: str) -> DomainSpec:
        try:
            return DOMAINS[key]
        except KeyError:
            raise NotFoundError(f"Unknown document type: {key}")

    def collection(self, key: str) -> RecordCollection:
        self.spec(key)
        return self.collections[key]

    def artifact_dir(self, key: str) -> Path:
        return self.data_dir / self.spec(key).artifact_dir


class DocVault:
    """Holds one VaultState per app under app.extensions["docvault"]."""

    def __init__(self, app: Optional[Flask] = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.extensions["docvault"] = VaultState.from_config(app.config)

    @property
    def state(self) -> VaultState:
        return current_app.extensions["docvault"]

    def __getattr__(self, name: str):
        # vault.sequences, vault.collection(...), ... resolve against the current app.
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.state, name)


vault = DocVault()
