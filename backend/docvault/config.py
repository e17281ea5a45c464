# backend/docvault/config.py
from __future__ import annotations
import os


class Config:
    # Root of every collection file, artifact directory and the counter file
    DOCVAULT_DATA_DIR = os.environ.get("DOCVAULT_DATA_DIR", "./data")

    # Derived from DOCVAULT_DATA_DIR when left unset
    DOCVAULT_COUNTERS_FILE = os.environ.get("DOCVAULT_COUNTERS_FILE")
    DOCVAULT_ADDENDUM_PATH = os.environ.get("DOCVAULT_ADDENDUM_PATH")

    # Defaults to the packaged assets/logo.png
    DOCVAULT_LOGO_PATH = os.environ.get("DOCVAULT_LOGO_PATH")

    # Fallback when a record has no text to classify ("ar" or "en")
    DOCVAULT_DEFAULT_LANGUAGE = os.environ.get("DOCVAULT_DEFAULT_LANGUAGE", "ar")

    DOCVAULT_FILENAME_MAX_NAME = int(os.environ.get("DOCVAULT_FILENAME_MAX_NAME", "30"))
    DOCVAULT_PAGE_LIMIT_DEFAULT = int(os.environ.get("DOCVAULT_PAGE_LIMIT_DEFAULT", "10"))
    DOCVAULT_PAGE_LIMIT_MAX = int(os.environ.get("DOCVAULT_PAGE_LIMIT_MAX", "500"))

    # Extra directories listed by the file registry, as TYPE=PATH pairs separated by ","
    DOCVAULT_EXTRA_FILE_DIRS = os.environ.get("DOCVAULT_EXTRA_FILE_DIRS", "")

    DOCVAULT_LOG_LEVEL = os.environ.get("DOCVAULT_LOG_LEVEL", "INFO")
