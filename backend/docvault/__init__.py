# backend/docvault/__init__.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from flask import Flask

from .config import Config
from .extensions import vault


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Service modules log under "docvault.*", children of the app logger.
    app.logger.setLevel(getattr(logging, str(app.config["DOCVAULT_LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    vault.init_app(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
