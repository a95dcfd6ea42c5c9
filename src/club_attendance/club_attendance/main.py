from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import build_container
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)


def create_app(**overrides) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config.update(overrides)

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    backend = str(getattr(settings, "STORE_BACKEND", "mysql"))
    db_config = getattr(settings, "DB_CONFIG", None)

    if backend == "mysql":
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = app.config.get("CONTAINER") or build_container(
        db_config=db_config,
        backend=backend,
        timezone_name=str(getattr(settings, "CLUB_TIMEZONE")),
        poll_seconds=float(getattr(settings, "FEED_POLL_SECONDS", 2.0)),
    )
    app.extensions["club_attendance"] = container

    register_attendance(app, container)

    return app
