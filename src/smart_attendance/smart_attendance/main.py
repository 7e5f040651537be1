from __future__ import annotations

import importlib
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.logger import configure_logging, get_logger
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_demo_student, list_tables
from .identity.controller import register as register_identity

logger = get_logger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def _settings_dict(settings) -> dict:
    return {name: getattr(settings, name) for name in dir(settings) if name.isupper()}


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    options = _settings_dict(settings)

    app.secret_key = options["SECRET_KEY"]
    app.config["DEBUG"] = bool(options.get("DEBUG", False))
    app.config["TESTING"] = bool(options.get("TESTING", False))
    app.config["RECORDS_STREAM_KEEPALIVE_SECONDS"] = options.get("RECORDS_STREAM_KEEPALIVE_SECONDS", 15)
    app.config["RECORDS_STREAM_MAX_SECONDS"] = options.get("RECORDS_STREAM_MAX_SECONDS", 300)
    app.permanent_session_lifetime = timedelta(days=int(options.get("SESSION_DAYS", 7)))

    configure_logging(level=options.get("LOG_LEVEL", "INFO"), log_dir=options.get("LOG_DIR"))

    if container is None:
        db_config = options["DB_CONFIG"]
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if options.get("AUTO_INIT_DB"):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if options.get("AUTO_SEED_DB"):
            ensure_demo_student(db_config)
            logger.info("Demo student ready")

        container = build_container(db_config=db_config, options=options)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "ok"})

    register_identity(app, container)
    register_attendance(app, container)

    return app
