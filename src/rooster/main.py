from __future__ import annotations

import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .attendance.controller import register as register_attendance
from .common.http import register_error_handlers
from .config import Settings, load_settings
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_admin_user, list_tables
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    if settings is None:
        settings = container.settings if container else load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config["DEBUG"] = settings.debug
    app.config["TESTING"] = settings.testing
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_mb * 1024 * 1024

    db_config = settings.db_config
    if settings.debug:
        logger.info(
            "db=%s@%s:%s/%s",
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

    if settings.auto_init_db and container is None:
        apply_schema(db_config)
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if settings.auto_seed_db:
            ensure_admin_user(db_config, email="admin@rooster.local", password="admin123")
            logger.info("Demo admin account ready")

    container = container or build_container(settings)

    register_error_handlers(app)
    register_users(app, container)
    register_attendance(app, container)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    return app
