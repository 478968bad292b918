from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .cache.data_cache import data_cache
from .common.logging import setup_logging
from .common.web import IsoJSONProvider
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig, DatabaseConnection
from .attendance.controller import register as register_attendance
from .reports.controller import register as register_reports
from .students.controller import register as register_students
from .subjects.controller import register as register_subjects
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)
    app.json = IsoJSONProvider(app)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    data_cache.default_ttl = float(getattr(settings, "CACHE_DEFAULT_TTL_SECONDS", data_cache.default_ttl))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
            apply_schema(conn)
            logger.info("schema ready (tables=%d)", len(list_tables(conn)))

        container = build_container(
            db_config=db_config,
            submit_max_workers=int(getattr(settings, "SUBMIT_MAX_WORKERS", 8)),
        )

    register_users(app, container)
    register_subjects(app, container)
    register_students(app, container)
    register_attendance(app, container)
    register_reports(app, container)

    return app
