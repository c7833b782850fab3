from __future__ import annotations

import atexit
import importlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables

from .container import Container, build_container
from .core.constants import SESSION_LIFETIME_DAYS
from .attendance.controller import register as register_attendance
from .checkin.controller import register as register_checkin
from .schedules.controller import register as register_schedules
from .sessions.controller import register as register_sessions
from .subjects.controller import register as register_subjects
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the Flask app.

    Tests pass a container of in-memory repositories; otherwise the MySQL
    container is built from the settings module selected by APP_ENV.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.permanent_session_lifetime = timedelta(days=SESSION_LIFETIME_DAYS)
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["SCHOOL_TIMEZONE"] = getattr(settings, "SCHOOL_TIMEZONE", "Asia/Manila")
    app.config["POLL_INTERVAL_SECONDS"] = float(getattr(settings, "POLL_INTERVAL_SECONDS", 3))
    app.config["PUBLIC_BASE_URL"] = getattr(settings, "PUBLIC_BASE_URL", "")

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        container = build_container(
            db_config=db_config,
            school_timezone=app.config["SCHOOL_TIMEZONE"],
            poll_interval_seconds=app.config["POLL_INTERVAL_SECONDS"],
        )
        atexit.register(container.session_service.shutdown)

    register_users(app, container)
    register_subjects(app, container)
    register_schedules(app, container)
    register_attendance(app, container)
    register_checkin(app, container)
    register_sessions(app, container)

    return app
