from __future__ import annotations

import importlib
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_admin_user, list_tables
from .academics.controller import register as register_academics
from .attendance.controller import register as register_attendance
from .devices.controller import register as register_devices
from .fees.controller import register as register_fees
from .pages.controller import register as register_pages
from .summaries.controller import register as register_summaries
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[3]


def configure_logging(*, level: str = "INFO", log_file: str = "") -> None:
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_file:
        path = Path(log_file)
        if not path.is_absolute():
            path = ROOT_DIR / path
        path.parent.mkdir(parents=True, exist_ok=True)
        if not any(isinstance(h, RotatingFileHandler) and h.baseFilename == str(path) for h in root.handlers):
            handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3)
            handler.setFormatter(formatter)
            root.addHandler(handler)


def create_app(container: Optional[Container] = None) -> Flask:
    """App factory. Pass ``container`` to run over pre-built services (tests)."""
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates")

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["FEE_AUTOGENERATE"] = bool(getattr(settings, "FEE_AUTOGENERATE", True))

    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", ""))
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=ROOT_DIR / "database" / "schema.sql")
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=ROOT_DIR / "database" / "seed.sql")
            ensure_admin_user(db_config)
            logger.info("Demo seed ready")

        container = build_container(db_config=db_config, fee_autogenerate=app.config["FEE_AUTOGENERATE"])

    @app.before_request
    def run_fee_maintenance():
        container.fee_maintenance.run_if_due()

    register_users(app, container)
    register_academics(app, container)
    register_devices(app, container)
    register_attendance(app, container)
    register_summaries(app, container)
    register_fees(app, container)
    register_pages(app, container)

    return app
