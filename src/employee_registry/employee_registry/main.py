from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import build_container
from .core.enums import StoreBackend
from .database.bootstrap import apply_schema, list_tables
from .employees.controller import register as register_employees

logger = logging.getLogger(__name__)


def configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates")

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG", None)
    store_backend = getattr(settings, "STORE_BACKEND", StoreBackend.MYSQL.value)
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["PUBLIC_BASE_URL"] = getattr(settings, "PUBLIC_BASE_URL", "")
    app.config["COMPANY_LOGO_URL"] = getattr(settings, "COMPANY_LOGO_URL", "")
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_CONTENT_LENGTH", 8 * 1024 * 1024))

    logger.info("settings=%s store=%s", settings_module, store_backend)

    if store_backend == StoreBackend.MYSQL.value and bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        store_backend=store_backend,
        company_code=getattr(settings, "COMPANY_CODE", "ART"),
        photo_dir=getattr(settings, "PHOTO_DIR", "instance/photos"),
        max_retries=int(getattr(settings, "MAX_ALLOCATION_RETRIES", 5)),
        lock_timeout=float(getattr(settings, "BUCKET_LOCK_TIMEOUT", 10)),
    )
    app.extensions["employee_registry"] = container

    register_employees(app, container)

    return app
