from __future__ import annotations

import dataclasses
import importlib
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider

from .cashbook.controller import register as register_cashbook
from .config import get_settings_module
from .container import Container, build_container
from .core import constants
from .core.exceptions import DomainError, InternalError, TransactionFailure
from .database.bootstrap import apply_schema, list_tables
from .payroll.controller import register as register_payroll

logger = logging.getLogger(__name__)


class ApiJSONProvider(DefaultJSONProvider):
    """Money as strings, dates as ISO 8601."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return dataclasses.asdict(o)
        return DefaultJSONProvider.default(o)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)
    app.json = ApiJSONProvider(app)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

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
            schema_path = Path(__file__).resolve().parents[2] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            default_timezone=getattr(settings, "DEFAULT_TIMEZONE", constants.DEFAULT_TIMEZONE),
            cron_secret_token=getattr(settings, "CRON_SECRET_TOKEN", ""),
        )

    register_error_handlers(app)
    register_payroll(app, container)
    register_cashbook(app, container)

    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if isinstance(e, TransactionFailure):
            # Writes are not retried at this layer; the caller sees a plain internal error.
            e = InternalError(e.message)
        if e.http_status >= 500:
            logger.error("Request failed: %s", e.message)
        return jsonify({"error": e.to_dict()}), e.http_status

    @app.errorhandler(500)
    def handle_internal_error(e):
        logger.error("Unhandled error: %r", getattr(e, "original_exception", e))
        return jsonify({"error": InternalError("Something went wrong").to_dict()}), 500
