from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from config import get_settings_module, load_settings

from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .notifications.notifier import EventNotifier

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def build_from_settings(*, notifier: Optional[EventNotifier] = None) -> Container:
    """Entry point for the host application: settings -> wired container."""

    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = load_settings()
    db_config = getattr(settings, "DB_CONFIG")

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.debug(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=SCHEMA_PATH)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    return build_container(db_config=db_config, settings=settings, notifier=notifier)
