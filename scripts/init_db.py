from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv

from fmpa_portal.config import get_settings_module
from fmpa_portal.database.bootstrap import apply_schema, list_tables
from fmpa_portal.database.connection import DBConfig, DatabaseConnection

logger = logging.getLogger("init_db")


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    settings = importlib.import_module(get_settings_module())
    db = DatabaseConnection(DBConfig.from_dict(dict(settings.DB_CONFIG)))

    schema_path = Path(__file__).resolve().parents[1] / "database" / "schema.sql"
    apply_schema(db, schema_path=schema_path)
    tables = list_tables(db)
    logger.info(
        "Applied schema.sql -> %s@%s:%s/%s (tables=%s)",
        db.config.user,
        db.config.host,
        db.config.port,
        db.config.database,
        len(tables),
    )


if __name__ == "__main__":
    main()
