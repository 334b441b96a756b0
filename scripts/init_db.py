from __future__ import annotations

import argparse
import importlib
import logging
from pathlib import Path

from rozgarpay.config import get_settings_module
from rozgarpay.database.bootstrap import apply_schema, apply_seed_sql, list_tables

logger = logging.getLogger("rozgarpay.init_db")

DATABASE_DIR = Path(__file__).resolve().parents[1] / "database"


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply database/schema.sql (and optionally seed.sql).")
    parser.add_argument("--seed", action="store_true", help="also load the demo rows from database/seed.sql")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    statements = apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
    if args.seed:
        statements += apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")

    logger.info(
        "Applied %s statements -> %s@%s:%s/%s (tables=%s)",
        statements,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        len(list_tables(db_config)),
    )


if __name__ == "__main__":
    main()
