from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import load_settings

from src.teller_rotation.teller_rotation.database.bootstrap import REQUIRED_TABLES, apply_schema, list_tables


def main() -> None:
    load_dotenv(override=False)
    db_config = dict(load_settings().DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    tables = set(list_tables(db_config))
    missing = sorted(set(REQUIRED_TABLES) - tables)
    if missing:
        raise SystemExit(f"Schema incomplete, missing tables: {', '.join(missing)}")

    print(
        "OK: rotation schema ready -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"({', '.join(REQUIRED_TABLES)})"
    )


if __name__ == "__main__":
    main()
