from __future__ import annotations

import importlib

from dotenv import load_dotenv

from attendance_tracker.config import get_settings_module
from attendance_tracker.database.bootstrap import apply_schema, list_tables
from attendance_tracker.database.connection import DBConfig, DatabaseConnection


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    config = DBConfig.from_dict(dict(settings.DB_CONFIG))
    conn = DatabaseConnection.get_instance(config)

    executed = apply_schema(conn)
    tables = list_tables(conn)
    print(
        f"OK: Applied schema.sql ({executed} statements) -> "
        f"{config.user}@{config.host}:{config.port}/{config.database} (tables={len(tables)})"
    )


if __name__ == "__main__":
    main()
