from __future__ import annotations

import os

from dotenv import load_dotenv

from rooster.config import load_settings
from rooster.database.bootstrap import apply_schema, ensure_admin_user, list_tables


def main() -> None:
    load_dotenv(override=False)
    settings = load_settings()
    db_config = settings.db_config

    apply_schema(db_config)
    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")
    if admin_email and admin_password:
        ensure_admin_user(db_config, email=admin_email, password=admin_password)

    tables = list_tables(db_config)
    print(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)})"
    )


if __name__ == "__main__":
    main()
