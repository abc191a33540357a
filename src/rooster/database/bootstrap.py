from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv
from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig
from .mysql_base import db_cursor

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def _iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside quotes, dropping '--' comment lines."""
    lines = [ln for ln in sql.splitlines() if not ln.lstrip().startswith("--")]
    buf: list[str] = []
    quote: Optional[str] = None

    for ch in "\n".join(lines):
        if quote:
            buf.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue
        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    sql = Path(schema_path).read_text(encoding="utf-8")

    with db_cursor(DatabaseConnection(DBConfig.from_dict(db_config)), dictionary=False) as (_, cur):
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
    logger.info("Schema applied from %s", schema_path)


def ensure_admin_user(db_config: dict, *, email: str, password: str) -> None:
    """Create (or re-activate) an admin account, so a fresh install can register users."""
    email = email.strip().lower()
    with db_cursor(DatabaseConnection(DBConfig.from_dict(db_config))) as (_, cur):
        cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
        if cur.fetchone():
            cur.execute("UPDATE users SET role='admin', is_active=1 WHERE email=%s", (email,))
            return
        cur.execute(
            """
            INSERT INTO users (email, password_hash, first_name, last_name, role, is_active)
            VALUES (%s, %s, %s, %s, 'admin', 1)
            """,
            (email, generate_password_hash(password), "Admin", "User"),
        )
    logger.info("Admin account %s created", email)


def list_tables(db_config: dict) -> list[str]:
    with db_cursor(DatabaseConnection(DBConfig.from_dict(db_config)), dictionary=False) as (_, cur):
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]


def main() -> None:
    """Console entry point: apply the schema and optionally create the admin account."""
    import os

    from ..config import load_settings

    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = load_settings()

    apply_schema(settings.db_config)
    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")
    if admin_email and admin_password:
        ensure_admin_user(settings.db_config, email=admin_email, password=admin_password)

    db = settings.db_config
    print(
        "OK: Applied schema.sql -> "
        f"{db.get('user')}@{db.get('host')}:{db.get('port', 3306)}/{db.get('database')} "
        f"(tables={len(list_tables(db))})"
    )


if __name__ == "__main__":
    main()
