"""Create demo accounts (one per role) for local development."""

from __future__ import annotations

from dotenv import load_dotenv
from werkzeug.security import generate_password_hash

from rooster.config import load_settings
from rooster.container import build_container
from rooster.core.enums import Role
from rooster.core.exceptions import DuplicateRecordError
from rooster.database.bootstrap import ensure_admin_user

DEMO_USERS = [
    ("manager@rooster.local", "manager123", "Morgan", "Manager", Role.MANAGER),
    ("employee@rooster.local", "employee123", "Emery", "Employee", Role.EMPLOYEE),
]


def main() -> None:
    load_dotenv(override=False)
    settings = load_settings()
    db_config = settings.db_config

    ensure_admin_user(db_config, email="admin@rooster.local", password="admin123")

    users = build_container(settings).users_repo
    for email, password, first_name, last_name, role in DEMO_USERS:
        try:
            users.create_user(
                email=email,
                password_hash=generate_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
            )
        except DuplicateRecordError:
            continue

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )


if __name__ == "__main__":
    main()
