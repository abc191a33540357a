from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Sequence

from ..core.enums import Role
from ..core.exceptions import DuplicateRecordError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import User, UserDocument
from .repository import UserRepository

_USER_COLUMNS = """
    user_id, email, password_hash, first_name, last_name, role, department, position,
    phone, address, emergency_contact, emergency_phone, is_active, is_profile_complete,
    avatar, reset_token_hash, reset_expires_at, last_login, created_at
"""

_UPDATABLE_COLUMNS = frozenset(
    {
        "email",
        "first_name",
        "last_name",
        "role",
        "department",
        "position",
        "phone",
        "address",
        "emergency_contact",
        "emergency_phone",
        "is_active",
        "is_profile_complete",
    }
)


def _row_to_user(row: dict, documents: Sequence[UserDocument] = ()) -> User:
    return User(
        user_id=int(row["user_id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        role=Role(row["role"]),
        department=row.get("department"),
        position=row.get("position"),
        phone=row.get("phone"),
        address=row.get("address"),
        emergency_contact=row.get("emergency_contact"),
        emergency_phone=row.get("emergency_phone"),
        is_active=bool(row.get("is_active", True)),
        is_profile_complete=bool(row.get("is_profile_complete", False)),
        avatar=row.get("avatar"),
        documents=tuple(documents),
        reset_token_hash=row.get("reset_token_hash"),
        reset_expires_at=row.get("reset_expires_at"),
        last_login=row.get("last_login"),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _documents(self, cur, user_ids: Sequence[int]) -> dict[int, list[UserDocument]]:
        if not user_ids:
            return {}
        placeholders = ",".join(["%s"] * len(user_ids))
        cur.execute(
            f"""
            SELECT user_id, document_type, path, file_name
            FROM user_documents
            WHERE user_id IN ({placeholders})
            ORDER BY document_id
            """,
            tuple(user_ids),
        )
        out: dict[int, list[UserDocument]] = {}
        for r in fetchall(cur):
            out.setdefault(int(r["user_id"]), []).append(
                UserDocument(document_type=r.get("document_type"), path=r["path"], file_name=r.get("file_name"))
            )
        return out

    def _get_one(self, where: str, value: object) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE {where}=%s", (value,))
            row = fetchone(cur)
            if not row:
                return None
            docs = self._documents(cur, [int(row["user_id"])])
            return _row_to_user(row, docs.get(int(row["user_id"]), ()))

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("user_id", int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email", email)

    def get_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        return self._get_one("reset_token_hash", token_hash)

    def list_users(self, *, role: Optional[Role] = None) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            if role is not None:
                cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE role=%s ORDER BY user_id", (role.value,))
            else:
                cur.execute(f"SELECT {_USER_COLUMNS} FROM users ORDER BY user_id")
            rows = fetchall(cur)
            docs = self._documents(cur, [int(r["user_id"]) for r in rows])
            return [_row_to_user(r, docs.get(int(r["user_id"]), ())) for r in rows]

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role,
        department: Optional[str] = None,
        position: Optional[str] = None,
        is_active: bool = True,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO users(email, password_hash, first_name, last_name, role, department, position, is_active)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (email, password_hash, first_name, last_name, role.value, department, position, int(is_active)),
                )
            except Exception as exc:
                if is_duplicate_key(exc):
                    raise DuplicateRecordError("Email already registered") from exc
                raise
            return int(cur.lastrowid)

    def update_fields(self, user_id: int, fields: Mapping[str, object]) -> bool:
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValidationError(f"Cannot update columns: {', '.join(sorted(unknown))}")
        if not fields:
            return False

        assignments = ", ".join(f"{col}=%s" for col in fields)
        params = [v.value if isinstance(v, Enum) else v for v in fields.values()]
        params.append(int(user_id))

        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(f"UPDATE users SET {assignments} WHERE user_id=%s", tuple(params))
            except Exception as exc:
                if is_duplicate_key(exc):
                    raise DuplicateRecordError("Email already exists") from exc
                raise
            # rowcount is 0 when values did not change; existence is what matters.
            cur.execute("SELECT 1 AS ok FROM users WHERE user_id=%s", (int(user_id),))
            return fetchone(cur) is not None

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def set_reset_token(self, user_id: int, *, token_hash: str, expires_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET reset_token_hash=%s, reset_expires_at=%s WHERE user_id=%s",
                (token_hash, expires_at, int(user_id)),
            )
            return cur.rowcount > 0

    def set_password(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET password_hash=%s, reset_token_hash=NULL, reset_expires_at=NULL
                WHERE user_id=%s
                """,
                (password_hash, int(user_id)),
            )
            return cur.rowcount > 0

    def touch_last_login(self, user_id: int, *, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET last_login=%s WHERE user_id=%s", (at, int(user_id)))

    def set_avatar(self, user_id: int, avatar: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET avatar=%s WHERE user_id=%s", (avatar, int(user_id)))
            cur.execute("SELECT 1 AS ok FROM users WHERE user_id=%s", (int(user_id),))
            return fetchone(cur) is not None

    def add_document(self, user_id: int, *, document_type: Optional[str], path: str, file_name: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO user_documents(user_id, document_type, path, file_name) VALUES(%s,%s,%s,%s)",
                (int(user_id), document_type, path, file_name),
            )
            return int(cur.lastrowid)
