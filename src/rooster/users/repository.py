from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        raise NotImplementedError

    def list_users(self, *, role: Optional[Role] = None) -> Sequence[User]:
        raise NotImplementedError

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
        """Raises DuplicateRecordError when the e-mail is taken."""

        raise NotImplementedError

    def update_fields(self, user_id: int, fields: Mapping[str, object]) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def set_reset_token(self, user_id: int, *, token_hash: str, expires_at: datetime) -> bool:
        raise NotImplementedError

    def set_password(self, user_id: int, *, password_hash: str) -> bool:
        """Store a new hash and clear any pending reset token."""

        raise NotImplementedError

    def touch_last_login(self, user_id: int, *, at: datetime) -> None:
        raise NotImplementedError

    def set_avatar(self, user_id: int, avatar: Optional[str]) -> bool:
        raise NotImplementedError

    def add_document(self, user_id: int, *, document_type: Optional[str], path: str, file_name: Optional[str]) -> int:
        raise NotImplementedError
