from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local
from ..common.validators import normalize_email, optional_text, require_min_length, require_non_empty
from ..core.constants import (
    ADMIN_UPDATABLE_FIELDS,
    DEFAULT_RESET_TOKEN_TTL_MINUTES,
    MIN_PASSWORD_LENGTH,
    SELF_UPDATABLE_FIELDS,
)
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from ..core.permissions import Capability, can_act_on, has_capability, require_capability
from .model import FIELD_COLUMNS, User, compute_profile_complete
from .repository import UserRepository
from .tokens import TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity attached to an authenticated request."""

    user_id: int
    email: str
    role: Role


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _parse_role(value: object) -> Role:
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid role {value!r}")


class AuthService:
    """Use case: log in and resolve bearer tokens to users."""

    def __init__(self, users: UserRepository, tokens: TokenService, *, clock: Callable[[], datetime] = now_local):
        self._users = users
        self._tokens = tokens
        self._clock = clock

    def authenticate(self, email: str, password: str) -> LoginResult:
        normalized = (email or "").strip().lower()
        user = self._users.get_by_email(normalized) if normalized else None
        if not user:
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes or corrupted values
            ok = False
        if not ok:
            raise AuthenticationError("Invalid email or password")

        self._users.touch_last_login(user.user_id, at=self._clock())
        logger.info("User %s logged in", user.user_id)
        user = self._users.get_by_id(user.user_id) or user
        return LoginResult(token=self._tokens.issue(user), user=user)

    def resolve_token(self, token: str) -> CurrentUser:
        claims = self._tokens.decode(token)
        user = self._users.get_by_id(claims.user_id)
        if not user:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")
        # Role comes from the store so demotions apply before the token expires.
        return CurrentUser(user_id=user.user_id, email=user.email, role=user.role)


class UserService:
    """Use case: user directory (register, profile, admin CRUD)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def _require(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_user(self, user_id: int) -> User:
        return self._require(user_id)

    def _create(self, payload: Mapping[str, object], *, is_active: bool = True) -> User:
        email = normalize_email(payload.get("email"))  # type: ignore[arg-type]
        password = require_min_length(payload.get("password"), "Password", MIN_PASSWORD_LENGTH)  # type: ignore[arg-type]
        first_name = require_non_empty(payload.get("firstName"), "First name")  # type: ignore[arg-type]
        last_name = require_non_empty(payload.get("lastName"), "Last name")  # type: ignore[arg-type]
        role = _parse_role(payload.get("role") or Role.EMPLOYEE.value)

        if self._users.get_by_email(email):
            raise ValidationError("Email already registered")

        try:
            user_id = self._users.create_user(
                email=email,
                password_hash=generate_password_hash(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                department=optional_text(payload.get("department")),
                position=optional_text(payload.get("position")),
                is_active=is_active,
            )
        except DuplicateRecordError:
            # Lost a race against a concurrent registration of the same e-mail.
            raise ValidationError("Email already registered")

        logger.info("User %s created with role %s", user_id, role.value)
        return self._require(user_id)

    def register(self, actor: CurrentUser, payload: Mapping[str, object]) -> User:
        require_capability(actor.role, Capability.REGISTER_USERS, "Only admins can register new users")
        return self._create(payload)

    def create_debug_user(self, payload: Mapping[str, object]) -> User:
        return self._create(payload, is_active=True)

    def list_users(self, actor: CurrentUser, *, role: Optional[str] = None) -> list[User]:
        require_capability(actor.role, Capability.LIST_USERS, "Only admins and managers can view users")
        role_filter = _parse_role(role) if role else None
        return list(self._users.list_users(role=role_filter))

    def update_self(self, user_id: int, updates: Mapping[str, object]) -> User:
        user = self._require(user_id)
        return self._apply_updates(user, updates, allowed=SELF_UPDATABLE_FIELDS)

    def update_user(self, actor: CurrentUser, user_id: int, updates: Mapping[str, object]) -> User:
        if not can_act_on(actor.role, actor_id=actor.user_id, target_id=user_id, capability=Capability.UPDATE_ANY_USER):
            raise AuthorizationError("Unauthorized to update this user")
        allowed = ADMIN_UPDATABLE_FIELDS if has_capability(actor.role, Capability.UPDATE_ANY_USER) else SELF_UPDATABLE_FIELDS
        user = self._require(user_id)
        return self._apply_updates(user, updates, allowed=allowed)

    def delete_user(self, actor: CurrentUser, user_id: int) -> None:
        require_capability(actor.role, Capability.DELETE_USERS, "Only admins can delete users")
        if int(user_id) == actor.user_id:
            raise ValidationError("Admins cannot delete their own account")
        if not self._users.delete_by_id(int(user_id)):
            raise NotFoundError("User not found")
        logger.info("User %s deleted by %s", user_id, actor.user_id)

    def _apply_updates(self, user: User, updates: Mapping[str, object], *, allowed: frozenset[str]) -> User:
        if not isinstance(updates, Mapping) or not updates:
            raise ValidationError("Invalid updates")
        if "password" in updates:
            raise ValidationError("Password cannot be updated via this route. Use /auth/reset-password instead.")
        if set(updates) - allowed:
            raise ValidationError("Invalid updates")

        updates = dict(updates)
        name = updates.pop("name", None)
        if name is not None and "firstName" not in updates and "lastName" not in updates:
            parts = str(name).strip().split()
            updates["firstName"] = parts[0] if parts else ""
            updates["lastName"] = " ".join(parts[1:])

        columns: dict[str, object] = {}
        for key, value in updates.items():
            columns[FIELD_COLUMNS[key]] = self._coerce(key, value)

        if "email" in columns and columns["email"] != user.email:
            other = self._users.get_by_email(str(columns["email"]))
            if other and other.user_id != user.user_id:
                raise ValidationError("Email already exists")

        merged = replace(user, **columns)
        columns["is_profile_complete"] = compute_profile_complete(merged)

        try:
            self._users.update_fields(user.user_id, columns)
        except DuplicateRecordError:
            raise ValidationError("Email already exists")
        return self._require(user.user_id)

    @staticmethod
    def _coerce(key: str, value: object) -> object:
        if key == "email":
            return normalize_email(value)  # type: ignore[arg-type]
        if key == "role":
            return _parse_role(value)
        if key == "isActive":
            if not isinstance(value, bool):
                raise ValidationError("isActive must be a boolean")
            return value
        if key in ("firstName", "lastName"):
            return str(value or "").strip()
        return optional_text(value)


class PasswordResetService:
    """Use case: time-bound password reset tokens."""

    def __init__(
        self,
        users: UserRepository,
        *,
        ttl_minutes: int = DEFAULT_RESET_TOKEN_TTL_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._users = users
        self._ttl = timedelta(minutes=int(ttl_minutes))
        self._clock = clock

    def request_reset(self, email: str) -> Optional[str]:
        """Return the raw token, or None when the e-mail is unknown (callers must not reveal which)."""
        user = self._users.get_by_email((email or "").strip().lower())
        if not user:
            return None

        token = secrets.token_hex(32)
        self._users.set_reset_token(
            user.user_id,
            token_hash=hash_reset_token(token),
            expires_at=self._clock() + self._ttl,
        )
        logger.info("Password reset requested for user %s", user.user_id)
        return token

    def reset_password(self, token: str, password: str) -> None:
        if not token:
            raise ValidationError("Invalid or expired reset token")
        user = self._users.get_by_reset_token_hash(hash_reset_token(token))
        if not user or not user.reset_expires_at or user.reset_expires_at <= self._clock():
            raise ValidationError("Invalid or expired reset token")

        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        self._users.set_password(user.user_id, password_hash=generate_password_hash(password))
        logger.info("Password reset completed for user %s", user.user_id)
