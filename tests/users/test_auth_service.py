from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from rooster.core.enums import Role
from rooster.core.exceptions import AuthenticationError, ValidationError
from rooster.users.service import AuthService, PasswordResetService, UserService
from rooster.users.tokens import TokenService

NOW = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def tokens():
    return TokenService("test-secret", ttl_minutes=60)


@pytest.fixture
def auth(users_repo, tokens):
    return AuthService(users_repo, tokens, clock=lambda: NOW)


def test_login_returns_token_for_user(auth, users_repo, tokens):
    user = users_repo.add(email="emp@example.com", password="secret123", role=Role.MANAGER)

    result = auth.authenticate("  EMP@example.com ", "secret123")
    claims = tokens.decode(result.token)

    assert claims.user_id == user.user_id
    assert claims.role == Role.MANAGER
    assert result.user.last_login == NOW


def test_login_failures(auth, users_repo):
    users_repo.add(email="emp@example.com", password="secret123")
    users_repo.add(email="off@example.com", password="secret123", is_active=False)

    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.authenticate("emp@example.com", "wrong-pass")
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.authenticate("nobody@example.com", "secret123")
    with pytest.raises(AuthenticationError, match="Account is deactivated"):
        auth.authenticate("off@example.com", "secret123")


def test_resolve_token_reloads_user(auth, users_repo):
    user = users_repo.add(email="emp@example.com", password="secret123")
    token = auth.authenticate("emp@example.com", "secret123").token

    users_repo.update_fields(user.user_id, {"role": Role.ADMIN})
    assert auth.resolve_token(token).role == Role.ADMIN

    users_repo.update_fields(user.user_id, {"is_active": False})
    with pytest.raises(AuthenticationError):
        auth.resolve_token(token)

    users_repo.delete_by_id(user.user_id)
    with pytest.raises(AuthenticationError):
        auth.resolve_token(token)


def test_token_expiry_and_tampering(users_repo):
    user = users_repo.add(email="emp@example.com")
    issued_at = datetime.now(timezone.utc) - timedelta(hours=2)
    stale = TokenService("test-secret", ttl_minutes=60, clock=lambda: issued_at)
    fresh = TokenService("test-secret", ttl_minutes=60)

    with pytest.raises(AuthenticationError, match="Token expired"):
        fresh.decode(stale.issue(user))

    forged = TokenService("other-secret", ttl_minutes=60).issue(user)
    with pytest.raises(AuthenticationError, match="Invalid token"):
        fresh.decode(forged)
    with pytest.raises(AuthenticationError):
        fresh.decode("not-a-token")


def test_token_without_access_type_is_rejected(users_repo):
    user = users_repo.add(email="emp@example.com")
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {"sub": str(user.user_id), "role": "employee", "iat": now, "exp": now + 60, "typ": "refresh"},
        "test-secret",
        algorithm="HS256",
    )
    with pytest.raises(AuthenticationError):
        TokenService("test-secret", ttl_minutes=60).decode(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenService("", ttl_minutes=60)


def test_password_reset_flow(users_repo, auth):
    user = users_repo.add(email="emp@example.com", password="secret123")
    clock = {"now": NOW}
    resets = PasswordResetService(users_repo, ttl_minutes=60, clock=lambda: clock["now"])

    assert resets.request_reset("nobody@example.com") is None

    token = resets.request_reset("emp@example.com")
    stored = users_repo.get_by_id(user.user_id)
    assert stored.reset_token_hash and stored.reset_token_hash != token
    assert stored.reset_expires_at == NOW + timedelta(hours=1)

    with pytest.raises(ValidationError):
        resets.reset_password(token, "short")

    resets.reset_password(token, "brand-new-pass")
    assert users_repo.get_by_id(user.user_id).reset_token_hash is None
    assert auth.authenticate("emp@example.com", "brand-new-pass").user.user_id == user.user_id

    with pytest.raises(ValidationError, match="Invalid or expired reset token"):
        resets.reset_password(token, "another-pass")


def test_password_reset_token_expires_after_an_hour(users_repo):
    users_repo.add(email="emp@example.com")
    clock = {"now": NOW}
    resets = PasswordResetService(users_repo, ttl_minutes=60, clock=lambda: clock["now"])

    token = resets.request_reset("emp@example.com")
    clock["now"] = NOW + timedelta(hours=1)

    with pytest.raises(ValidationError, match="Invalid or expired reset token"):
        resets.reset_password(token, "brand-new-pass")


def test_debug_create_skips_admin_check(users_repo):
    user = UserService(users_repo).create_debug_user(
        {"email": "dev@example.com", "password": "secret1", "firstName": "Dev", "lastName": "User", "role": "admin"}
    )
    assert user.role == Role.ADMIN
    assert user.is_active
