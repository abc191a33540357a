from __future__ import annotations

from functools import wraps
from typing import Callable

from flask import g, request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from ..users.service import AuthService, CurrentUser


def bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Not authorized, no token")
    return token.strip()


def current_user() -> CurrentUser:
    user = g.get("current_user")
    if user is None:
        raise AuthenticationError("Not authorized")
    return user


def make_login_required(auth_service: AuthService) -> Callable:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.current_user = auth_service.resolve_token(bearer_token())
            return view(*args, **kwargs)

        return wrapper

    return login_required


def roles_required(*roles: Role) -> Callable:
    """Must sit under ``login_required``."""
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if current_user().role not in allowed:
                raise AuthorizationError("Insufficient role")
            return view(*args, **kwargs)

        return wrapper

    return decorator
