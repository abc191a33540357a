from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import iso_or_none
from ..core.enums import Role


@dataclass(frozen=True)
class UserDocument:
    document_type: Optional[str]
    path: str
    file_name: Optional[str] = None


@dataclass(frozen=True)
class User:
    """Domain entity: an account with its profile.

    Plain data object; storage lives in the repositories.
    """

    user_id: int
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    department: Optional[str] = None
    position: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    is_active: bool = True
    is_profile_complete: bool = False
    avatar: Optional[str] = None
    documents: tuple[UserDocument, ...] = ()
    reset_token_hash: Optional[str] = None
    reset_expires_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# API field -> column / attribute name.
FIELD_COLUMNS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "emergencyContact": "emergency_contact",
    "emergencyPhone": "emergency_phone",
    "role": "role",
    "department": "department",
    "position": "position",
    "isActive": "is_active",
}

_PROFILE_REQUIRED = ("first_name", "last_name", "phone", "address", "emergency_contact", "emergency_phone")


def compute_profile_complete(user: User) -> bool:
    return all(str(getattr(user, attr) or "").strip() for attr in _PROFILE_REQUIRED)


def to_public_profile(user: User) -> dict:
    """Sanitized view: no password hash, no reset token."""
    return {
        "id": user.user_id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "name": user.full_name,
        "role": user.role.value,
        "department": user.department,
        "position": user.position,
        "phone": user.phone,
        "address": user.address,
        "emergencyContact": user.emergency_contact,
        "emergencyPhone": user.emergency_phone,
        "isActive": user.is_active,
        "isProfileComplete": user.is_profile_complete,
        "avatar": user.avatar,
        "documents": [
            {"type": d.document_type, "path": d.path, "fileName": d.file_name} for d in user.documents
        ],
        "lastLogin": iso_or_none(user.last_login),
        "createdAt": iso_or_none(user.created_at),
    }
