from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from ..core.enums import MediaCategory
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError
from ..core.permissions import Capability, can_act_on
from ..common.validators import optional_text
from ..users.model import User
from ..users.repository import UserRepository
from ..users.service import CurrentUser
from .store import LocalMediaStore

logger = logging.getLogger(__name__)


class ProfileMediaService:
    """Use case: avatar replacement and document uploads attached to a user."""

    def __init__(self, users: UserRepository, store: LocalMediaStore):
        self._users = users
        self._store = store

    def _require(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def _discard(self, stored_path: str) -> None:
        try:
            self._store.delete(stored_path)
        except (DomainError, OSError) as exc:
            logger.warning("Could not remove stale upload %s: %s", stored_path, exc)

    def replace_avatar(self, user_id: int, stream: BinaryIO, original_name: str) -> User:
        user = self._require(user_id)
        previous = user.avatar

        new_path = self._store.store(stream, MediaCategory.AVATARS, original_name)
        try:
            if not self._users.set_avatar(user.user_id, new_path):
                raise NotFoundError("User not found")
        except Exception:
            self._discard(new_path)
            raise

        if previous and previous != new_path:
            self._discard(previous)
        logger.info("Avatar updated for user %s", user.user_id)
        return self._require(user.user_id)

    def add_document(
        self,
        actor: CurrentUser,
        stream: BinaryIO,
        original_name: str,
        *,
        document_type: Optional[str],
        user_id: Optional[int] = None,
    ) -> User:
        target_id = int(user_id) if user_id is not None else actor.user_id
        if not can_act_on(actor.role, actor_id=actor.user_id, target_id=target_id, capability=Capability.UPLOAD_FOR_OTHERS):
            raise AuthorizationError("Not authorized to upload documents for this user")
        user = self._require(target_id)

        path = self._store.store(stream, MediaCategory.DOCUMENTS, original_name)
        try:
            self._users.add_document(
                user.user_id,
                document_type=optional_text(document_type),
                path=path,
                file_name=original_name or None,
            )
        except Exception:
            self._discard(path)
            raise

        logger.info("Document %s attached to user %s by %s", path, user.user_id, actor.user_id)
        return self._require(user.user_id)
