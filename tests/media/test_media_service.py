from __future__ import annotations

import io

import pytest
from PIL import Image

from rooster.core.enums import MediaCategory, Role
from rooster.core.exceptions import AuthorizationError, NotFoundError, StorageError, ValidationError
from rooster.media.service import ProfileMediaService
from rooster.media.store import LocalMediaStore
from rooster.users.service import CurrentUser


def png_bytes() -> io.BytesIO:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 10, 10)).save(buf, format="PNG")
    buf.seek(0)
    return buf


@pytest.fixture
def store(tmp_path):
    return LocalMediaStore(tmp_path / "uploads")


@pytest.fixture
def media(users_repo, store):
    return ProfileMediaService(users_repo, store)


def _actor(user):
    return CurrentUser(user_id=user.user_id, email=user.email, role=user.role)


def test_store_uses_random_names_under_category(store):
    path = store.store(io.BytesIO(b"hello"), MediaCategory.DOCUMENTS, "../../etc/Report Final.TXT")

    assert path.startswith("/uploads/documents/")
    assert path.endswith(".txt")
    assert "Report" not in path
    assert store.resolve(path).read_bytes() == b"hello"
    assert store.resolve(path).parent == store.root / "documents"


def test_store_rejects_bad_types(store):
    with pytest.raises(ValidationError):
        store.store(io.BytesIO(b"MZ"), MediaCategory.DOCUMENTS, "tool.exe")
    with pytest.raises(ValidationError):
        store.store(io.BytesIO(b"%PDF"), MediaCategory.AVATARS, "me.pdf")
    with pytest.raises(ValidationError, match="not a valid image"):
        store.store(io.BytesIO(b"plain text"), MediaCategory.AVATARS, "me.png")


def test_resolve_refuses_paths_outside_the_store(store):
    for bad in ("/uploads/avatars/../secret.txt", "/etc/passwd", "/uploads/other/x.png", "/uploads/avatars/"):
        with pytest.raises(NotFoundError):
            store.resolve(bad)


def test_replace_avatar_removes_previous_file(media, store, users_repo):
    user = users_repo.add(email="emp@example.com")

    first = media.replace_avatar(user.user_id, png_bytes(), "me.png").avatar
    second = media.replace_avatar(user.user_id, png_bytes(), "me2.png").avatar

    assert first != second
    assert not store.resolve(first).exists()
    assert store.resolve(second).is_file()
    assert users_repo.get_by_id(user.user_id).avatar == second


def test_failed_cleanup_of_previous_avatar_is_ignored(media, store, users_repo, monkeypatch):
    user = users_repo.add(email="emp@example.com")
    first = media.replace_avatar(user.user_id, png_bytes(), "me.png").avatar

    def broken_delete(path):
        raise StorageError("Could not delete file")

    monkeypatch.setattr(store, "delete", broken_delete)
    updated = media.replace_avatar(user.user_id, png_bytes(), "again.png")

    assert updated.avatar != first
    assert store.resolve(first).exists()


def test_failed_user_update_discards_new_file(media, store, users_repo):
    user = users_repo.add(email="emp@example.com")
    users_repo.fail_set_avatar = True

    with pytest.raises(RuntimeError):
        media.replace_avatar(user.user_id, png_bytes(), "me.png")

    avatars = store.root / "avatars"
    assert not avatars.exists() or not any(avatars.iterdir())


def test_documents_for_self_and_by_admin(media, users_repo):
    owner = users_repo.add(email="emp@example.com")
    admin = users_repo.add(email="admin@example.com", role=Role.ADMIN)

    user = media.add_document(_actor(owner), io.BytesIO(b"cv"), "cv.pdf", document_type="resume")
    assert [(d.document_type, d.file_name) for d in user.documents] == [("resume", "cv.pdf")]

    user = media.add_document(_actor(admin), io.BytesIO(b"id"), "id.png", document_type="id", user_id=owner.user_id)
    assert len(user.documents) == 2
    assert user.documents[-1].path.startswith("/uploads/documents/")


def test_documents_for_others_need_admin(media, users_repo):
    owner = users_repo.add(email="emp@example.com")
    peer = users_repo.add(email="peer@example.com", role=Role.MANAGER)
    admin = users_repo.add(email="admin@example.com", role=Role.ADMIN)

    with pytest.raises(AuthorizationError):
        media.add_document(_actor(peer), io.BytesIO(b"x"), "x.pdf", document_type="id", user_id=owner.user_id)
    with pytest.raises(NotFoundError):
        media.add_document(_actor(admin), io.BytesIO(b"x"), "x.pdf", document_type="id", user_id=999)
