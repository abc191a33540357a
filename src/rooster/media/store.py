from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from ..core.enums import MediaCategory
from ..core.exceptions import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"

ALLOWED_EXTENSIONS: dict[MediaCategory, frozenset[str]] = {
    MediaCategory.AVATARS: frozenset({"png", "jpg", "jpeg", "gif", "webp"}),
    MediaCategory.DOCUMENTS: frozenset({"pdf", "doc", "docx", "png", "jpg", "jpeg", "txt"}),
}


def file_extension(original_name: str) -> str:
    safe = secure_filename(original_name or "")
    if "." not in safe:
        return ""
    return safe.rsplit(".", 1)[1].lower()


def _verify_image(stream: BinaryIO) -> None:
    try:
        with Image.open(stream) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValidationError("Uploaded file is not a valid image") from exc
    finally:
        stream.seek(0)


class LocalMediaStore:
    """Files under ``root/<category>/<random name>``, addressed as ``/uploads/<category>/<name>``."""

    def __init__(self, root: str | Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def store(self, stream: BinaryIO, category: MediaCategory, original_name: str) -> str:
        ext = file_extension(original_name)
        if ext not in ALLOWED_EXTENSIONS[category]:
            allowed = ", ".join(sorted(ALLOWED_EXTENSIONS[category]))
            raise ValidationError(f"File type not allowed, expected one of: {allowed}")

        if category == MediaCategory.AVATARS:
            _verify_image(stream)

        name = f"{uuid.uuid4().hex}.{ext}"
        target_dir = self._root / category.value
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with open(target_dir / name, "wb") as out:
                shutil.copyfileobj(stream, out)
        except OSError as exc:
            logger.error("Could not write upload %s/%s: %s", category.value, name, exc)
            raise StorageError("Could not store file") from exc

        logger.info("Stored %s/%s", category.value, name)
        return f"{URL_PREFIX}/{category.value}/{name}"

    def resolve(self, stored_path: str) -> Path:
        prefix, _, rest = (stored_path or "").lstrip("/").partition("/")
        category, _, name = rest.partition("/")
        if prefix != URL_PREFIX.strip("/") or category not in {c.value for c in MediaCategory}:
            raise NotFoundError("File not found")
        if not name or secure_filename(name) != name:
            raise NotFoundError("File not found")
        return self._root / category / name

    def delete(self, stored_path: str) -> None:
        path = self.resolve(stored_path)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError("Could not delete file") from exc
