import uuid
from pathlib import Path
from typing import Protocol

# the stored suffix decides how the file is served back, so it never comes from the client
ALLOWED_IMAGE_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class ImageStoreError(Exception):
    """Raised when an image could not be persisted."""


class ImageStore(Protocol):
    """Where profile images end up. Returns the public URL of the stored file."""

    def save(self, filename: str, content: bytes, content_type: str) -> str: ...


class LocalImageStore:
    """Writes images to a directory under random names."""

    def __init__(self, directory, base_url: str = "/uploads"):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    def save(self, filename: str, content: bytes, content_type: str) -> str:
        suffix = ALLOWED_IMAGE_TYPES.get(content_type)
        if suffix is None:
            raise ImageStoreError(f"unsupported content type {content_type!r}")
        name = f"{uuid.uuid4().hex}{suffix}"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            (self.directory / name).write_bytes(content)
        except OSError as e:
            raise ImageStoreError(f"could not write {name}: {e}") from e
        return f"{self.base_url}/{name}"
