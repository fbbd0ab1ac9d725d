import logging
import os
import uuid
from typing import Protocol

from overlaykit.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class FileStore(Protocol):
    def save(self, data: bytes, original_name: str) -> dict[str, str]:
        """Store ``data``; returns ``{"url", "filename"}``."""
        ...

    def delete(self, filename: str) -> None:
        """Remove a stored file. A file that is already gone is not an error."""
        ...


class LocalFileStore:
    """Files on local disk, served back under ``url_prefix``."""

    def __init__(self, directory: str | None = None, url_prefix: str | None = None):
        self.directory = directory or settings.UPLOAD_DIR
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")

    def save(self, data: bytes, original_name: str) -> dict[str, str]:
        os.makedirs(self.directory, exist_ok=True)

        # Keep only the basename so a crafted name cannot escape the directory
        safe_name = os.path.basename(original_name or "") or "upload"
        filename = f"{uuid.uuid4()}-{safe_name}"
        path = os.path.join(self.directory, filename)

        with open(path, "wb") as f:
            f.write(data)

        return {"url": f"{self.url_prefix}/{filename}", "filename": filename}

    def delete(self, filename: str) -> None:
        path = os.path.join(self.directory, os.path.basename(filename))
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.info(f"File {filename} was already gone")
