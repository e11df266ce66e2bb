"""
Attachment upload.

Files go to the variant's bucket under {recordId}/{timestampMillis}_{name},
so two uploads of the same file never collide. The public URL is computed
right after a successful upload.
"""

from __future__ import annotations

import re
import time
import unicodedata

from nexticket.config import ATTACHMENT_NAME_MAX_LEN
from nexticket.errors import RemoteWriteError
from nexticket.infrastructure.store import RemoteStore
from nexticket.notifications.messages import render
from nexticket.observability.logging import get_logger
from nexticket.observability.telemetry import counter
from nexticket.records.models import Attachment

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(filename: str) -> str:
    """
    Make a filename safe for a storage key.

    Accents are folded to ASCII, path separators and other unsafe characters
    become underscores, and the result is capped in length (extension kept).
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    name = _UNSAFE_CHARS.sub("_", name).strip("._") or "file"

    if len(name) > ATTACHMENT_NAME_MAX_LEN:
        stem, dot, ext = name.rpartition(".")
        if dot and len(ext) < 10:
            name = stem[: ATTACHMENT_NAME_MAX_LEN - len(ext) - 1] + "." + ext
        else:
            name = name[:ATTACHMENT_NAME_MAX_LEN]
    return name


def storage_path(record_id: str, filename: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{record_id}/{timestamp_ms}_{sanitize_filename(filename)}"


class AttachmentUploader:
    def __init__(self, store: RemoteStore, bucket: str):
        self.store = store
        self.bucket = bucket

    async def upload(
        self,
        record_id: str,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> Attachment:
        """
        Upload a file for a record.

        Returns:
            Attachment with the public URL, original name, type and size

        Raises:
            RemoteWriteError: the store rejected the upload
        """
        path = storage_path(record_id, filename)
        content_type = content_type or "application/octet-stream"

        result = await self.store.upload(self.bucket, path, content, content_type=content_type)
        if not result.ok:
            counter("attachments.upload_failed")
            logger.error("Upload of %s to %s failed: %s", path, self.bucket, result.error)
            raise RemoteWriteError(render("upload_failed"), record_id, result.error)

        counter("attachments.uploaded")
        return Attachment(
            name=filename,
            url=self.store.get_public_url(self.bucket, path),
            type=content_type,
            size=len(content),
        )
