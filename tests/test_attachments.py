"""Unit tests for attachment naming and upload"""

from __future__ import annotations

import pytest

from nexticket.attachments.service import AttachmentUploader, sanitize_filename, storage_path
from nexticket.errors import RemoteWriteError


@pytest.mark.parametrize(
    "filename,expected",
    [
        ("relatório final.pdf", "relatorio_final.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\ana\\foto.png", "foto.png"),
        ("...", "file"),
    ],
)
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


def test_long_name_keeps_extension():
    name = sanitize_filename("a" * 300 + ".jpeg")

    assert len(name) == 120
    assert name.endswith(".jpeg")


def test_storage_path_is_record_scoped_and_timestamped():
    assert storage_path("TK-ABC123", "nota fiscal.pdf", timestamp_ms=1760000000000) == (
        "TK-ABC123/1760000000000_nota_fiscal.pdf"
    )


@pytest.mark.asyncio
async def test_upload_returns_public_attachment(store):
    uploader = AttachmentUploader(store, "ticket-attachments")

    attachment = await uploader.upload("TK-1", "tela.png", b"\x89PNG", "image/png")

    assert attachment.name == "tela.png"
    assert attachment.type == "image/png"
    assert attachment.size == 4
    (bucket, path), (content, content_type) = next(iter(store.files.items()))
    assert bucket == "ticket-attachments"
    assert path.startswith("TK-1/") and path.endswith("_tela.png")
    assert content == b"\x89PNG"
    assert attachment.url.endswith(path)


@pytest.mark.asyncio
async def test_upload_defaults_content_type(store):
    attachment = await AttachmentUploader(store, "bill-attachments").upload("7", "x", b"1")

    assert attachment.type == "application/octet-stream"


@pytest.mark.asyncio
async def test_rejected_upload_raises(store):
    store.fail_next("upload", "bill-attachments")

    with pytest.raises(RemoteWriteError) as exc_info:
        await AttachmentUploader(store, "bill-attachments").upload("7", "boleto.pdf", b"1")

    assert exc_info.value.record_id == "7"
    assert store.files == {}
