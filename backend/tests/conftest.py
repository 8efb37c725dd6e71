"""
KeepNotes Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every fixture works on pytest's tmp_path, so each test gets its own
       notes document and upload directory.

Fixture Hierarchy (all function-scoped):
    ├── test_settings: Settings pointing at tmp_path
    ├── file_service / repository / note_service / decoder
    ├── multipart_body: builder for raw multipart/form-data bodies
    └── test_client: HTTPX AsyncClient over the ASGI app
"""

import os
import tempfile
import uuid
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep the module-level app in keepnotes.main away from the working directory
_import_root = tempfile.mkdtemp(prefix="keepnotes_test_")
os.environ.setdefault("DATA_FILE", os.path.join(_import_root, "data", "notes.json"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_import_root, "uploads"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from keepnotes.config import Settings  # noqa: E402
from keepnotes.repositories.note_repository import JsonFileNoteRepository  # noqa: E402
from keepnotes.services.file_service import FileService  # noqa: E402
from keepnotes.services.multipart import MultipartDecoder  # noqa: E402
from keepnotes.services.note_service import NoteService  # noqa: E402


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        data_file=str(tmp_path / "data" / "notes.json"),
        upload_dir=str(tmp_path / "uploads"),
        log_level="WARNING",
    )


@pytest.fixture
def file_service(test_settings) -> FileService:
    return FileService(test_settings.upload_dir, test_settings.upload_url_prefix)


@pytest.fixture
def repository(test_settings) -> JsonFileNoteRepository:
    return JsonFileNoteRepository(test_settings.data_file)


@pytest.fixture
def note_service(repository, file_service) -> NoteService:
    return NoteService(repository, file_service)


@pytest.fixture
def decoder(file_service) -> MultipartDecoder:
    return MultipartDecoder(file_service)


FileTuple = Tuple[str, bytes, Optional[str]]


def build_multipart(
    fields: Optional[Dict[str, str]] = None,
    files: Optional[List[Tuple[str, FileTuple]]] = None,
    boundary: Optional[str] = None,
) -> Tuple[bytes, str]:
    """
    Build a raw multipart/form-data body by hand.

    Args:
        fields: name → text value
        files:  [(field name, (filename, content, content type or None))]

    Returns:
        (body, content_type_header)
    """
    boundary = boundary or f"----keepnotes{uuid.uuid4().hex}"
    chunks: List[bytes] = [b"preamble to ignore\r\n"]
    for name, value in (fields or {}).items():
        chunks.append(f"--{boundary}\r\n".encode())
        chunks.append(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode())
        chunks.append(value.encode("utf-8") + b"\r\n")
    for name, (filename, content, content_type) in files or []:
        chunks.append(f"--{boundary}\r\n".encode())
        chunks.append(
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode()
        )
        if content_type:
            chunks.append(f"Content-Type: {content_type}\r\n".encode())
        chunks.append(b"\r\n" + content + b"\r\n")
    chunks.append(f"--{boundary}--\r\nepilogue to ignore\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


@pytest.fixture
def multipart_body():
    """Exposes build_multipart() to tests as a fixture."""
    return build_multipart


@pytest_asyncio.fixture
async def test_client(test_settings):
    """
    HTTPX AsyncClient talking to a fresh app built on tmp_path settings.

    ASGITransport does not run the lifespan; the services create their
    directories and the notes document on first use.
    """
    from keepnotes.main import create_app

    app = create_app(test_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
