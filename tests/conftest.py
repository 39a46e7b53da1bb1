"""Pytest configuration and shared fixtures for the converter tests."""

from typing import Any

import pytest

from gdocs_md_converter.config import Settings
from gdocs_md_converter.exceptions import AuthenticationInvalid, RemoteApiFailure
from gdocs_md_converter.models import DriveFile


def make_document(*lines: str, document_id: str = "doc") -> dict[str, Any]:
    """Build a Docs API payload with one paragraph per line."""
    return {
        "documentId": document_id,
        "body": {
            "content": [
                {"sectionBreak": {}},
                *(
                    {"paragraph": {"elements": [{"textRun": {"content": f"{line}\n"}}]}}
                    for line in lines
                ),
            ]
        },
    }


class FakeWorkspace:
    """In-memory stand-in for GoogleWorkspace."""

    def __init__(
        self,
        files: list[DriveFile] | None = None,
        documents: dict[str, dict[str, Any]] | None = None,
        user: dict[str, Any] | None = None,
    ):
        self.files = files or []
        self.documents = documents or {}
        self.user = user if user is not None else {"id": "user-1", "email": "ada@example.com"}
        self.fail_on: dict[tuple[str, str], str] = {}
        self.fail_listing = False
        self.invalid_token = False
        self.created: list[tuple[str, str | None]] = []
        self.updates: dict[str, list[dict[str, Any]]] = {}
        self.exports: list[tuple[str, str]] = []
        self.calls: list[str] = []

    def _check(self, step: str, key: str) -> None:
        if (step, key) in self.fail_on:
            raise RemoteApiFailure(self.fail_on[(step, key)])

    def get_user(self) -> dict[str, Any]:
        if self.invalid_token:
            raise AuthenticationInvalid("Invalid or expired token")
        return self.user

    def list_documents(self) -> list[DriveFile]:
        self.calls.append("list")
        if self.fail_listing:
            raise RemoteApiFailure("List documents failed: HTTP 403: Insufficient Permission")
        return list(self.files)

    def get_document(self, document_id: str) -> dict[str, Any]:
        self.calls.append(f"get:{document_id}")
        self._check("get", document_id)
        return self.documents[document_id]

    def ensure_folder(self, name: str) -> str:
        self.calls.append("folder")
        return "folder-1"

    def create_document(self, title: str, folder_id: str | None = None) -> str:
        self.calls.append(f"create:{title}")
        self._check("create", title)
        document_id = f"new-{len(self.created) + 1}"
        self.created.append((title, folder_id))
        return document_id

    def batch_update(self, document_id: str, requests: list[dict[str, Any]]) -> None:
        self.calls.append(f"update:{document_id}")
        self._check("update", document_id)
        self.updates[document_id] = requests

    def export(self, file_id: str, mime_type: str) -> bytes:
        self.calls.append(f"export:{file_id}")
        self._check("export", file_id)
        self.exports.append((file_id, mime_type))
        return f"%PDF-{file_id}".encode()


@pytest.fixture
def test_settings() -> Settings:
    """Create test configuration settings."""
    return Settings(
        _env_file=None,
        debug=True,
        google_client_id="client-id.apps.googleusercontent.com",
        google_client_secret="client-secret",
        google_redirect_url="http://localhost:3500/auth/google/callback",
        export_format="pdf",
        archive_ttl_seconds=60,
        archive_max_jobs=5,
        log_level="DEBUG",
    )


@pytest.fixture
def workspace_factory():
    """Factory for in-memory workspaces."""
    return FakeWorkspace


@pytest.fixture
def build_document():
    """Factory for Docs API payloads."""
    return make_document


@pytest.fixture
def markdown_document() -> dict[str, Any]:
    """Docs payload whose text is Markdown."""
    return make_document("# Release notes", "", "- faster exports", "- fewer bugs", document_id="md-1")


@pytest.fixture
def plain_document() -> dict[str, Any]:
    """Docs payload with ordinary prose."""
    return make_document("Meeting moved to Thursday.", "Bring the slides.", document_id="plain-1")


@pytest.fixture
def fake_workspace(markdown_document, plain_document) -> FakeWorkspace:
    """Workspace with one Markdown doc, one prose doc and one earlier conversion."""
    return FakeWorkspace(
        files=[
            DriveFile(id="md-1", name="Release notes"),
            DriveFile(id="plain-1", name="Meeting"),
            DriveFile(id="conv-1", name="Converted-Old notes"),
        ],
        documents={
            "md-1": markdown_document,
            "plain-1": plain_document,
            "conv-1": make_document("# Old notes", document_id="conv-1"),
        },
    )
