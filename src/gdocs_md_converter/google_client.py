"""Google Drive, Docs and OAuth2 API boundary.

Every remote call of the converter goes through ``GoogleWorkspace`` (one
instance per authenticated request) or ``OAuthClient`` (consent URL,
code exchange, token refresh). Library and transport errors are wrapped
into the converter's error taxonomy here, so callers never see
``HttpError`` or ``google.auth`` exceptions.
"""

import os
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .config import GOOGLE_DOC_MIME_TYPE, GOOGLE_FOLDER_MIME_TYPE, Settings, settings as default_settings
from .exceptions import (
    AuthenticationInvalid,
    ExportFailure,
    OAuthConfigurationError,
    RemoteApiFailure,
)
from .logger import get_logger
from .models import DriveFile, TokenResponse

logger = get_logger(__name__)

REMOTE_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


def describe_error(exc: Exception) -> str:
    """Short human-readable description of a remote error."""
    if isinstance(exc, HttpError):
        return f"HTTP {exc.resp.status}: {exc.reason}"
    return str(exc) or type(exc).__name__


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleWorkspace:
    """Drive v3 / Docs v1 / OAuth2 v2 client bound to one user's credentials."""

    def __init__(
        self,
        credentials: Credentials,
        settings: Settings | None = None,
        drive: Any = None,
        docs: Any = None,
        oauth2: Any = None,
    ):
        self.settings = settings or default_settings
        self.credentials = credentials
        self._drive = drive or build("drive", "v3", credentials=credentials, cache_discovery=False)
        self._docs = docs or build("docs", "v1", credentials=credentials, cache_discovery=False)
        self._oauth2 = oauth2 or build("oauth2", "v2", credentials=credentials, cache_discovery=False)

    @classmethod
    def from_token(
        cls, access_token: str, refresh_token: str | None = None, settings: Settings | None = None
    ) -> "GoogleWorkspace":
        """Build a workspace from a bearer token.

        With a refresh token and configured client credentials, google-auth
        refreshes the access token transparently once it expires.
        """
        settings = settings or default_settings
        credentials = Credentials(
            token=access_token,
            refresh_token=refresh_token,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            token_uri=settings.google_token_uri,
        )
        return cls(credentials, settings=settings)

    def _execute(self, request: Any, action: str, error_cls: type[RemoteApiFailure] = RemoteApiFailure) -> Any:
        try:
            return request.execute()
        except REMOTE_ERRORS as exc:
            logger.warning(f"{action} failed", extra_data={"error": describe_error(exc)})
            raise error_cls(f"{action} failed: {describe_error(exc)}") from exc

    def get_user(self) -> dict[str, Any]:
        """Verify the credentials against the userinfo endpoint.

        Raises:
            AuthenticationInvalid: If Google rejects the token
        """
        try:
            return self._oauth2.userinfo().get().execute()
        except REMOTE_ERRORS as exc:
            raise AuthenticationInvalid(f"Invalid or expired token: {describe_error(exc)}") from exc

    def list_documents(self) -> list[DriveFile]:
        """List candidate Google Docs, following every result page."""
        files: list[DriveFile] = []
        page_token = None
        while True:
            response = self._execute(
                self._drive.files().list(
                    q=self.settings.document_query,
                    pageSize=self.settings.list_page_size,
                    pageToken=page_token,
                    fields="nextPageToken, files(id, name, mimeType)",
                    supportsAllDrives=True,
                    includeItemsFromAllDrives=True,
                ),
                "List documents",
            )
            files.extend(DriveFile.model_validate(item) for item in response.get("files", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return files

    def get_document(self, document_id: str) -> dict[str, Any]:
        """Fetch a document's structured body."""
        return self._execute(self._docs.documents().get(documentId=document_id), f"Fetch document {document_id}")

    def ensure_folder(self, name: str) -> str:
        """Return the id of the folder called ``name``, creating it when missing."""
        response = self._execute(
            self._drive.files().list(
                q=f"mimeType='{GOOGLE_FOLDER_MIME_TYPE}' and name='{_quote(name)}' and trashed=false",
                pageSize=1,
                fields="files(id)",
            ),
            "Find folder",
        )
        existing = response.get("files", [])
        if existing:
            return existing[0]["id"]

        folder = self._execute(
            self._drive.files().create(body={"name": name, "mimeType": GOOGLE_FOLDER_MIME_TYPE}, fields="id"),
            "Create folder",
        )
        logger.info("Created folder", extra_data={"folder_id": folder["id"], "name": name})
        return folder["id"]

    def create_document(self, title: str, folder_id: str | None = None) -> str:
        """Create an empty Google Doc, optionally inside a folder."""
        body: dict[str, Any] = {"name": title, "mimeType": GOOGLE_DOC_MIME_TYPE}
        if folder_id:
            body["parents"] = [folder_id]
        created = self._execute(
            self._drive.files().create(body=body, fields="id", supportsAllDrives=True),
            f"Create document {title!r}",
        )
        return created["id"]

    def batch_update(self, document_id: str, requests: list[dict[str, Any]]) -> None:
        """Apply ordered edit requests to a document."""
        if not requests:
            return
        self._execute(
            self._docs.documents().batchUpdate(documentId=document_id, body={"requests": requests}),
            f"Update document {document_id}",
        )

    def export(self, file_id: str, mime_type: str) -> bytes:
        """Export a Google Doc to ``mime_type`` and return the raw bytes."""
        return self._execute(
            self._drive.files().export(fileId=file_id, mimeType=mime_type),
            f"Export document {file_id}",
            error_cls=ExportFailure,
        )


class OAuthClient:
    """Authorization-code flow against Google's OAuth endpoints."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def _client_config(self) -> dict[str, Any]:
        if not self.settings.has_oauth_client():
            raise OAuthConfigurationError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be configured")
        return {
            "web": {
                "client_id": self.settings.google_client_id,
                "client_secret": self.settings.google_client_secret,
                "auth_uri": self.settings.google_auth_uri,
                "token_uri": self.settings.google_token_uri,
                "redirect_uris": [self.settings.google_redirect_url],
            }
        }

    def _flow(self, state: str | None = None) -> Flow:
        if self.settings.oauth_relax_token_scope:
            # oauthlib reads this at token time; Google may grant a superset of the requested scopes
            os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
        # Consent URL and code exchange run in different requests, so no PKCE verifier
        return Flow.from_client_config(
            self._client_config(),
            scopes=self.settings.google_scopes,
            redirect_uri=self.settings.google_redirect_url,
            state=state,
            autogenerate_code_verifier=False,
        )

    def authorization_url(self, state: str | None = None) -> str:
        """Consent-screen URL requesting offline access."""
        url, _ = self._flow(state).authorization_url(
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
        )
        return url

    def exchange_code(self, code: str) -> TokenResponse:
        """Exchange an authorization code for tokens and the user's profile.

        Raises:
            AuthenticationInvalid: If Google rejects the code
        """
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, *REMOTE_ERRORS) as exc:
            raise AuthenticationInvalid(f"Authentication failed: {exc}") from exc

        credentials = flow.credentials
        if not credentials.token:
            raise AuthenticationInvalid("Failed to retrieve access token")

        user = GoogleWorkspace(credentials, settings=self.settings).get_user()
        logger.info("Exchanged authorization code", extra_data={"user_id": user.get("id")})
        return TokenResponse(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=credentials.expiry,
            user=user,
        )

    def refresh(self, refresh_token: str) -> TokenResponse:
        """Obtain a fresh access token.

        Raises:
            AuthenticationInvalid: If the refresh token is revoked or invalid
            RemoteApiFailure: If the token endpoint cannot be reached
        """
        self._client_config()
        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=self.settings.google_client_id,
            client_secret=self.settings.google_client_secret,
            token_uri=self.settings.google_token_uri,
            scopes=self.settings.google_scopes,
        )
        try:
            credentials.refresh(GoogleAuthRequest())
        except RefreshError as exc:
            raise AuthenticationInvalid(f"Token refresh rejected: {exc}") from exc
        except REMOTE_ERRORS as exc:
            raise RemoteApiFailure(f"Token refresh failed: {describe_error(exc)}") from exc

        return TokenResponse(
            message="Token refreshed",
            access_token=credentials.token,
            refresh_token=credentials.refresh_token or refresh_token,
            expires_at=credentials.expiry,
        )
