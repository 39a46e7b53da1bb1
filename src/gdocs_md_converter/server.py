"""FastMCP server for the Markdown Docs converter.

Registers the HTTP routes used by the web frontend (OAuth, scan, batch
conversion, archive download) as custom routes, and exposes the
classifier, the operation preview and the batch pipeline as MCP tools.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any

from fastmcp import FastMCP
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from .config import Settings, settings as default_settings
from .exceptions import AuthenticationInvalid, AuthenticationMissing, ConverterError, RemoteApiFailure
from .google_client import GoogleWorkspace, OAuthClient
from .job_store import ArchiveStore
from .logger import get_logger, set_request_id, setup_logging
from .models import (
    AuthUrlResponse,
    ClassificationVerdict,
    ConversionResult,
    ErrorResponse,
    MarkdownDocument,
)
from .pipeline import BatchConverter, Workspace, build_requests
from .utils.classifier import evaluate

logger = get_logger(__name__)

WorkspaceFactory = Callable[[str, str | None], Workspace]
Handler = Callable[[Request], Awaitable[Response]]

HTTP_TRANSPORTS = {"http", "streamable-http", "sse"}


def error_response(exc: ConverterError, status_code: int | None = None) -> JSONResponse:
    """Render an error as ``{"error": kind, "detail": message}``."""
    body = ErrorResponse(error=exc.error_kind, detail=str(exc))
    return JSONResponse(body.model_dump(), status_code=status_code or exc.status_code)


def json_errors(handler: Handler) -> Handler:
    """Tag the request with an id and turn converter errors into JSON responses."""

    @functools.wraps(handler)
    async def wrapper(request: Request) -> Response:
        set_request_id(request.headers.get("x-request-id"))
        try:
            return await handler(request)
        except ConverterError as exc:
            logger.warning(
                "Request failed",
                extra_data={"path": request.url.path, "error_kind": exc.error_kind, "error": str(exc)},
            )
            return error_response(exc)

    return wrapper


def bearer_token(request: Request) -> str:
    """Read the access token from the Authorization header or ``token`` query parameter.

    Raises:
        AuthenticationMissing: If neither is present
    """
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    token = request.query_params.get("token", "").strip()
    if token:
        return token
    raise AuthenticationMissing("No token provided")


async def read_json(request: Request) -> dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class ConverterServer:
    """FastMCP server converting Markdown-authored Google Docs."""

    def __init__(
        self,
        name: str | None = None,
        settings: Settings | None = None,
        workspace_factory: WorkspaceFactory | None = None,
        oauth_client: OAuthClient | None = None,
        archive_store: ArchiveStore | None = None,
    ):
        """Initialize the converter server.

        Args:
            name: MCP server name (defaults to configured name)
            settings: Settings override
            workspace_factory: Builds a workspace from (access_token, refresh_token)
            oauth_client: OAuth flow helper
            archive_store: Storage for finished archives
        """
        self.settings = settings or default_settings
        self.workspace_factory = workspace_factory or functools.partial(
            GoogleWorkspace.from_token, settings=self.settings
        )
        self.oauth_client = oauth_client or OAuthClient(self.settings)
        self.archive_store = archive_store or ArchiveStore(
            ttl_seconds=self.settings.archive_ttl_seconds, max_jobs=self.settings.archive_max_jobs
        )
        self.mcp = FastMCP(name or self.settings.mcp_server_name)
        self._setup_tools()
        self._setup_routes()

    # Operations shared by routes and tools

    def authenticate(self, access_token: str, refresh_token: str | None = None) -> tuple[Workspace, str]:
        """Verify a token and return the user's workspace and owner id.

        Raises:
            AuthenticationMissing: If the token is empty
            AuthenticationInvalid: If Google rejects the token
        """
        if not access_token:
            raise AuthenticationMissing("No token provided")
        workspace = self.workspace_factory(access_token, refresh_token)
        user = workspace.get_user()
        owner = user.get("id") or user.get("email")
        if not owner:
            raise AuthenticationInvalid("Token is not bound to a Google user")
        return workspace, str(owner)

    def scan_documents(self, workspace: Workspace) -> list[MarkdownDocument]:
        return BatchConverter(workspace, self.settings).scan()

    def convert_documents(self, workspace: Workspace, owner: str) -> ConversionResult:
        """Run the batch pipeline and register its archive under a new job id."""
        batch = BatchConverter(workspace, self.settings).run()
        job_id = self.archive_store.put(owner, batch.archive, file_count=batch.file_count)
        return ConversionResult.from_outcomes(
            batch.outcomes, job_id=job_id, zip_download_link=f"/api/download-zip?job={job_id}"
        )

    def _setup_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool()
        async def classify_text(text: str) -> ClassificationVerdict:
            """Decide whether text looks like Markdown source.

            Args:
                text: Plain text to classify

            Returns:
                Verdict with the matched signal names
            """
            return evaluate(text)

        @self.mcp.tool()
        async def preview_operations(markdown: str) -> list[dict[str, Any]]:
            """Show the Docs batchUpdate requests a Markdown text would produce.

            Args:
                markdown: Markdown source

            Returns:
                Ordered list of batchUpdate request objects
            """
            return build_requests(markdown)

        @self.mcp.tool()
        async def list_markdown_documents(access_token: str) -> list[MarkdownDocument]:
            """List the user's Google Docs that look like Markdown.

            Args:
                access_token: Google OAuth access token
            """
            workspace, _ = await run_in_threadpool(self.authenticate, access_token)
            return await run_in_threadpool(self.scan_documents, workspace)

        @self.mcp.tool()
        async def convert_markdown_documents(access_token: str) -> ConversionResult:
            """Convert every Markdown-like Google Doc and archive the exports.

            Args:
                access_token: Google OAuth access token

            Returns:
                Per-document outcomes and the archive job id
            """
            workspace, owner = await run_in_threadpool(self.authenticate, access_token)
            return await run_in_threadpool(self.convert_documents, workspace, owner)

    def _setup_routes(self) -> None:
        """Register HTTP routes."""

        @self.mcp.custom_route("/health", methods=["GET"])
        async def health(request: Request) -> Response:
            return JSONResponse({"status": "ok", "app_version": self.settings.app_version})

        @self.mcp.custom_route("/auth/google", methods=["GET"])
        @json_errors
        async def auth_url(request: Request) -> Response:
            url = self.oauth_client.authorization_url(state=request.query_params.get("state"))
            if request.query_params.get("redirect", "").lower() in {"1", "true", "yes"}:
                return RedirectResponse(url)
            return JSONResponse(AuthUrlResponse(auth_url=url).model_dump())

        @self.mcp.custom_route("/auth/google/callback", methods=["GET", "POST"])
        @json_errors
        async def auth_callback(request: Request) -> Response:
            if request.method == "POST":
                code = (await read_json(request)).get("code")
            else:
                code = request.query_params.get("code")
            if not code:
                body = ErrorResponse(error="InvalidRequest", detail="No authorization code provided")
                return JSONResponse(body.model_dump(), status_code=400)

            tokens = await run_in_threadpool(self.oauth_client.exchange_code, code)
            return JSONResponse(tokens.model_dump(mode="json"))

        @self.mcp.custom_route("/auth/google/refresh", methods=["POST"])
        @json_errors
        async def auth_refresh(request: Request) -> Response:
            refresh_token = (await read_json(request)).get("refresh_token")
            if not refresh_token:
                body = ErrorResponse(error="InvalidRequest", detail="No refresh token provided")
                return JSONResponse(body.model_dump(), status_code=400)

            tokens = await run_in_threadpool(self.oauth_client.refresh, refresh_token)
            return JSONResponse(tokens.model_dump(mode="json"))

        @self.mcp.custom_route("/api/docs", methods=["GET"])
        @json_errors
        async def list_docs(request: Request) -> Response:
            workspace, _ = await run_in_threadpool(
                self.authenticate, bearer_token(request), request.headers.get("x-refresh-token")
            )
            try:
                documents = await run_in_threadpool(self.scan_documents, workspace)
            except RemoteApiFailure as exc:
                return error_response(exc, status_code=500)
            return JSONResponse([document.model_dump() for document in documents])

        @self.mcp.custom_route("/api/convert", methods=["POST"])
        @json_errors
        async def convert(request: Request) -> Response:
            workspace, owner = await run_in_threadpool(
                self.authenticate, bearer_token(request), request.headers.get("x-refresh-token")
            )
            try:
                result = await run_in_threadpool(self.convert_documents, workspace, owner)
            except RemoteApiFailure as exc:
                return error_response(exc, status_code=500)
            return JSONResponse(result.model_dump(mode="json"))

        @self.mcp.custom_route("/api/download-zip", methods=["GET"])
        @json_errors
        async def download_zip(request: Request) -> Response:
            _, owner = await run_in_threadpool(
                self.authenticate, bearer_token(request), request.headers.get("x-refresh-token")
            )
            record = self.archive_store.get(owner, request.query_params.get("job"))
            return Response(
                content=record.data,
                media_type="application/zip",
                headers={"Content-Disposition": f'attachment; filename="{self.settings.archive_filename}"'},
            )

    def middleware(self) -> list[Middleware]:
        """CORS middleware for the browser frontend."""
        return [
            Middleware(
                CORSMiddleware,
                allow_origins=self.settings.http_cors_origins,
                allow_credentials=True,
                allow_methods=["*"],
                allow_headers=["*"],
            )
        ]

    def http_app(self):
        """ASGI application serving the MCP endpoint and the HTTP routes."""
        return self.mcp.http_app(middleware=self.middleware())

    def run(self, **kwargs) -> None:
        """Run the server.

        Args:
            **kwargs: Additional arguments passed to FastMCP.run()
        """
        if kwargs.get("transport") in HTTP_TRANSPORTS:
            kwargs.setdefault("middleware", self.middleware())
        self.mcp.run(**kwargs)


def main() -> None:
    """Main entry point for the converter server."""
    setup_logging(default_settings.log_level, default_settings.log_format)
    server = ConverterServer()
    server.run(transport="http", host=server.settings.http_host, port=server.settings.http_port)


if __name__ == "__main__":
    main()
