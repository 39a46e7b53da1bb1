"""Configuration management for the Markdown Docs converter.

Handles environment-based configuration with layered loading:
1. .env.template (base defaults)
2. .env.local (personal overrides, OAuth client secrets)
3. Environment variables (highest priority)
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
GOOGLE_FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

EXPORT_FORMATS = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

DEFAULT_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/documents",
]


class Settings(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        # Load from multiple env files in order
        env_file=[".env.template", ".env.local"],
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="Markdown Docs Converter", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # MCP Server Settings
    mcp_server_name: str = Field(default="gdocs-md-converter", description="MCP server identifier")

    # Google OAuth Settings (secrets belong in .env.local)
    google_client_id: str | None = Field(default=None, description="OAuth client ID")
    google_client_secret: str | None = Field(default=None, description="OAuth client secret")
    google_redirect_url: str = Field(
        default="http://localhost:3500/auth/google/callback",
        description="OAuth redirect URL registered with Google",
    )
    google_scopes: list[str] = Field(default=DEFAULT_SCOPES, description="OAuth scopes requested")
    google_auth_uri: str = Field(
        default="https://accounts.google.com/o/oauth2/auth", description="OAuth authorization endpoint"
    )
    google_token_uri: str = Field(
        default="https://oauth2.googleapis.com/token", description="OAuth token endpoint"
    )
    oauth_relax_token_scope: bool = Field(
        default=True, description="Accept tokens granting more scopes than requested (OAUTHLIB_RELAX_TOKEN_SCOPE)"
    )

    # Drive Scan Settings
    document_query: str = Field(
        default=f"mimeType='{GOOGLE_DOC_MIME_TYPE}' and trashed=false",
        description="Drive query used to list candidate documents",
    )
    list_page_size: int = Field(default=100, ge=1, le=1000, description="Drive listing page size")

    # Conversion Settings
    converted_folder_name: str = Field(
        default="Converted Markdown Files", description="Drive folder receiving converted documents"
    )
    converted_prefix: str = Field(default="Converted-", description="Title prefix of converted documents")
    skip_converted: bool = Field(default=True, description="Skip documents that are already conversions")
    export_format: str = Field(default="pdf", description="Export format (pdf, docx)")
    markdown_extensions: list[str] = Field(
        default=["fenced_code", "tables", "sane_lists"], description="Python-Markdown extensions"
    )

    # Archive Settings
    archive_filename: str = Field(default="converted_markdown_files.zip", description="Download filename")
    archive_ttl_seconds: int = Field(default=3600, ge=1, description="Archive retention in seconds")
    archive_max_jobs: int = Field(default=50, ge=1, description="Maximum archives kept in memory")

    # HTTP Server Settings
    http_host: str = Field(default="127.0.0.1", description="HTTP server host")
    http_port: int = Field(default=3500, description="HTTP server port")
    http_cors_origins: list[str] = Field(default=["http://localhost:5173"], description="CORS allowed origins")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log format")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("export_format")
    @classmethod
    def validate_export_format(cls, v: str) -> str:
        """Validate export format."""
        if v.lower() not in EXPORT_FORMATS:
            raise ValueError(f"export_format must be one of {set(EXPORT_FORMATS)}")
        return v.lower()

    @property
    def export_mime_type(self) -> str:
        """MIME type requested from the Drive export endpoint."""
        return EXPORT_FORMATS[self.export_format]

    @property
    def export_extension(self) -> str:
        """File extension of exported documents inside the archive."""
        return f".{self.export_format}"

    def has_oauth_client(self) -> bool:
        """Check whether OAuth client credentials are configured."""
        return bool(self.google_client_id and self.google_client_secret)


# Global settings instance
settings = Settings()
