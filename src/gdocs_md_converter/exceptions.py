"""Custom exceptions for the Markdown Docs converter."""


class ConverterError(Exception):
    """Base exception for converter errors."""

    error_kind = "ConverterError"
    status_code = 500


class AuthenticationMissing(ConverterError):
    """Raised when a request carries no access token."""

    error_kind = "AuthenticationMissing"
    status_code = 401


class AuthenticationInvalid(ConverterError):
    """Raised when Google rejects the access token."""

    error_kind = "AuthenticationInvalid"
    status_code = 401


class OAuthConfigurationError(ConverterError):
    """Raised when OAuth client credentials are not configured."""

    error_kind = "OAuthConfigurationError"
    status_code = 500


class RemoteApiFailure(ConverterError):
    """Raised when a Drive, Docs or OAuth2 API call fails."""

    error_kind = "RemoteApiFailure"
    status_code = 502


class ExportFailure(RemoteApiFailure):
    """Raised when exporting a converted document fails."""

    error_kind = "ExportFailure"


class ContentExtractionFailure(ConverterError):
    """Raised when a document body cannot be flattened to text."""

    error_kind = "ContentExtractionFailure"
    status_code = 422


class ArchiveUnavailable(ConverterError):
    """Raised when no archive exists for the requested job."""

    error_kind = "ArchiveUnavailable"
    status_code = 404
