"""Custom exception types for the ADO completed pull request report."""


class PrReportError(Exception):
    """Base exception for all recoverable report errors."""


class ConfigurationError(PrReportError):
    """Raised when runtime configuration values are missing or invalid."""


class InvalidWindowError(ConfigurationError):
    """Raised when a date window starts after it ends."""


class AuthenticationError(PrReportError):
    """Raised when Azure DevOps authentication credentials are unavailable."""


class TransportError(PrReportError):
    """Raised when a page of pull requests cannot be fetched or parsed."""


class MalformedPayloadError(TransportError):
    """Raised when a fetched pull request item lacks required fields."""


class FetchCancelledError(PrReportError):
    """Raised when the caller cancels a range fetch between page requests."""
