"""Custom exceptions for the WordPress analyzer.

Provides structured error handling with categorized exceptions
and standardized error response format.
"""

from typing import Optional, Dict, Any


class AnalyzerException(Exception):
    """Base exception for all analyzer errors.

    Provides structured error response format with:
    - error_code: Machine-readable error identifier
    - message: Human-readable error description
    - details: Optional additional context
    """

    error_code: str = "ANALYZER_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Return structured error response dict."""
        response = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


# ============ Validation Errors (4xx) ============


class ValidationError(AnalyzerException):
    """Input validation failed."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class InvalidUrlError(ValidationError):
    """Missing or malformed target URL."""

    error_code = "INVALID_URL"

    def __init__(self, url: Any, reason: str = "Invalid URL"):
        super().__init__(f"{reason}: {url}", details={"url": url, "reason": reason})


class RateLimitExceededError(AnalyzerException):
    """Rate limit exceeded."""

    error_code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(self, limit: str = "unknown", retry_after: Optional[int] = None):
        details = {"limit": limit}
        if retry_after:
            details["retry_after_seconds"] = retry_after
        super().__init__(f"Rate limit exceeded: {limit}", details=details)


# ============ Analysis Errors ============


class AnalysisError(AnalyzerException):
    """Base class for analysis-related errors."""

    error_code = "ANALYSIS_ERROR"


class FetchError(AnalysisError):
    """A single outbound request failed (timeout, transport or redirect loop)."""

    error_code = "FETCH_ERROR"
    status_code = 502

    def __init__(self, url: str, reason: str, kind: str = "transport"):
        self.url = url
        self.kind = kind
        super().__init__(f"Request to {url} failed: {reason}", details={"url": url, "kind": kind})


class FetchFailedError(AnalysisError):
    """The target's main page could not be retrieved."""

    error_code = "FETCH_FAILED"
    status_code = 502

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        details: Dict[str, Any] = {"url": url, "reason": reason}
        if status is not None:
            details["status"] = status
        super().__init__(f"Cannot fetch {url}: {reason}", details=details)


class NotWordPressError(AnalysisError):
    """Target was reachable but shows no WordPress markers."""

    error_code = "NOT_WORDPRESS"
    status_code = 422

    def __init__(self, url: str):
        super().__init__(f"No WordPress markers found on {url}", details={"url": url})


# ============ Upstream Service Errors ============


class UpstreamError(AnalyzerException):
    """A third-party service failed."""

    error_code = "UPSTREAM_ERROR"
    status_code = 502


class PageSpeedError(UpstreamError):
    error_code = "PAGESPEED_ERROR"

    def __init__(self, strategy: str, reason: str, status: Optional[int] = None, retryable: bool = False):
        self.strategy = strategy
        self.status = status
        self.retryable = retryable
        super().__init__(
            f"PageSpeed {strategy} failed: {reason}",
            details={"strategy": strategy, "status": status, "retryable": retryable},
        )


class RegistryError(UpstreamError):
    error_code = "REGISTRY_ERROR"

    def __init__(self, slug: str, reason: str):
        self.slug = slug
        super().__init__(f"Registry lookup failed for {slug}: {reason}", details={"slug": slug})


# ============ Configuration Errors ============


class ConfigurationError(AnalyzerException):
    """Configuration issue."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, message: str):
        super().__init__(f"Configuration error for {setting}: {message}", details={"setting": setting})


# ============ Utility Functions ============


def error_response(exception: AnalyzerException) -> tuple:
    """Create Flask JSON response from exception.

    Returns:
        Tuple of (response_dict, status_code) ready for jsonify
    """
    return exception.to_dict(), exception.status_code


def make_error_response(
    error_code: str, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create structured error response dict without exception."""
    response = {
        "error": True,
        "error_code": error_code,
        "message": message,
    }
    if details:
        response["details"] = details
    return response
