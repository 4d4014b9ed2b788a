"""Custom exception types for the GitHub review metrics tool."""


class ReviewMetricsError(Exception):
    """Base exception for all recoverable review metrics errors."""


class ConfigurationError(ReviewMetricsError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(ReviewMetricsError):
    """Raised when GitHub authentication credentials are unavailable or invalid."""


class ApiError(ReviewMetricsError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class DataValidationError(ReviewMetricsError):
    """Raised when pull request payloads do not meet expected constraints."""
