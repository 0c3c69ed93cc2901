"""
Domain-specific exception hierarchy for the deal flow dashboard.
"""


class DealFlowError(Exception):
    """Base class for all application-level errors."""


class DataStoreError(DealFlowError):
    """Raised when the hosted data store rejects a query or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TruncatedChunkError(DealFlowError):
    """Raised when a contiguous range holds more records than one page can return."""

    def __init__(self, date_from: str, date_to: str, count: int, page_size: int):
        super().__init__(
            f"Range {date_from}..{date_to} matched {count} records "
            f"but a single page holds only {page_size}"
        )
        self.date_from = date_from
        self.date_to = date_to
        self.count = count
        self.page_size = page_size


class BoundedSearchExceeded(DealFlowError):
    """Raised when a backward working-day search runs past its iteration bound."""


class AuthenticationError(DealFlowError):
    """Raised when authentication or token handling fails."""


class AccessDeniedError(DealFlowError):
    """Raised when the resolved access role may not use an operation."""
