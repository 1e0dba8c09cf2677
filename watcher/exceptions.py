from typing import Optional


class WatcherError(Exception):
    """Base class for soft failures raised while checking a source."""


class FetchFailure(WatcherError):
    """Raised when a page cannot be fetched or the response is not HTTP 200."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        message = f"Failed to fetch {url}"
        if status_code is not None:
            message += f" (status {status_code})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class StoreFailure(WatcherError):
    """Raised when the snapshot store cannot be read or written."""

    def __init__(self, operation: str, source_id: str, reason: str = ""):
        self.operation = operation
        self.source_id = source_id
        self.reason = reason
        message = f"Snapshot store {operation} failed for {source_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SendFailure(WatcherError):
    """Raised by the mail transport when a notification cannot be delivered."""


class ParseFailure(WatcherError):
    """Raised when markup cannot be parsed into a document."""


class StartupError(WatcherError):
    """Raised when the service cannot start (store unreachable, seeding failed)."""
