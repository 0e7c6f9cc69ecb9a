"""Custom exception classes for the discovery pipeline."""


class DealScoutException(Exception):
    """Base exception for all dealscout errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class FetchError(DealScoutException):
    """Raised by a single fetch attempt that did not produce a usable page."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(reason)


class BlockedError(DealScoutException):
    """Raised when a response looks like a bot-detection page."""

    def __init__(self, url: str, keyword: str):
        self.url = url
        self.keyword = keyword
        super().__init__(f"Bot detection on {url}")


class SourceConfigError(DealScoutException):
    """Raised when a source definition cannot be used."""

    def __init__(self, source: str, message: str):
        super().__init__(f"Invalid source {source}: {message}")
