"""Error taxonomy for the URL shortener.

Link Service errors are raised to the HTTP/CLI boundary, which maps them to a
status code or exit code. Worker and monitor errors never leave the task that
hit them: they are logged and the task moves on.

::

    ShortenerError
    ├─ ShortCodeNotFound          404
    ├─ ShortCodeGenerationFailed  503 (retryable)
    ├─ StorageError               500
    ├─ ClickPersistFailure        logged by click workers only
    └─ ProbeFailure               logged by the URL monitor only
"""

__all__ = [
    "ClickPersistFailure",
    "ProbeFailure",
    "ShortCodeGenerationFailed",
    "ShortCodeNotFound",
    "ShortenerError",
    "StorageError",
]


class ShortenerError(Exception):
    """Base class for all application errors."""


class ShortCodeNotFound(ShortenerError):
    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"short code not found: {short_code!r}")


class ShortCodeGenerationFailed(ShortenerError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"failed to generate a unique short code after {attempts} attempts")


class StorageError(ShortenerError):
    """Unexpected failure of the durable store. The original exception is chained."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"storage error during {operation}: {reason}")


class ClickPersistFailure(ShortenerError):
    def __init__(self, link_id: int, user_agent: str, ip_address: str, reason: str):
        self.link_id = link_id
        self.user_agent = user_agent
        self.ip_address = ip_address
        self.reason = reason
        super().__init__(
            f"failed to record click for link {link_id} "
            f"(user_agent={user_agent!r}, ip={ip_address!r}): {reason}"
        )


class ProbeFailure(ShortenerError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"failed to check URL {url}: {reason}")
