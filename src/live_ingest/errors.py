"""
Exception hierarchy for the ingestion pipeline.

Transports raise these on their own thread and translate them into a
``_disconnected`` marker; nothing here crosses into the simulation directly.
"""


class IngestError(Exception):
    """Base class for all ingestion errors."""

    pass


class ConfigurationError(IngestError):
    """Missing or inconsistent configuration."""

    pass


class TransportError(IngestError):
    """Transient transport failure (connect refused, read timeout, HTTP 5xx)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class BrokerError(TransportError):
    """The local broker process could not be launched or reached."""

    pass


class AuthenticationError(IngestError):
    """Expired or invalid credentials; requires a refresh or re-authorization."""

    pass


class QuotaExceededError(IngestError):
    """The polling provider refused the call because of quota or rate limits."""

    pass


class StreamUnavailableError(IngestError):
    """The target stream does not exist, has not started, or has ended."""

    pass


class PayloadError(IngestError):
    """A raw message could not be parsed at all."""

    pass
