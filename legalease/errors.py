from __future__ import annotations

from dataclasses import asdict, dataclass


class LegalEaseError(Exception):
    """Base class for errors raised by the analysis backend."""


class ConfigurationError(LegalEaseError):
    pass


class UnsupportedFileType(LegalEaseError):
    pass


class NoTextExtracted(LegalEaseError):
    pass


class RemoteServiceError(LegalEaseError):
    """Non-success answer (or no answer at all) from the Gemini endpoint.

    ``status`` is the HTTP status code, or ``None`` when the request failed
    before a response arrived (timeout, DNS, connection refused).
    """

    def __init__(self, status: int | None, message: str):
        self.status = status
        self.message = message
        if status is None:
            super().__init__(f"Gemini request failed: {message}")
        else:
            super().__init__(f"Gemini API error {status}: {message}")


class EmptyResponse(LegalEaseError):
    pass


@dataclass(frozen=True)
class ServiceErrorInfo:
    category: str
    status_code: int
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


_QUOTA_MARKERS = ("quota", "limit", "resource_exhausted")
_CONFIG_MARKERS = ("api key", "api_key", "permission_denied")
_NETWORK_MARKERS = ("network", "timeout", "timed out", "connection")


def classify_service_error(exc: BaseException) -> ServiceErrorInfo:
    """Map a chat/summary failure to a user-facing category and HTTP status."""
    text = str(exc).lower()
    status = exc.status if isinstance(exc, RemoteServiceError) else None

    if isinstance(exc, ConfigurationError) or status in {401, 403} or any(
        marker in text for marker in _CONFIG_MARKERS
    ):
        return ServiceErrorInfo(
            category="configuration",
            status_code=500,
            message="AI service configuration error. Please contact support.",
        )

    if status == 429 or any(marker in text for marker in _QUOTA_MARKERS):
        return ServiceErrorInfo(
            category="quota",
            status_code=429,
            message="AI service is temporarily unavailable due to high usage. Please try again later.",
        )

    if (
        isinstance(exc, RemoteServiceError) and (status is None or status >= 500)
    ) or any(marker in text for marker in _NETWORK_MARKERS):
        return ServiceErrorInfo(
            category="network",
            status_code=503,
            message="Network error. Please check your connection and try again.",
        )

    return ServiceErrorInfo(
        category="unknown",
        status_code=500,
        message="The AI request failed. Please try again.",
    )
