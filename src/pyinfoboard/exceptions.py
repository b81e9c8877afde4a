"""Custom exception hierarchy for pyinfoboard."""

from __future__ import annotations


class InfoboardError(Exception):
    """Base exception for all pyinfoboard errors."""


class InfoboardConfigError(InfoboardError):
    """Invalid or missing configuration."""


class InfoboardTransportError(InfoboardError):
    """Fetch failure (network error, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class InfoboardHttpError(InfoboardTransportError):
    """Server answered with a non-2xx status.

    ``status_code`` is always set.
    """


class InfoboardDataError(InfoboardError):
    """Payload had the wrong shape, or produced no usable data."""


class MergeReferenceError(InfoboardError):
    """A custom record referenced an identifier that does not exist.

    The merger records these instead of raising them; the offending
    record is skipped and the merge continues.
    """

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Custom data references nonexistent record ID: {record_id}")


class TimerComputeError(InfoboardError):
    """Countdown bounds could not be turned into instants."""
