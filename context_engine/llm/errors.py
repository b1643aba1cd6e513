"""Errors raised at the transport boundary."""

from __future__ import annotations


class TransportError(Exception):
    """
    Failure reaching or reading from a model endpoint.

    Fatal to the current conversation run.  Retries, if any, belong to the
    provider adapter that raised it.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider: str | None = None,
        kind: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider
        self.kind = kind or _kind_for_status(status_code)

    @property
    def retryable(self) -> bool:
        return self.kind in ("rate_limit", "network") or (
            self.status_code is not None and self.status_code >= 500
        )


def _kind_for_status(status_code: int | None) -> str:
    if status_code is None:
        return "network"
    if status_code in (401, 403):
        return "auth"
    if status_code == 429:
        return "rate_limit"
    return "http"
