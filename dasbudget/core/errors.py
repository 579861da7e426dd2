"""Exception hierarchy raised by the SDK."""
from __future__ import annotations

from typing import Optional


class DasBudgetError(Exception):
    """Base class for every error raised by the SDK."""


class AuthenticationFailure(DasBudgetError):
    """The identity endpoint rejected the refresh or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidArgument(DasBudgetError, ValueError):
    """A caller-supplied option was malformed; no request was sent."""


class FetchFailure(DasBudgetError):
    """A resource call failed in transport or returned a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        method: Optional[str] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
