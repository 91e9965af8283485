from __future__ import annotations

from typing import Optional


class MealSwipeError(RuntimeError):
    """
    Base class for everything the engine raises on purpose.
    """


class ValidationError(MealSwipeError, ValueError):
    """
    Raised for bad local input (e.g. empty username/password). Never reaches the network.
    """


class AuthenticationError(MealSwipeError):
    """
    Raised when the portal login endpoint rejects the login POST (non-2xx).
    """

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class NetworkError(MealSwipeError):
    """
    Raised on transport failures (DNS, timeouts, resets) or a non-2xx account page response.
    """

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ParseUnavailable(MealSwipeError):
    """
    Raised when the account page was fetched but contains none of the expected table structure.

    Missing individual balances is not an error; this is only for pages with no table rows at all
    (maintenance pages, login redirects, empty bodies).
    """


class CredentialStoreError(MealSwipeError):
    """
    Raised when the platform secure-storage backend fails to read/write/delete.
    """
