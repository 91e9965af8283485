from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from mealswipe_sync.errors import AuthenticationError
from mealswipe_sync.portal.session import SessionAuthenticator, SessionHandle


BASE_URL = "https://fhu.campuscardcenter.com/ch"


def balance_row(label: str, value: str) -> str:
    return f'<tr><td></td><td>{label}</td><td></td><td><div align="right">{value}</div></td></tr>'


def entry_row(*cells: str) -> str:
    tds = "".join(f"<td>{c}</td>" for c in cells)
    return f'<tr id="EntryRow">{tds}</tr>'


def account_page(*rows: str, entries: tuple[str, ...] = ()) -> str:
    balance_table = f"<table>{''.join(rows)}</table>" if rows else "<table><tr><td>Welcome</td></tr></table>"
    entry_table = f"<table>{''.join(entries)}</table>" if entries else ""
    return f"<html><body>{balance_table}{entry_table}</body></html>"


class FakeResponse:
    def __init__(self, status: int = 200, body: str = "") -> None:
        self.status = status
        self._body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    async def text(self) -> str:
        return self._body


class FakeRequestContext:
    """
    Stand-in for Playwright's APIRequestContext: records requests and serves canned responses.
    """

    def __init__(
        self,
        *,
        login_response: Optional[FakeResponse] = None,
        page_response: Optional[FakeResponse] = None,
        get_error: Optional[BaseException] = None,
        on_get: Optional[Callable[[], Any]] = None,
        on_dispose: Optional[Callable[[], None]] = None,
        delay_s: float = 0.0,
    ) -> None:
        self.login_response = login_response or FakeResponse(200, "ok")
        self.page_response = page_response or FakeResponse(200, account_page())
        self.get_error = get_error
        self.on_get = on_get
        self.on_dispose = on_dispose
        self.delay_s = delay_s
        self.posts: list[tuple[str, dict]] = []
        self.gets: list[tuple[str, dict]] = []
        self.disposed = False

    async def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.posts.append((url, kwargs))
        return self.login_response

    async def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.gets.append((url, kwargs))
        if self.on_get is not None:
            self.on_get()
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.get_error is not None:
            raise self.get_error
        return self.page_response

    async def dispose(self) -> None:
        self.disposed = True
        if self.on_dispose is not None:
            self.on_dispose()


class StubAuthenticator(SessionAuthenticator):
    """
    Real `SessionAuthenticator` whose HTTP context is a `FakeRequestContext`.
    """

    def __init__(self, ctx: FakeRequestContext, **kwargs: Any) -> None:
        super().__init__(base_url=BASE_URL, **kwargs)
        self.ctx = ctx

    async def _open_handle(self) -> SessionHandle:
        return SessionHandle(context=self.ctx, base_url=self.base_url)  # type: ignore[arg-type]


class FakeAuthenticator:
    """
    Authenticator double for service tests: counts logins and tracks how many sessions are open.
    """

    def __init__(self, html: str = "", *, delay_s: float = 0.0) -> None:
        self.html = html or account_page()
        self.delay_s = delay_s
        self.fail_status: Optional[int] = None
        # Raised as-is from login(), for errors outside the MealSwipeError hierarchy.
        self.error: Optional[BaseException] = None
        self.page_status = 200
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.on_get: Optional[Callable[[], Any]] = None
        self.contexts: list[FakeRequestContext] = []

    def _session_closed(self) -> None:
        self.in_flight -= 1

    async def login(self, username: str, password: str) -> SessionHandle:
        self.calls.append((username, password))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            self.in_flight -= 1
            raise self.error
        if self.fail_status is not None:
            self.in_flight -= 1
            raise AuthenticationError(f"Login failed with status: {self.fail_status}", status=self.fail_status)
        ctx = FakeRequestContext(
            page_response=FakeResponse(self.page_status, self.html),
            on_get=self.on_get,
            on_dispose=self._session_closed,
            delay_s=self.delay_s,
        )
        self.contexts.append(ctx)
        return SessionHandle(context=ctx, base_url=BASE_URL)  # type: ignore[arg-type]
