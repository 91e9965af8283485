from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import BASE_URL, FakeRequestContext, FakeResponse, StubAuthenticator
from mealswipe_sync.errors import AuthenticationError, NetworkError
from mealswipe_sync.portal.fetcher import AccountPageFetcher
from mealswipe_sync.portal.session import SessionHandle


def test_login_posts_form_to_login_endpoint() -> None:
    ctx = FakeRequestContext()
    auth = StubAuthenticator(ctx, timeout_ms=5_000)

    handle = asyncio.run(auth.login("student1", "pw1"))
    assert not handle.closed
    assert len(ctx.posts) == 1

    url, kwargs = ctx.posts[0]
    assert url == f"{BASE_URL}/login.html"
    expected = {"username": "student1", "password": "pw1", "action": "Login"}
    assert kwargs["params"] == expected
    assert kwargs["form"] == expected
    assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert kwargs["headers"]["Accept"] == "*/*"
    assert kwargs["timeout"] == 5_000.0


def test_login_non_2xx_raises_authentication_error_and_closes_session() -> None:
    ctx = FakeRequestContext(login_response=FakeResponse(401, "nope"))
    auth = StubAuthenticator(ctx)

    with pytest.raises(AuthenticationError) as ei:
        asyncio.run(auth.login("student1", "bad"))
    assert ei.value.status == 401
    assert "401" in str(ei.value)
    assert ctx.disposed is True


def test_login_transport_error_is_network_error_without_leaking_password() -> None:
    class Exploding(FakeRequestContext):
        async def post(self, url, **kwargs):
            raise PlaywrightError(f"connect ECONNREFUSED {url}?password=sekrit")

    ctx = Exploding()
    with pytest.raises(NetworkError) as ei:
        asyncio.run(StubAuthenticator(ctx).login("student1", "sekrit"))
    assert "sekrit" not in str(ei.value)
    assert ctx.disposed is True


def test_driver_start_failure_is_network_error() -> None:
    class NoDriver(StubAuthenticator):
        async def _open_handle(self):
            raise OSError("playwright driver not found")

    with pytest.raises(NetworkError) as ei:
        asyncio.run(NoDriver(FakeRequestContext()).login("student1", "pw1"))
    assert "Could not start HTTP client" in str(ei.value)


def test_fetch_gets_account_page_on_same_session() -> None:
    ctx = FakeRequestContext(page_response=FakeResponse(200, "<html>account</html>"))

    async def _run() -> str:
        handle = await StubAuthenticator(ctx).login("u", "p")
        async with handle:
            return await AccountPageFetcher().fetch(handle)

    html = asyncio.run(_run())
    assert html == "<html>account</html>"
    assert [u for u, _ in ctx.gets] == [f"{BASE_URL}/"]
    assert ctx.disposed is True


def test_fetch_non_2xx_is_network_error() -> None:
    ctx = FakeRequestContext(page_response=FakeResponse(503, "busy"))
    handle = SessionHandle(context=ctx, base_url=BASE_URL)  # type: ignore[arg-type]

    with pytest.raises(NetworkError) as ei:
        asyncio.run(AccountPageFetcher().fetch(handle))
    assert ei.value.status == 503


def test_fetch_transport_error_is_network_error() -> None:
    ctx = FakeRequestContext(get_error=PlaywrightError("Timeout 30000ms exceeded"))
    handle = SessionHandle(context=ctx, base_url=BASE_URL)  # type: ignore[arg-type]

    with pytest.raises(NetworkError):
        asyncio.run(AccountPageFetcher(timeout_ms=1_000).fetch(handle))
    assert ctx.gets[0][1] == {"timeout": 1_000.0}


def test_closed_handle_cannot_fetch_and_close_is_idempotent() -> None:
    ctx = FakeRequestContext()
    handle = SessionHandle(context=ctx, base_url=BASE_URL)  # type: ignore[arg-type]

    asyncio.run(handle.close())
    asyncio.run(handle.close())
    assert handle.closed

    with pytest.raises(NetworkError):
        asyncio.run(AccountPageFetcher().fetch(handle))
    assert ctx.gets == []
