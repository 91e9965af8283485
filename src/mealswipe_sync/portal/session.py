from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.async_api import APIRequestContext, Error as PlaywrightError, Playwright, async_playwright

from ..errors import AuthenticationError, NetworkError


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://fhu.campuscardcenter.com/ch"


class SessionHandle:
    """
    Opaque proof that a portal login succeeded.

    The portal is a legacy session-cookie site: the session lives in the cookie jar of the request
    context that performed the login, so the handle simply owns that context. Fetches must go through
    the same handle, and the handle must be closed when done (it is also an async context manager).
    """

    def __init__(
        self,
        *,
        context: APIRequestContext,
        base_url: str,
        driver: Optional[Playwright] = None,
    ) -> None:
        self._context = context
        self._driver = driver
        self.base_url = base_url.rstrip("/")
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def context(self) -> APIRequestContext:
        if self._closed:
            raise NetworkError("Session handle is closed; log in again.")
        return self._context

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._context.dispose()
        finally:
            if self._driver is not None:
                await self._driver.stop()

    async def __aenter__(self) -> "SessionHandle":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()


class SessionAuthenticator:
    """
    Performs the campus-card form login.

    One POST per `login()` call, no retries (retry policy belongs to the caller). Every login gets a
    brand-new request context so sessions never leak between runs.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        login_path: str = "login.html",
        timeout_ms: int = 30_000,
        user_agent: str = "",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.login_url = f"{self.base_url}/{login_path.lstrip('/')}"
        self.timeout_ms = int(timeout_ms)
        self.user_agent = user_agent

    async def _open_handle(self) -> SessionHandle:
        driver = await async_playwright().start()
        ctx_kwargs: dict = {"timeout": float(self.timeout_ms)}
        if self.user_agent:
            ctx_kwargs["user_agent"] = self.user_agent
        try:
            ctx = await driver.request.new_context(**ctx_kwargs)
        except BaseException:
            await driver.stop()
            raise
        return SessionHandle(context=ctx, base_url=self.base_url, driver=driver)

    async def login(self, username: str, password: str) -> SessionHandle:
        try:
            handle = await self._open_handle()
        except (PlaywrightError, OSError) as e:
            # OSError covers a missing or unlaunchable Playwright driver.
            raise NetworkError(f"Could not start HTTP client: {e}") from e

        ok = False
        try:
            fields = {"username": username, "password": password, "action": "Login"}
            logger.info("Logging in to campus card portal as %s", username)
            try:
                resp = await handle.context.post(
                    self.login_url,
                    # The portal reads the fields from the query string; send them in the body too.
                    params=fields,
                    form=fields,
                    headers={
                        "Accept": "*/*",
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                    timeout=float(self.timeout_ms),
                )
            except PlaywrightError as e:
                # Playwright error messages can echo the request URL, which carries the password.
                raise NetworkError(f"Login request failed ({type(e).__name__})") from None

            if not resp.ok:
                try:
                    body = await resp.text()
                except PlaywrightError:
                    body = ""
                logger.debug("Login response body (truncated): %s", body[:500])
                raise AuthenticationError(f"Login failed with status: {resp.status}", status=resp.status)

            logger.debug("Login accepted (status=%s)", resp.status)
            ok = True
            return handle
        finally:
            if not ok:
                await handle.close()
