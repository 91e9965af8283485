from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from ..errors import NetworkError
from .session import SessionHandle


logger = logging.getLogger(__name__)


class AccountPageFetcher:
    def __init__(self, *, account_path: str = "", timeout_ms: Optional[int] = None) -> None:
        self.account_path = account_path.lstrip("/")
        self.timeout_ms = timeout_ms

    async def fetch(self, handle: SessionHandle) -> str:
        """
        GET the account home page on the logged-in session. Always a live read.
        """
        url = f"{handle.base_url}/{self.account_path}"
        kwargs: dict = {}
        if self.timeout_ms:
            kwargs["timeout"] = float(self.timeout_ms)

        try:
            resp = await handle.context.get(url, **kwargs)
            if not resp.ok:
                raise NetworkError(f"Account page request failed with status: {resp.status}", status=resp.status)
            html = await resp.text()
        except PlaywrightError as e:
            raise NetworkError(f"Account page request failed: {e}") from e

        logger.debug("Fetched account page (%d chars)", len(html))
        return html
