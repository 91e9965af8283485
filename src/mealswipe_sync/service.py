from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import AppConfig
from .credentials import CredentialStore
from .errors import CredentialStoreError, MealSwipeError, ParseUnavailable, ValidationError
from .models import AccountSnapshot, Credentials
from .portal.fetcher import AccountPageFetcher
from .portal.parser import AccountDataParser
from .portal.session import SessionAuthenticator


logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATED = "authenticated"
    # Still showing the last good snapshot, but the latest refresh failed.
    AUTHENTICATED_STALE = "authenticated_stale"


class MealSwipeDataService:
    """
    Owns the login -> fetch -> parse pipeline and the state a UI needs to render it.

    Every pipeline run and every credential store access goes through one lock, so at most one
    fetch is in flight per service; a second request queues behind the first.
    """

    def __init__(
        self,
        *,
        store: CredentialStore,
        authenticator: SessionAuthenticator,
        fetcher: AccountPageFetcher,
        parser: AccountDataParser,
        debug_dir: str = "",
    ) -> None:
        self._store = store
        self._authenticator = authenticator
        self._fetcher = fetcher
        self._parser = parser
        self._debug_dir = debug_dir

        self._lock = asyncio.Lock()
        self._credentials: Optional[Credentials] = None
        self._snapshot: Optional[AccountSnapshot] = None
        self._is_loading = False
        self._last_error: Optional[str] = None

    @classmethod
    def from_config(cls, cfg: AppConfig, *, store: Optional[CredentialStore] = None) -> "MealSwipeDataService":
        return cls(
            store=store or CredentialStore(service_name=cfg.credentials.service_name),
            authenticator=SessionAuthenticator(
                base_url=cfg.portal.base_url,
                login_path=cfg.portal.login_path,
                timeout_ms=cfg.portal.timeout_ms,
                user_agent=cfg.portal.user_agent,
            ),
            fetcher=AccountPageFetcher(timeout_ms=cfg.portal.timeout_ms),
            parser=AccountDataParser(),
            debug_dir=cfg.debug.dir if cfg.debug.save_unparseable_html else "",
        )

    @property
    def snapshot(self) -> Optional[AccountSnapshot]:
        return self._snapshot

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def is_authenticated(self) -> bool:
        return self._snapshot is not None

    @property
    def state(self) -> ServiceState:
        if self._snapshot is None:
            return ServiceState.LOGGED_OUT
        if self._last_error:
            return ServiceState.AUTHENTICATED_STALE
        return ServiceState.AUTHENTICATED

    async def fetch(self, username: str, password: str) -> AccountSnapshot:
        async with self._lock:
            return await self._fetch_locked(username, password)

    async def login(self, username: str, password: str) -> bool:
        if not username or not password:
            raise ValidationError("Username and password are required")

        creds = Credentials(username=username, password=password)
        async with self._lock:
            try:
                await asyncio.to_thread(self._store.save, creds)
            except CredentialStoreError as e:
                self._last_error = str(e)
                logger.error("%s", e)
                return False

            # Stored credentials are kept even if the fetch below fails (so a later refresh can retry).
            self._credentials = creds
            self._snapshot = None
            try:
                await self._fetch_locked(creds.username, creds.password)
            except MealSwipeError:
                return False
            return True

    async def logout(self) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._store.clear)
            finally:
                self._credentials = None
                self._snapshot = None
                self._last_error = None
        logger.info("Logged out")

    async def refresh(self) -> None:
        if self._credentials is None:
            return
        async with self._lock:
            # A logout may have run while we were queued.
            creds = self._credentials
            if creds is None:
                return
            try:
                await self._fetch_locked(creds.username, creds.password)
            except MealSwipeError:
                logger.info("Refresh failed; keeping previous snapshot.")

    async def restore(self) -> bool:
        """
        Pick up credentials saved by an earlier run and fetch a fresh snapshot with them.
        """
        async with self._lock:
            creds = await asyncio.to_thread(self._store.load)
            if creds is None:
                logger.info("No stored credentials found.")
                return False
            self._credentials = creds
            try:
                await self._fetch_locked(creds.username, creds.password)
            except MealSwipeError:
                return False
            return True

    async def _fetch_locked(self, username: str, password: str) -> AccountSnapshot:
        self._is_loading = True
        self._last_error = None
        try:
            handle = await self._authenticator.login(username, password)
            async with handle:
                html = await self._fetcher.fetch(handle)
            snapshot = self._parser.parse(html)
            if snapshot is None:
                self._save_unparseable(html)
                raise ParseUnavailable("Account page did not contain any account tables")
        except MealSwipeError as e:
            self._last_error = str(e)
            logger.warning("Fetch failed: %s", e)
            raise
        except Exception as e:
            self._last_error = f"Unexpected error: {type(e).__name__}"
            logger.exception("Fetch failed with an unexpected error")
            raise MealSwipeError(self._last_error) from e
        finally:
            self._is_loading = False

        self._snapshot = snapshot
        logger.info(
            "Fetched snapshot: plan=%s meals=%s transactions=%d",
            snapshot.plan.name if snapshot.plan else None,
            snapshot.meal_swipes,
            len(snapshot.transactions),
        )
        return snapshot

    def _save_unparseable(self, html: str) -> None:
        if not self._debug_dir:
            return
        try:
            out_dir = Path(self._debug_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            out = out_dir / f"unparseable_{time.strftime('%Y%m%d_%H%M%S')}.html"
            out.write_text(html or "", encoding="utf-8")
            logger.info("Saved unparseable account page to %s", out)
        except OSError:
            logger.debug("Failed to save unparseable account page.", exc_info=True)
