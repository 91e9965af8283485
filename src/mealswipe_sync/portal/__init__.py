from .fetcher import AccountPageFetcher
from .layout import PageLayout
from .parser import AccountDataParser
from .session import SessionAuthenticator, SessionHandle

__all__ = ["AccountDataParser", "AccountPageFetcher", "PageLayout", "SessionAuthenticator", "SessionHandle"]
