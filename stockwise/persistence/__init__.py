"""User data persistence: watchlist and portfolio positions."""

from .user_store import PORTFOLIO_KEY, WATCHLIST_KEY, UserDataStore, Watchlist

__all__ = ["PORTFOLIO_KEY", "WATCHLIST_KEY", "UserDataStore", "Watchlist"]
