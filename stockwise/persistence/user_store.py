"""JSON-file persistence for the watchlist and portfolio positions."""

import json
import os
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import structlog

from ..errors import PersistenceError

WATCHLIST_KEY = "stockwise-watchlist"
PORTFOLIO_KEY = "stockwise-portfolio"


class UserDataStore:
    """
    Key-value document backed by a single JSON file.

    The file is read lazily and rewritten in full on every `set`. A missing
    or unreadable file behaves like an empty store so a damaged file never
    prevents startup.
    """

    def __init__(self, path: str = "stockwise_data.json"):
        self.path = Path(path)
        self.logger = structlog.get_logger(__name__).bind(store=str(self.path))
        self._data: Optional[dict[str, Any]] = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            data = {}
        except (OSError, ValueError) as e:
            self.logger.warning("User data unreadable, starting empty", error=str(e))
            data = {}

        if not isinstance(data, dict):
            self.logger.warning("User data is not an object, starting empty",
                                found=type(data).__name__)
            data = {}

        self._data = data
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Store a value and flush the whole document to disk.

        The cached document only changes once the file has been replaced, so
        a failed write leaves both untouched.
        """
        data = dict(self._load())
        data[key] = value
        self._write(data)
        self._data = data

    def delete(self, key: str) -> None:
        data = dict(self._load())
        if key in data:
            del data[key]
            self._write(data)
            self._data = data

    def reload(self) -> None:
        """Drop the cached document so the next read hits the file."""
        self._data = None

    def _write(self, data: dict[str, Any]) -> None:
        try:
            document = json.dumps(data, indent=2, sort_keys=True)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Replace atomically; readers never see a partial document
            tmp_path = self.path.with_name(f".{self.path.name}.tmp")
            tmp_path.write_text(document, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(
                f"Failed to write user data: {e}",
                operation="write",
                target=str(self.path),
            ) from e

        self.logger.debug("User data written", keys=sorted(data))


class Watchlist:
    """Ordered set of uppercase ticker symbols."""

    def __init__(self, symbols: Iterable[str] = (), store: Optional[UserDataStore] = None):
        self._symbols: list[str] = []
        self.store = store
        for symbol in symbols:
            normalized = self._normalize(symbol)
            if normalized and normalized not in self._symbols:
                self._symbols.append(normalized)

    @classmethod
    def from_store(cls, store: UserDataStore) -> "Watchlist":
        stored = store.get(WATCHLIST_KEY, [])
        if not isinstance(stored, list):
            stored = []
        return cls([s for s in stored if isinstance(s, str)], store=store)

    @staticmethod
    def _normalize(symbol: str) -> str:
        return symbol.strip().upper()

    def add(self, symbol: str) -> bool:
        """Add a symbol; returns False if it was already present."""
        symbol = self._normalize(symbol)
        if not symbol:
            raise ValueError("Symbol must be a non-empty string")
        if symbol in self._symbols:
            return False
        self._commit(self._symbols + [symbol])
        return True

    def remove(self, symbol: str) -> bool:
        symbol = self._normalize(symbol)
        if symbol not in self._symbols:
            return False
        self._commit([s for s in self._symbols if s != symbol])
        return True

    def symbols(self) -> list[str]:
        return list(self._symbols)

    def _commit(self, symbols: list[str]) -> None:
        if self.store is not None:
            self.store.set(WATCHLIST_KEY, list(symbols))
        self._symbols = symbols

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self._normalize(symbol) in self._symbols

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._symbols))

    def __len__(self) -> int:
        return len(self._symbols)
