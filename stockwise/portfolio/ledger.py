"""
Position ledger.

Holds at most one Position per symbol. Buying more of a held symbol merges
into the existing position with a share-weighted average cost:

    new_avg = (old_shares * old_avg + shares * price) / (old_shares + shares)
"""

import math
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import structlog

from ..data.models import Quote
from ..errors import InvalidPrice, InvalidQuantity, PositionNotFound, QuoteMismatch
from ..persistence.user_store import PORTFOLIO_KEY, UserDataStore
from ..utils.time import utc_now
from .models import PortfolioTotals, Position, Valuation

logger = structlog.get_logger(__name__)


def _percent(profit_loss: float, cost_basis: float) -> Optional[float]:
    if cost_basis == 0:
        return None
    return profit_loss / cost_basis * 100


class PositionLedger:
    """Portfolio positions keyed by uppercase symbol."""

    def __init__(self,
                 positions: Optional[list[Position]] = None,
                 store: Optional[UserDataStore] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock
        self._positions: dict[str, Position] = {}
        for position in positions or []:
            self._positions[position.symbol] = position

    @classmethod
    def from_store(cls, store: UserDataStore,
                   clock: Callable[[], datetime] = utc_now) -> "PositionLedger":
        """Load positions persisted by an earlier session."""
        positions = []
        stored = store.get(PORTFOLIO_KEY, [])
        for entry in stored if isinstance(stored, list) else []:
            try:
                positions.append(Position.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable stored position", entry=entry, error=str(e))
        return cls(positions, store=store, clock=clock)

    @staticmethod
    def _normalize_symbol(symbol: str) -> str:
        symbol = symbol.strip().upper() if isinstance(symbol, str) else ""
        if not symbol:
            raise ValueError("Symbol must be a non-empty string")
        return symbol

    @staticmethod
    def _check_order(symbol: str, shares: Any, price: Any) -> tuple[float, float]:
        if isinstance(shares, bool) or not isinstance(shares, (int, float)) \
                or not math.isfinite(shares) or shares <= 0:
            raise InvalidQuantity(
                f"Share count must be a positive number, got {shares!r}",
                shares=shares, symbol=symbol,
            )
        if isinstance(price, bool) or not isinstance(price, (int, float)) \
                or not math.isfinite(price) or price < 0:
            raise InvalidPrice(
                f"Price must be a non-negative number, got {price!r}",
                price=price, symbol=symbol,
            )
        return float(shares), float(price)

    def open(self, symbol: str, shares: float, price: float) -> Position:
        """
        Buy shares, creating a position or merging into the existing one.

        Raises:
            InvalidQuantity: shares is not a positive finite number
            InvalidPrice: price is negative or not finite
        """
        symbol = self._normalize_symbol(symbol)
        shares, price = self._check_order(symbol, shares, price)

        existing = self._positions.get(symbol)
        if existing is None:
            position = Position(symbol=symbol, shares=shares, average_cost=price, opened_at=self.clock())
            action = "opened"
        else:
            total_shares = existing.shares + shares
            average_cost = (existing.shares * existing.average_cost + shares * price) / total_shares
            position = Position(
                symbol=symbol,
                shares=total_shares,
                average_cost=average_cost,
                opened_at=existing.opened_at,
                position_id=existing.position_id,
            )
            action = "merged"

        positions = dict(self._positions)
        positions[symbol] = position
        self._commit(positions)
        logger.info("Position updated", symbol=symbol, action=action,
                    shares=position.shares, average_cost=round(position.average_cost, 4))
        return position

    def add(self, symbol: str, shares: float, price: float) -> Position:
        """
        Buy more of a symbol already held.

        Raises:
            PositionNotFound: No position is open for the symbol
        """
        symbol = self._normalize_symbol(symbol)
        if symbol not in self._positions:
            raise PositionNotFound(f"No open position for {symbol}", symbol=symbol)
        return self.open(symbol, shares, price)

    def close(self, symbol: str) -> Position:
        """Remove a position entirely and return it."""
        symbol = self._normalize_symbol(symbol)
        positions = dict(self._positions)
        position = positions.pop(symbol, None)
        if position is None:
            raise PositionNotFound(f"No open position for {symbol}", symbol=symbol)

        self._commit(positions)
        logger.info("Position closed", symbol=symbol, shares=position.shares)
        return position

    def get(self, symbol: str) -> Optional[Position]:
        return self._positions.get(self._normalize_symbol(symbol))

    def positions(self) -> list[Position]:
        return list(self._positions.values())

    def symbols(self) -> list[str]:
        return list(self._positions)

    def valuation(self, symbol: str, quote: Quote) -> Valuation:
        """
        Value a position at the quote's price.

        Raises:
            PositionNotFound: No position is open for the symbol
            QuoteMismatch: The quote is for another symbol
        """
        symbol = self._normalize_symbol(symbol)
        position = self._positions.get(symbol)
        if position is None:
            raise PositionNotFound(f"No open position for {symbol}", symbol=symbol)
        if quote.symbol.upper() != symbol:
            raise QuoteMismatch(
                f"Quote for {quote.symbol} cannot value {symbol}",
                symbol=symbol, quote_symbol=quote.symbol,
            )

        market_value = position.shares * quote.price
        cost_basis = position.cost_basis
        profit_loss = market_value - cost_basis
        return Valuation(
            symbol=symbol,
            shares=position.shares,
            market_value=market_value,
            cost_basis=cost_basis,
            profit_loss=profit_loss,
            profit_loss_percent=_percent(profit_loss, cost_basis),
        )

    def totals(self, quotes: Mapping[str, Quote]) -> PortfolioTotals:
        """Sum valuations over every position with a quote in `quotes`."""
        quotes_by_symbol = {symbol.upper(): quote for symbol, quote in quotes.items()}
        valuations = []
        missing = []

        for symbol in self._positions:
            quote = quotes_by_symbol.get(symbol)
            if quote is None:
                missing.append(symbol)
                continue
            valuations.append(self.valuation(symbol, quote))

        market_value = sum(v.market_value for v in valuations)
        cost_basis = sum(v.cost_basis for v in valuations)
        profit_loss = market_value - cost_basis
        return PortfolioTotals(
            market_value=market_value,
            cost_basis=cost_basis,
            profit_loss=profit_loss,
            profit_loss_percent=_percent(profit_loss, cost_basis),
            valuations=tuple(valuations),
            missing_quotes=tuple(missing),
        )

    def _commit(self, positions: dict[str, Position]) -> None:
        # Persist first; a PersistenceError leaves the ledger as it was
        if self.store is not None:
            self.store.set(PORTFOLIO_KEY, [p.to_dict() for p in positions.values()])
        self._positions = positions

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.strip().upper() in self._positions

    def __len__(self) -> int:
        return len(self._positions)
