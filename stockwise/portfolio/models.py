"""Portfolio data models."""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..utils.time import ensure_timestamp


@dataclass(frozen=True)
class Position:
    """A holding in one symbol, averaged over every lot bought."""
    symbol: str
    shares: float
    average_cost: float
    opened_at: datetime
    position_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def cost_basis(self) -> float:
        return self.shares * self.average_cost

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["opened_at"] = self.opened_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Position":
        return cls(
            symbol=str(data["symbol"]).upper(),
            shares=float(data["shares"]),
            average_cost=float(data["average_cost"]),
            opened_at=ensure_timestamp(data.get("opened_at")),
            position_id=str(data.get("position_id") or uuid.uuid4().hex),
        )


@dataclass(frozen=True)
class Valuation:
    """Mark-to-market of one position against a quote."""
    symbol: str
    shares: float
    market_value: float
    cost_basis: float
    profit_loss: float
    profit_loss_percent: Optional[float]    # None when cost basis is zero

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PortfolioTotals:
    """Portfolio-wide sums over the positions that had a quote."""
    market_value: float
    cost_basis: float
    profit_loss: float
    profit_loss_percent: Optional[float]
    valuations: tuple[Valuation, ...] = ()
    missing_quotes: tuple[str, ...] = field(default_factory=tuple)
