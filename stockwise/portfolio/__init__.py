"""Portfolio positions and valuation."""

from .ledger import PositionLedger
from .models import PortfolioTotals, Position, Valuation

__all__ = ["PortfolioTotals", "Position", "PositionLedger", "Valuation"]
