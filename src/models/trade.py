from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional


PositionStatus = Literal["OPEN", "WON", "LOST"]
TradeStatus = Literal["NONE", "SIMULATED", "EXECUTED", "FAILED"]

# ROI is rounded so that e.g. 100 -> 100.6 at 10x reads as exactly 6%.
_ROI_PRECISION = 8


@dataclass(frozen=True)
class Position:
    id: str
    symbol: str
    entry_price: float
    notional_usdt: float
    leverage: float
    opened_at: int
    simulated: bool = True
    pnl: float = 0.0
    roi_percent: float = 0.0
    status: PositionStatus = "OPEN"
    close_price: Optional[float] = None
    closed_at: Optional[int] = None

    @property
    def margin(self) -> float:
        return self.notional_usdt / self.leverage

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN"

    def marked(self, current_price: float) -> "Position":
        """Return a copy with pnl/roi recomputed at current_price (long only)."""

        raw_move = (current_price - self.entry_price) / self.entry_price
        roi = round(raw_move * self.leverage * 100.0, _ROI_PRECISION)
        pnl = round(self.margin * raw_move * self.leverage, _ROI_PRECISION)
        return replace(self, pnl=pnl, roi_percent=roi)

    def closed(self, status: PositionStatus, close_price: float, closed_at: int) -> "Position":
        return replace(self, status=status, close_price=close_price, closed_at=closed_at)


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    message: str


@dataclass(frozen=True)
class TradeOutcome:
    status: TradeStatus
    message: str = ""
    position: Optional[Position] = None
