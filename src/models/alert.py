from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from src.models.trade import TradeOutcome, TradeStatus


@dataclass(frozen=True)
class AlertEvent:
    id: str
    symbol: str
    timestamp: int
    price_before: float
    price_now: float
    percentage_change: float  # signed, percent units
    volume: float
    is_positive: bool

    trade_status: Optional[TradeStatus] = None
    trade_message: Optional[str] = None

    def with_trade(self, outcome: TradeOutcome) -> "AlertEvent":
        return replace(self, trade_status=outcome.status, trade_message=outcome.message)
