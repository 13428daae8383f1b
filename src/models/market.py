from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Tick:
    """One price/volume update for one symbol."""

    symbol: str
    last_price: float
    quote_volume: float
    event_time: int = 0


@dataclass(frozen=True)
class PricePoint:
    timestamp: int  # epoch ms
    price: float


@dataclass(frozen=True)
class TickAnomaly:
    symbol: str
    reason: str


def validate_tick(tick: Tick) -> Optional[TickAnomaly]:
    """Return an anomaly when the tick must not reach the history store."""

    symbol = tick.symbol if isinstance(tick.symbol, str) else ""
    if not symbol:
        return TickAnomaly(symbol="", reason="missing symbol")

    try:
        price = float(tick.last_price)
        volume = float(tick.quote_volume)
    except (TypeError, ValueError):
        return TickAnomaly(symbol=symbol, reason="non-numeric price or volume")

    if not math.isfinite(price) or price <= 0:
        return TickAnomaly(symbol=symbol, reason=f"invalid price {tick.last_price!r}")
    if not math.isfinite(volume) or volume < 0:
        return TickAnomaly(symbol=symbol, reason=f"invalid volume {tick.quote_volume!r}")

    return None
