from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from src.core.config import DetectionConfig
from src.core.history_store import HistoryStore
from src.models.alert import AlertEvent
from src.models.market import Tick


class LoggerProtocol(Protocol):
    def log_debug(self, message: str) -> None: ...


@dataclass
class SurgeDetector:
    history: HistoryStore
    max_history_length: int = 120
    logger: Optional[LoggerProtocol] = None

    _last_alert: Dict[str, int] = field(default_factory=dict, init=False, repr=False)

    def evaluate(self, tick: Tick, config: DetectionConfig, now: int) -> Optional[AlertEvent]:
        volume = float(tick.quote_volume)
        # Thin pairs are ignored entirely, they never enter the history.
        if volume < config.min_volume_usdt:
            return None

        symbol = tick.symbol
        price = float(tick.last_price)

        self.history.record(symbol, now, price)
        self.history.prune_if_needed(symbol, now - config.retention_ms, self.max_history_length)

        comparison = self.history.oldest_at_or_after(symbol, now - config.window_ms)
        if comparison is None:
            return None

        price_before = comparison.price
        change = ((price - price_before) / price_before) * 100.0
        if abs(change) < config.percentage_threshold:
            return None

        # Re-arms only once strictly outside the window.
        last_alert = self._last_alert.get(symbol)
        if last_alert is not None and now - last_alert <= config.window_ms:
            if self.logger:
                self.logger.log_debug(f"{symbol} move {change:+.2f}% suppressed by cooldown")
            return None

        self._last_alert[symbol] = now
        return AlertEvent(
            id=f"{symbol}-{now}",
            symbol=symbol,
            timestamp=now,
            price_before=price_before,
            price_now=price,
            percentage_change=change,
            volume=volume,
            is_positive=change > 0,
        )

    def last_alert_time(self, symbol: str) -> Optional[int]:
        return self._last_alert.get(symbol)

    def forget(self, symbol: str) -> None:
        self._last_alert.pop(symbol, None)
