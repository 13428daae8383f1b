from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from src.models.market import PricePoint


@dataclass
class HistoryStore:
    """Per-symbol price samples, ordered oldest first.

    Points for a symbol arrive in time order, so pruning only ever pops from
    the left. Detection compares against the window cutoff while pruning uses
    the wider retention cutoff, which keeps the comparison point alive until
    it has really aged out.
    """

    _series: Dict[str, Deque[PricePoint]] = field(default_factory=dict, init=False, repr=False)

    def record(self, symbol: str, timestamp: int, price: float) -> None:
        series = self._series.get(symbol)
        if series is None:
            series = deque()
            self._series[symbol] = series
        series.append(PricePoint(timestamp=timestamp, price=price))

    def prune_if_needed(self, symbol: str, cutoff_timestamp: int, max_length: int) -> int:
        series = self._series.get(symbol)
        if series is None or len(series) <= max_length:
            return 0
        return _drop_older_than(series, cutoff_timestamp)

    def sweep(self, retention_cutoff_timestamp: int) -> List[str]:
        """Prune every symbol and evict the stale ones. Returns evicted symbols."""

        evicted: List[str] = []
        for symbol, series in list(self._series.items()):
            if not series or series[-1].timestamp < retention_cutoff_timestamp:
                del self._series[symbol]
                evicted.append(symbol)
                continue
            _drop_older_than(series, retention_cutoff_timestamp)
        return evicted

    def oldest_at_or_after(self, symbol: str, cutoff_timestamp: int) -> Optional[PricePoint]:
        for point in self._series.get(symbol, ()):
            if point.timestamp >= cutoff_timestamp:
                return point
        return None

    def points(self, symbol: str) -> List[PricePoint]:
        return list(self._series.get(symbol, ()))

    def symbols(self) -> List[str]:
        return list(self._series.keys())

    def __len__(self) -> int:
        return len(self._series)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._series


def _drop_older_than(series: Deque[PricePoint], cutoff_timestamp: int) -> int:
    dropped = 0
    while series and series[0].timestamp < cutoff_timestamp:
        series.popleft()
        dropped += 1
    return dropped
