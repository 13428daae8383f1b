from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from src.core.clock import Clock, SystemClock
from src.core.config import DetectionConfig, TradeConfig
from src.core.history_store import HistoryStore
from src.core.position_tracker import PositionTracker, TradeExecutor
from src.core.surge_detector import SurgeDetector
from src.models.alert import AlertEvent
from src.models.market import Tick, TickAnomaly, validate_tick
from src.models.trade import Position


class LoggerProtocol(Protocol):
    def log_debug(self, message: str) -> None: ...
    def log_warning(self, message: str) -> None: ...
    def log_error(self, message: str) -> None: ...


@dataclass(frozen=True)
class BatchResult:
    alerts: List[AlertEvent]
    positions_changed: bool
    # Snapshots of positions opened, re-marked or closed in this batch.
    positions: List[Position] = field(default_factory=list)
    anomalies: List[TickAnomaly] = field(default_factory=list)

    @property
    def closed_positions(self) -> List[Position]:
        return [p for p in self.positions if not p.is_open]


@dataclass
class SurgeEngine:
    """Owns all per-symbol state. process_batch and sweep are its only mutators."""

    executor: TradeExecutor
    clock: Clock = field(default_factory=SystemClock)
    max_history_length: int = 120
    execution_timeout_seconds: float = 10.0
    logger: Optional[LoggerProtocol] = None

    history: HistoryStore = field(init=False)
    detector: SurgeDetector = field(init=False)
    tracker: PositionTracker = field(init=False)

    _last_detection: Optional[DetectionConfig] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_history_length <= 0:
            raise ValueError("max_history_length must be > 0")
        self.history = HistoryStore()
        self.detector = SurgeDetector(self.history, self.max_history_length, logger=self.logger)
        self.tracker = PositionTracker(
            self.executor,
            execution_timeout_seconds=self.execution_timeout_seconds,
            logger=self.logger,
        )

    async def process_batch(
        self,
        ticks: Iterable[Tick],
        detection: DetectionConfig,
        trade: TradeConfig,
        now: Optional[int] = None,
    ) -> BatchResult:
        if now is None:
            now = self.clock.now_ms()
        self._last_detection = detection

        alerts: List[AlertEvent] = []
        touched: Dict[str, Position] = {}
        anomalies: List[TickAnomaly] = []

        for tick in ticks:
            anomaly = validate_tick(tick)
            if anomaly is not None:
                anomalies.append(anomaly)
                if self.logger:
                    self.logger.log_debug(f"Rejected tick {anomaly.symbol or '?'}: {anomaly.reason}")
                continue

            try:
                alert = await self._process_tick(tick, detection, trade, now, touched)
            except Exception as e:
                anomalies.append(TickAnomaly(symbol=tick.symbol, reason=f"processing error: {e}"))
                if self.logger:
                    self.logger.log_warning(f"Error processing tick {tick.symbol}: {e}")
                continue

            if alert is not None:
                alerts.append(alert)

        return BatchResult(
            alerts=alerts,
            positions_changed=bool(touched),
            positions=list(touched.values()),
            anomalies=anomalies,
        )

    async def _process_tick(
        self,
        tick: Tick,
        detection: DetectionConfig,
        trade: TradeConfig,
        now: int,
        touched: Dict[str, Position],
    ) -> Optional[AlertEvent]:
        symbol = tick.symbol
        price = float(tick.last_price)

        # Exits first so a TP/SL on this tick is settled before any new entry.
        updated = self.tracker.update_open_position(symbol, price, trade, now)
        if updated is not None:
            touched[updated.id] = updated

        alert = self.detector.evaluate(tick, detection, now)
        if alert is None:
            return None

        if trade.enabled and alert.is_positive and not self.tracker.has_open(symbol):
            outcome = await self.tracker.try_open(symbol, price, alert, trade, now)
            if outcome.position is not None:
                touched[outcome.position.id] = outcome.position
            alert = alert.with_trade(outcome)

        return alert

    def sweep(self, now: Optional[int] = None) -> List[str]:
        """Evict stale history. Uses the window of the last processed batch."""

        if self._last_detection is None:
            return []
        if now is None:
            now = self.clock.now_ms()

        evicted = self.history.sweep(now - self._last_detection.retention_ms)
        for symbol in evicted:
            self.detector.forget(symbol)
        return evicted

    def get_open_positions(self) -> List[Position]:
        return self.tracker.get_open_positions()
