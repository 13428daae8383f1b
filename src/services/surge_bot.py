from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import AsyncIterator, Deque, List, Protocol

from src.core.config import Config
from src.core.ledger import LedgerStats, TradeLedger
from src.core.position_tracker import TradeExecutor
from src.core.surge_engine import BatchResult, SurgeEngine
from src.models.alert import AlertEvent
from src.models.market import Tick
from src.models.trade import Position


class TickStream(Protocol):
    def batches(self) -> AsyncIterator[List[Tick]]: ...


class Logger(Protocol):
    def log_debug(self, message: str) -> None: ...
    def log_info(self, message: str) -> None: ...
    def log_warning(self, message: str) -> None: ...
    def log_error(self, message: str) -> None: ...
    def log_alert(self, alert: AlertEvent) -> None: ...
    def log_trade_opened(self, position: Position) -> None: ...
    def log_trade_failed(self, symbol: str, message: str) -> None: ...
    def log_position_update(self, position: Position) -> None: ...
    def log_trade_closed(self, position: Position, stats: LedgerStats) -> None: ...
    def log_sweep(self, evicted: int, tracked: int) -> None: ...
    def log_summary(self, stats: LedgerStats) -> None: ...


@dataclass
class SurgeBotService:
    stream: TickStream
    executor: TradeExecutor
    config: Config
    logger: Logger

    engine: SurgeEngine = field(init=False)
    ledger: TradeLedger = field(init=False)

    _running: bool = field(default=False, init=False)
    _alerts: Deque[AlertEvent] = field(init=False, repr=False)
    _stop_event: asyncio.Event | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.engine = SurgeEngine(
            self.executor,
            max_history_length=self.config.max_history_length,
            execution_timeout_seconds=self.config.execution_timeout_seconds,
            logger=self.logger,
        )
        self.ledger = TradeLedger(initial_balance=self.config.initial_balance)
        self._alerts = deque(maxlen=self.config.max_alerts)

    async def start(self) -> None:
        self._running = True
        self._stop_event = asyncio.Event()

        detection = self.config.detection_config()
        trade = self.config.trade_config()
        self.logger.log_info(
            f"Watching {self.config.quote_asset} pairs | {detection.percentage_threshold}% in "
            f"{detection.time_window_seconds}s | min vol {detection.min_volume_usdt:,.0f} | "
            f"trading={trade.enabled} simulation={trade.simulation_mode} mock={self.config.mock_mode}"
        )

        sweeper = asyncio.create_task(self._sweep_loop())
        try:
            while self._running:
                try:
                    await self.consume()
                except Exception as e:
                    self.logger.log_error(f"stream error: {e}")

                if not self._running:
                    break
                self.logger.log_info(f"Disconnected. Reconnecting in {self.config.reconnect_delay_seconds:g}s...")
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.config.reconnect_delay_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass

    async def consume(self) -> None:
        async for batch in self.stream.batches():
            if not self._running:
                break
            result = await self.engine.process_batch(
                batch,
                self.config.detection_config(),
                self.config.trade_config(),
            )
            self.handle_result(result)

    def handle_result(self, result: BatchResult) -> None:
        opened = {p.id for p in result.positions if self.ledger.get(p.id) is None}
        if result.positions_changed:
            self.ledger.record(result.positions)

        for position in result.positions:
            # Opened and closed within one batch still gets both lines.
            if position.id in opened:
                self.logger.log_trade_opened(position)
            elif position.is_open:
                self.logger.log_position_update(position)
            if not position.is_open:
                self.logger.log_trade_closed(position, self.ledger.stats())

        for alert in result.alerts:
            self._alerts.appendleft(alert)
            self.logger.log_alert(alert)
            if alert.trade_status == "FAILED":
                self.logger.log_trade_failed(alert.symbol, alert.trade_message or "")

        if result.anomalies:
            self.logger.log_debug(f"Rejected {len(result.anomalies)} ticks in batch")

    def sweep(self) -> List[str]:
        evicted = self.engine.sweep()
        self.logger.log_sweep(len(evicted), len(self.engine.history))
        return evicted

    async def _sweep_loop(self) -> None:
        interval = self.config.sweep_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception as e:
                self.logger.log_error(f"sweep error: {e}")

    def update_config(self, config: Config) -> None:
        """Swap in new detection/trade settings; they apply from the next batch on.

        An invalid config raises ValueError and the current one stays in effect.
        """

        config.validate()
        self.config = config

    def stop(self) -> None:
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        self.logger.log_info("Stopping bot...")
        self.logger.log_summary(self.ledger.stats())

    def get_alerts(self) -> List[AlertEvent]:
        return list(self._alerts)

    def get_stats(self) -> LedgerStats:
        return self.ledger.stats()
