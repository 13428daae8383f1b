from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Protocol, Set

from src.core.config import TradeConfig
from src.models.alert import AlertEvent
from src.models.trade import ExecutionResult, Position, TradeOutcome


class TradeExecutor(Protocol):
    async def execute(self, symbol: str, price: float, config: TradeConfig) -> ExecutionResult: ...


class Logger(Protocol):
    def log_error(self, message: str) -> None: ...


@dataclass
class PositionTracker:
    """At most one open long per symbol, marked to market on every tick.

    Positions are frozen snapshots; every recompute stores a new object, so
    callers should take the returned snapshot rather than hold on to an old one.
    """

    executor: TradeExecutor
    execution_timeout_seconds: float = 10.0
    logger: Optional[Logger] = None

    _open: Dict[str, Position] = field(default_factory=dict, init=False, repr=False)
    _last_trade: Dict[str, int] = field(default_factory=dict, init=False, repr=False)
    _pending: Set[str] = field(default_factory=set, init=False, repr=False)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), init=False, repr=False)

    def has_open(self, symbol: str) -> bool:
        return symbol in self._open or symbol in self._pending

    def get_open_position(self, symbol: str) -> Optional[Position]:
        return self._open.get(symbol)

    def get_open_positions(self) -> List[Position]:
        return list(self._open.values())

    def update_open_position(
        self,
        symbol: str,
        current_price: float,
        config: TradeConfig,
        now: int,
    ) -> Optional[Position]:
        """Re-mark the open position; returns the new snapshot if anything changed."""

        position = self._open.get(symbol)
        if position is None:
            return None

        updated = position.marked(current_price)

        if updated.roi_percent >= config.take_profit_percent:
            updated = updated.closed("WON", current_price, now)
        elif updated.roi_percent <= -config.stop_loss_percent:
            updated = updated.closed("LOST", current_price, now)

        if updated.is_open:
            if updated == position:
                return None
            self._open[symbol] = updated
        else:
            del self._open[symbol]
        return updated

    async def try_open(
        self,
        symbol: str,
        price: float,
        alert: AlertEvent,
        config: TradeConfig,
        now: int,
    ) -> TradeOutcome:
        if self.has_open(symbol):
            return TradeOutcome(status="NONE", message="Position already open")

        last_trade = self._last_trade.get(symbol)
        if last_trade is not None and now - last_trade < config.cooldown_ms:
            return TradeOutcome(status="NONE", message="Trade cooldown active")

        self._pending.add(symbol)
        try:
            result = await self._execute(symbol, price, config)
        finally:
            self._pending.discard(symbol)

        if not result.success:
            return TradeOutcome(status="FAILED", message=result.message)

        self._last_trade[symbol] = now
        position = Position(
            id=f"{symbol}-{next(self._ids)}-{alert.timestamp}",
            symbol=symbol,
            entry_price=price,
            notional_usdt=config.position_size_usdt,
            leverage=config.leverage,
            opened_at=now,
            simulated=config.simulation_mode,
        )
        self._open[symbol] = position
        return TradeOutcome(
            status="SIMULATED" if config.simulation_mode else "EXECUTED",
            message=result.message,
            position=position,
        )

    async def _execute(self, symbol: str, price: float, config: TradeConfig) -> ExecutionResult:
        try:
            return await asyncio.wait_for(
                self.executor.execute(symbol, price, config),
                timeout=self.execution_timeout_seconds,
            )
        except asyncio.TimeoutError:
            message = f"Execution timed out after {self.execution_timeout_seconds:.1f}s"
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            message = "Execution cancelled"
        except Exception as e:
            message = f"Execution error: {e}"

        if self.logger:
            self.logger.log_error(f"Trade on {symbol} failed: {message}")
        return ExecutionResult(success=False, message=message)
