from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from src.models.trade import Position


@dataclass(frozen=True)
class LedgerStats:
    balance: float
    realized_pnl: float
    unrealized_pnl: float
    total_pnl: float
    total_roi_percent: float
    wins: int
    losses: int
    closed: int
    active: int

    @property
    def win_rate(self) -> float:
        return (self.wins / self.closed) * 100.0 if self.closed else 0.0


@dataclass
class TradeLedger:
    """Caller-side history of every position the engine reported."""

    initial_balance: float = 1_000.0

    _positions: Dict[str, Position] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        if self.initial_balance <= 0:
            raise ValueError("initial_balance must be > 0")

    def record(self, positions: Iterable[Position]) -> None:
        # Newer snapshots replace older ones; a closed position is final.
        for position in positions:
            existing = self._positions.get(position.id)
            if existing is not None and not existing.is_open:
                continue
            self._positions[position.id] = position

    def get(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    def get_positions(self) -> List[Position]:
        return list(self._positions.values())

    def get_open_positions(self) -> List[Position]:
        return [p for p in self._positions.values() if p.is_open]

    def get_closed_positions(self) -> List[Position]:
        return [p for p in self._positions.values() if not p.is_open]

    def stats(self) -> LedgerStats:
        active = self.get_open_positions()
        closed = self.get_closed_positions()

        realized = sum(p.pnl for p in closed)
        unrealized = sum(p.pnl for p in active)
        total = realized + unrealized
        balance = self.initial_balance + total

        return LedgerStats(
            balance=balance,
            realized_pnl=realized,
            unrealized_pnl=unrealized,
            total_pnl=total,
            total_roi_percent=(total / self.initial_balance) * 100.0,
            wins=sum(1 for p in closed if p.status == "WON"),
            losses=sum(1 for p in closed if p.status == "LOST"),
            closed=len(closed),
            active=len(active),
        )
