import pytest

from src.core.ledger import TradeLedger
from src.models.trade import Position


def _position(pid: str, symbol: str = "FOOUSDT") -> Position:
    return Position(id=pid, symbol=symbol, entry_price=100.0, notional_usdt=100.0, leverage=10.0, opened_at=0)


def test_stats_split_realized_and_unrealized() -> None:
    ledger = TradeLedger(initial_balance=1_000.0)

    won = _position("a").marked(106.0).closed("WON", 106.0, 10)
    lost = _position("b").marked(97.0).closed("LOST", 97.0, 10)
    running = _position("c").marked(101.0)
    ledger.record([won, lost, running])

    stats = ledger.stats()

    assert stats.realized_pnl == pytest.approx(6.0 - 3.0)
    assert stats.unrealized_pnl == pytest.approx(1.0)
    assert stats.total_pnl == pytest.approx(4.0)
    assert stats.balance == pytest.approx(1_004.0)
    assert stats.total_roi_percent == pytest.approx(0.4)
    assert stats.wins == 1
    assert stats.losses == 1
    assert stats.closed == 2
    assert stats.active == 1
    assert stats.win_rate == pytest.approx(50.0)


def test_newer_snapshot_replaces_older_but_closed_is_final() -> None:
    ledger = TradeLedger()
    pos = _position("a")

    ledger.record([pos])
    ledger.record([pos.marked(102.0)])
    assert ledger.get("a").roi_percent == pytest.approx(20.0)

    final = pos.marked(110.0).closed("WON", 110.0, 5)
    ledger.record([final])
    ledger.record([pos.marked(90.0)])

    assert ledger.get("a") == final
    assert ledger.get_open_positions() == []


def test_empty_ledger_has_zero_win_rate() -> None:
    stats = TradeLedger(initial_balance=500.0).stats()
    assert stats.win_rate == 0.0
    assert stats.balance == 500.0


def test_ledger_rejects_non_positive_balance() -> None:
    with pytest.raises(ValueError):
        TradeLedger(initial_balance=0)
