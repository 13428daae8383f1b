from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from src.core.ledger import LedgerStats
from src.models.alert import AlertEvent
from src.models.trade import Position


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _ts() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _usd(x: float) -> str:
    return f"${x:,.2f}"


def _vol(x: float) -> str:
    if x >= 1_000_000:
        return f"{x / 1_000_000:.1f}M"
    if x >= 1_000:
        return f"{x / 1_000:.1f}K"
    return f"{x:.0f}"


@dataclass
class ConsoleLogger:
    log_dir: str = "logs"
    log_file: str = "bot.log"
    log_level: str = "info"

    console: Console = field(default_factory=lambda: Console(encoding="utf-8"), init=False)
    file_logger: logging.Logger = field(default_factory=lambda: logging.getLogger("surge"), init=False)

    def __post_init__(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

        self.level = _LEVELS.get(self.log_level.strip().lower(), logging.INFO)
        self.file_logger.setLevel(self.level)
        self.file_logger.propagate = False
        self.file_logger.handlers.clear()

        fh = logging.FileHandler(
            os.path.join(self.log_dir, self.log_file),
            encoding='utf-8'
        )
        fh.setLevel(self.level)
        fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        self.file_logger.addHandler(fh)

        self._print_header()

    def _print_header(self) -> None:
        title = Text("SURGE WATCH - BINANCE SPOT MOVERS", style="bold cyan")
        self.console.print(Panel(title, expand=False, border_style="cyan"))

    def _log(self, message: str, *, level: int = logging.INFO, style: Optional[str] = None) -> None:
        if level < self.level:
            return
        prefix = f"[{_ts()}] "
        if style:
            self.console.print(prefix + message, style=style)
        else:
            self.console.print(prefix + message)
        self.file_logger.log(level, message)

    def log_alert(self, alert: AlertEvent) -> None:
        arrow = "🚀" if alert.is_positive else "🔻"
        style = "bold green" if alert.is_positive else "bold red"
        msg = (
            f"{arrow} {alert.symbol} {alert.percentage_change:+.2f}% "
            f"{alert.price_before:.8g} → {alert.price_now:.8g} vol={_vol(alert.volume)}"
        )
        if alert.trade_status:
            msg += f" | trade={alert.trade_status} {alert.trade_message or ''}".rstrip()
        self._log(msg, style=style)

    def log_trade_opened(self, position: Position) -> None:
        mode = "SIM" if position.simulated else "LIVE"
        self._log(
            f"✅ TRADE OPENED [{mode}] | {position.symbol} @ {position.entry_price:.8g} "
            f"size={_usd(position.notional_usdt)} lev={position.leverage:g}x",
            style="bold green",
        )

    def log_trade_failed(self, symbol: str, message: str) -> None:
        self._log(f"❌ TRADE FAILED | {symbol} | {message}", level=logging.ERROR, style="bold red")

    def log_position_update(self, position: Position) -> None:
        style = "green" if position.pnl >= 0 else "red"
        self._log(
            f"📈 {position.symbol} | roi={position.roi_percent:+.2f}% uPnL={_usd(position.pnl)}",
            level=logging.DEBUG,
            style=style,
        )

    def log_trade_closed(self, position: Position, stats: LedgerStats) -> None:
        style = "bold green" if position.status == "WON" else "bold red"
        self._log(
            f"🏁 TRADE CLOSED | {position.symbol} {position.status} @ {position.close_price:.8g} "
            f"roi={position.roi_percent:+.2f}% pnl={_usd(position.pnl)} balance={_usd(stats.balance)}",
            style=style,
        )

    def log_sweep(self, evicted: int, tracked: int) -> None:
        self._log(f"🧹 Sweep evicted {evicted} stale pairs | tracking {tracked}", level=logging.DEBUG)

    def log_debug(self, message: str) -> None:
        self._log(message, level=logging.DEBUG, style="dim")

    def log_info(self, message: str) -> None:
        self._log(message)

    def log_warning(self, message: str) -> None:
        self._log(f"⚠️ {message}", level=logging.WARNING, style="yellow")

    def log_error(self, message: str) -> None:
        self._log(f"❌ {message}", level=logging.ERROR, style="bold red")

    def log_summary(self, stats: LedgerStats) -> None:
        self._log(
            f"📌 SUMMARY | trades={stats.closed + stats.active} wins={stats.wins} losses={stats.losses} "
            f"win_rate={stats.win_rate:.0f}% pnl={_usd(stats.total_pnl)} "
            f"roi={stats.total_roi_percent:+.2f}% balance={_usd(stats.balance)}",
            style="bold cyan",
        )
