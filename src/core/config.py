from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def _getenv_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class DetectionConfig:
    """Snapshot of the surge-detection settings applied to one batch."""

    time_window_seconds: int = 60
    percentage_threshold: float = 3.0
    min_volume_usdt: float = 1_000_000.0

    def __post_init__(self) -> None:
        self.validate()

    @property
    def window_ms(self) -> int:
        return int(self.time_window_seconds * 1000)

    @property
    def retention_ms(self) -> int:
        return 2 * self.window_ms

    def validate(self) -> None:
        if self.time_window_seconds <= 0:
            raise ValueError("TIME_WINDOW_SECONDS must be > 0")
        if self.percentage_threshold <= 0:
            raise ValueError("PERCENTAGE_THRESHOLD must be > 0")
        if self.min_volume_usdt < 0:
            raise ValueError("MIN_VOLUME_USDT must be >= 0")


@dataclass(frozen=True)
class TradeConfig:
    enabled: bool = False
    simulation_mode: bool = True
    position_size_usdt: float = 100.0
    leverage: float = 10.0
    take_profit_percent: float = 6.0
    stop_loss_percent: float = 3.0
    cooldown_hours: float = 1.0
    initial_balance: float = 1_000.0

    # Passed through to the execution capability only.
    api_key: str = field(default="", repr=False)
    api_secret: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        self.validate()

    @property
    def cooldown_ms(self) -> int:
        return int(self.cooldown_hours * 3_600_000)

    def validate(self) -> None:
        if self.position_size_usdt <= 0:
            raise ValueError("POSITION_SIZE_USDT must be > 0")
        if self.leverage <= 0:
            raise ValueError("LEVERAGE must be > 0")
        if self.take_profit_percent <= 0:
            raise ValueError("TAKE_PROFIT_PERCENT must be > 0")
        if self.stop_loss_percent <= 0:
            raise ValueError("STOP_LOSS_PERCENT must be > 0")
        if self.cooldown_hours < 0:
            raise ValueError("COOLDOWN_HOURS must be >= 0")
        if self.initial_balance <= 0:
            raise ValueError("INITIAL_BALANCE must be > 0")


@dataclass(frozen=True)
class Config:
    binance_api_key: str
    binance_api_secret: str
    stream_url: str
    quote_asset: str

    time_window_seconds: int
    percentage_threshold: float
    min_volume_usdt: float

    trading_enabled: bool
    simulation_mode: bool
    position_size_usdt: float
    leverage: float
    take_profit_percent: float
    stop_loss_percent: float
    cooldown_hours: float
    initial_balance: float

    max_history_length: int
    sweep_interval_ms: int
    execution_timeout_seconds: float
    max_alerts: int
    reconnect_delay_seconds: float

    mock_mode: bool
    log_level: str
    log_dir: str

    @classmethod
    def load(cls, dotenv_path: Optional[str] = None, override: bool = False) -> "Config":
        load_dotenv(dotenv_path=dotenv_path, override=override)

        return cls(
            binance_api_key=os.getenv("BINANCE_API_KEY", ""),
            binance_api_secret=os.getenv("BINANCE_API_SECRET", ""),
            stream_url=os.getenv("STREAM_URL", "wss://stream.binance.com:9443/ws/!miniTicker@arr"),
            quote_asset=os.getenv("QUOTE_ASSET", "USDT"),
            time_window_seconds=_getenv_int("TIME_WINDOW_SECONDS", 60),
            percentage_threshold=_getenv_float("PERCENTAGE_THRESHOLD", 3.0),
            min_volume_usdt=_getenv_float("MIN_VOLUME_USDT", 1_000_000.0),
            trading_enabled=_getenv_bool("TRADING_ENABLED", False),
            simulation_mode=_getenv_bool("SIMULATION_MODE", True),
            position_size_usdt=_getenv_float("POSITION_SIZE_USDT", 100.0),
            leverage=_getenv_float("LEVERAGE", 10.0),
            take_profit_percent=_getenv_float("TAKE_PROFIT_PERCENT", 6.0),
            stop_loss_percent=_getenv_float("STOP_LOSS_PERCENT", 3.0),
            cooldown_hours=_getenv_float("COOLDOWN_HOURS", 1.0),
            initial_balance=_getenv_float("INITIAL_BALANCE", 1_000.0),
            max_history_length=_getenv_int("MAX_HISTORY_LENGTH", 120),
            sweep_interval_ms=_getenv_int("SWEEP_INTERVAL_MS", 10_000),
            execution_timeout_seconds=_getenv_float("EXECUTION_TIMEOUT_SECONDS", 10.0),
            max_alerts=_getenv_int("MAX_ALERTS", 50),
            reconnect_delay_seconds=_getenv_float("RECONNECT_DELAY_SECONDS", 3.0),
            mock_mode=_getenv_bool("MOCK_MODE", True),
            log_level=os.getenv("LOG_LEVEL", "info"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )

    def validate(self) -> None:
        self.detection_config()
        self.trade_config()
        if self.max_history_length <= 0:
            raise ValueError("MAX_HISTORY_LENGTH must be > 0")
        if self.sweep_interval_ms <= 0:
            raise ValueError("SWEEP_INTERVAL_MS must be > 0")
        if self.execution_timeout_seconds <= 0:
            raise ValueError("EXECUTION_TIMEOUT_SECONDS must be > 0")
        if self.max_alerts <= 0:
            raise ValueError("MAX_ALERTS must be > 0")
        if self.reconnect_delay_seconds < 0:
            raise ValueError("RECONNECT_DELAY_SECONDS must be >= 0")
        if not self.quote_asset:
            raise ValueError("QUOTE_ASSET must not be empty")

    def detection_config(self) -> DetectionConfig:
        return DetectionConfig(
            time_window_seconds=self.time_window_seconds,
            percentage_threshold=self.percentage_threshold,
            min_volume_usdt=self.min_volume_usdt,
        )

    def trade_config(self) -> TradeConfig:
        return TradeConfig(
            enabled=self.trading_enabled,
            simulation_mode=self.simulation_mode,
            position_size_usdt=self.position_size_usdt,
            leverage=self.leverage,
            take_profit_percent=self.take_profit_percent,
            stop_loss_percent=self.stop_loss_percent,
            cooldown_hours=self.cooldown_hours,
            initial_balance=self.initial_balance,
            api_key=self.binance_api_key,
            api_secret=self.binance_api_secret,
        )
