from __future__ import annotations

import asyncio
import json
import random
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from src.models.market import Tick


class Logger(Protocol):
    def log_warning(self, message: str) -> None: ...


def parse_mini_ticker(payload: Dict[str, Any]) -> Tick:
    """Convert one `!miniTicker@arr` entry into a Tick.

    Numbers arrive as strings; anything that is not a clean number raises
    ValueError instead of leaking NaN into the engine.
    """

    if not isinstance(payload, dict):
        raise ValueError("mini ticker entry must be an object")

    symbol = payload.get("s")
    if not isinstance(symbol, str) or not symbol:
        raise ValueError("mini ticker entry has no symbol")

    try:
        price = float(payload["c"])
        volume = float(payload["q"])
        event_time = int(payload.get("E", 0))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"malformed mini ticker for {symbol}: {e}") from e

    return Tick(symbol=symbol, last_price=price, quote_volume=volume, event_time=event_time)


@dataclass
class BinanceTickerStream:
    """Yields batches of ticks from the all-market mini ticker stream.

    In mock mode a handful of symbols random-walk locally, one batch per
    `mock_interval_seconds`.
    """

    url: str = "wss://stream.binance.com:9443/ws/!miniTicker@arr"
    quote_asset: str = "USDT"
    mock: bool = True
    mock_interval_seconds: float = 1.0
    logger: Optional[Logger] = None

    _mock_prices: Dict[str, float] = field(
        default_factory=lambda: {
            "BTCUSDT": 65_000.0,
            "ETHUSDT": 3_200.0,
            "SOLUSDT": 150.0,
            "DOGEUSDT": 0.15,
            "PEPEUSDT": 0.00001,
        },
        init=False,
        repr=False,
    )

    def parse_batch(self, raw: str | bytes) -> List[Tick]:
        data = json.loads(raw)
        if not isinstance(data, list):
            return []

        ticks: List[Tick] = []
        skipped = 0
        for entry in data:
            symbol = entry.get("s") if isinstance(entry, dict) else None
            if not isinstance(symbol, str) or not symbol.endswith(self.quote_asset):
                continue
            try:
                ticks.append(parse_mini_ticker(entry))
            except ValueError:
                skipped += 1

        if skipped and self.logger:
            self.logger.log_warning(f"Skipped {skipped} malformed ticker entries")
        return ticks

    async def batches(self) -> AsyncIterator[List[Tick]]:
        if self.mock:
            async for batch in self._mock_batches():
                yield batch
            return

        import websockets

        async with websockets.connect(self.url, ping_interval=20) as ws:
            async for raw in ws:
                batch = self.parse_batch(raw)
                if batch:
                    yield batch

    async def _mock_batches(self) -> AsyncIterator[List[Tick]]:
        while True:
            ts = int(time.time() * 1000)
            batch: List[Tick] = []
            for symbol, price in self._mock_prices.items():
                price *= 1.0 + random.uniform(-0.004, 0.0045)
                self._mock_prices[symbol] = price
                batch.append(
                    Tick(
                        symbol=symbol,
                        last_price=price,
                        quote_volume=random.uniform(5e5, 5e8),
                        event_time=ts,
                    )
                )
            yield batch
            await asyncio.sleep(self.mock_interval_seconds)
