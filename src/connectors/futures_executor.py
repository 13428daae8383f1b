from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from src.core.config import TradeConfig
from src.models.trade import ExecutionResult


class Logger(Protocol):
    def log_info(self, message: str) -> None: ...

    def log_error(self, message: str) -> None: ...


@dataclass
class BinanceFuturesExecutor:
    """Opens a long on USDT-M futures, or pretends to in simulation mode.

    Exchange calls go through ccxt and run in a worker thread so the event
    loop keeps serving other symbols while an order is in flight.
    """

    logger: Optional[Logger] = None

    _exchange: Any = field(default=None, init=False, repr=False)
    _exchange_key: str = field(default="", init=False, repr=False)

    async def execute(self, symbol: str, price: float, config: TradeConfig) -> ExecutionResult:
        if config.simulation_mode:
            if self.logger:
                self.logger.log_info(
                    f"[SIMULATION] Long {symbol} @ {price} size={config.position_size_usdt} USDT "
                    f"lev={config.leverage:g}x TP=+{config.take_profit_percent}% SL=-{config.stop_loss_percent}%"
                )
            return ExecutionResult(success=True, message="Simulation: Trade Executed")

        if not config.api_key or not config.api_secret:
            return ExecutionResult(success=False, message="API Keys missing")

        try:
            return await asyncio.to_thread(self._open_long, symbol, price, config)
        except Exception as e:
            if self.logger:
                self.logger.log_error(f"Order for {symbol} failed: {e}")
            return ExecutionResult(success=False, message=str(e) or type(e).__name__)

    def _client(self, config: TradeConfig) -> Any:
        if self._exchange is None or self._exchange_key != config.api_key:
            import ccxt

            self._exchange = ccxt.binanceusdm(
                {
                    "enableRateLimit": True,
                    "apiKey": config.api_key,
                    "secret": config.api_secret,
                }
            )
            self._exchange.load_markets()
            self._exchange_key = config.api_key
        return self._exchange

    def _open_long(self, symbol: str, price: float, config: TradeConfig) -> ExecutionResult:
        exchange = self._client(config)
        markets = exchange.markets_by_id.get(symbol)
        if not markets:
            return ExecutionResult(success=False, message=f"{symbol} not listed on USDT-M futures")
        market_symbol = markets[0]["symbol"]

        exchange.set_leverage(int(config.leverage), market_symbol)

        quantity = float(exchange.amount_to_precision(market_symbol, config.position_size_usdt / price))
        if quantity <= 0:
            return ExecutionResult(success=False, message="Calculated quantity too small")

        exchange.create_order(market_symbol, "market", "buy", quantity)

        tp_price = float(exchange.price_to_precision(market_symbol, price * (1 + config.take_profit_percent / 100)))
        sl_price = float(exchange.price_to_precision(market_symbol, price * (1 - config.stop_loss_percent / 100)))

        # The entry is already filled; protective orders failing is only a warning.
        try:
            exchange.create_order(
                market_symbol, "limit", "sell", quantity, tp_price,
                {"timeInForce": "GTC", "reduceOnly": True},
            )
            exchange.create_order(
                market_symbol, "STOP_MARKET", "sell", quantity, None,
                {"stopPrice": sl_price, "reduceOnly": True},
            )
        except Exception as e:
            if self.logger:
                self.logger.log_error(f"TP/SL placement for {symbol} failed: {e}")

        return ExecutionResult(success=True, message=f"Long Open @ {price}. TP: {tp_price}, SL: {sl_price}")
