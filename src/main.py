from __future__ import annotations

import asyncio
import os
import signal
import sys


if __package__ is None or __package__ == "":
    # Allow running via: python src/main.py
    sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from src.connectors.binance_connector import BinanceTickerStream
from src.connectors.futures_executor import BinanceFuturesExecutor
from src.core.config import Config
from src.logger.console_logger import ConsoleLogger
from src.services.surge_bot import SurgeBotService


async def surge_main() -> None:
    cfg = Config.load()
    cfg.validate()

    logger = ConsoleLogger(log_dir=cfg.log_dir, log_level=cfg.log_level)

    stream = BinanceTickerStream(
        url=cfg.stream_url,
        quote_asset=cfg.quote_asset,
        mock=cfg.mock_mode,
        logger=logger,
    )
    executor = BinanceFuturesExecutor(logger=logger)

    bot = SurgeBotService(stream, executor, cfg, logger)

    stop_event = asyncio.Event()

    def _request_stop() -> None:
        bot.stop()
        stop_event.set()

    def _reload_config() -> None:
        try:
            bot.update_config(Config.load(override=True))
        except ValueError as e:
            logger.log_error(f"Config reload rejected, keeping current settings: {e}")
            return
        logger.log_info("Config reloaded")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            # add_signal_handler is not available on some platforms.
            pass

    sighup = getattr(signal, "SIGHUP", None)
    if sighup is not None:
        try:
            loop.add_signal_handler(sighup, _reload_config)
        except NotImplementedError:
            pass

    task = asyncio.create_task(bot.start())

    await stop_event.wait()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


def main() -> None:
    asyncio.run(surge_main())


if __name__ == "__main__":
    main()
