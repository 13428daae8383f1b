from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    def now_ms(self) -> int:
        return int(time.time() * 1000)


@dataclass
class ManualClock:
    """Clock that only moves when told to. Used by tests and replays."""

    current_ms: int = 0

    def now_ms(self) -> int:
        return self.current_ms

    def advance(self, ms: int) -> int:
        if ms < 0:
            raise ValueError("ms must be >= 0")
        self.current_ms += ms
        return self.current_ms
