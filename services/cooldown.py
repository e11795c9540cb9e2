"""Per-key cooldown tracking for side-effecting actions."""

from __future__ import annotations

import math
import threading
import time
from typing import Callable


class ResendCooldown:
    """Track the last time an action ran for a key and enforce a minimum gap.

    State lives in process memory only; a restart clears every cooldown.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self.clock = clock
        self._last_sent: dict[str, float] = {}
        self._lock = threading.Lock()

    def remaining(self, key: str) -> int:
        """Return whole seconds left before ``key`` may fire again (0 if ready)."""

        with self._lock:
            last = self._last_sent.get(key)
        if last is None:
            return 0
        left = self.seconds - (self.clock() - last)
        return max(0, math.ceil(left))

    def mark(self, key: str) -> None:
        with self._lock:
            self._last_sent[key] = self.clock()

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._last_sent.clear()
            else:
                self._last_sent.pop(key, None)
