"""
Per-command frequency limits.

Each throttled command owns a counter and the moment that counter expires.
The window opens with the first counted invocation and lasts the command's
cooldown; expiry is checked lazily on the next access, so no timers are left
running when a guild is reloaded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from kiracord.errors import FrequencyExceeded
from kiracord.util.logger import get_logger

logger = get_logger("throttle_cache")


@dataclass(slots=True)
class ThrottleWindow:
    count: int = 0
    expires_at: Optional[float] = None


class ThrottleCache:
    """Invocation counters keyed by canonical command name.

    Operators are never rejected but their invocations are still counted.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: Dict[str, ThrottleWindow] = {}

    def _window(self, command_name: str) -> ThrottleWindow:
        window = self._windows.setdefault(command_name, ThrottleWindow())
        if window.expires_at is not None and self._clock() >= window.expires_at:
            window.count = 0
            window.expires_at = None
        return window

    def count(self, command_name: str) -> int:
        return self._window(command_name).count

    def hit(self, command_name: str, maximum: int, cooldown_minutes: float, *, operator: bool = False) -> int:
        """Count one invocation of ``command_name``.

        Raises:
            FrequencyExceeded: If the window is full and the invoker is not an
                operator. The counter is left untouched in that case.

        Returns:
            The counter value after this invocation.
        """
        window = self._window(command_name)
        if window.count >= maximum and not operator:
            logger.debug("[THROTTLE] %s rejected (%d/%d)", command_name, window.count, maximum)
            raise FrequencyExceeded(command_name, maximum)

        if window.count == 0:
            window.expires_at = self._clock() + cooldown_minutes * 60.0
        window.count += 1
        return window.count

    def reset(self, command_name: str | None = None) -> None:
        """Zero one command's window, or every window when no name is given."""
        if command_name is None:
            self._windows.clear()
        else:
            self._windows.pop(command_name, None)

    def __len__(self) -> int:
        return len(self._windows)
