"""Cooperative timers driven by the simulation clock.

Nothing here sleeps or spawns threads: the host calls ``advance(now)`` once
per frame and every due handler runs to completion before it returns.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[int], None]


@dataclass
class IntervalTimer:
    name: str
    interval_ms: int
    handler: Handler
    next_due: int
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class OneShotTimer:
    name: str
    due_at: int
    handler: Handler
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class Scheduler:
    _intervals: Dict[str, IntervalTimer] = field(default_factory=dict)
    _one_shots: Dict[str, OneShotTimer] = field(default_factory=dict)
    now: int = 0

    def every(self, name: str, interval_ms: int, handler: Handler, now: Optional[int] = None) -> IntervalTimer:
        """Run *handler* each *interval_ms*. Replaces any timer with the same name."""
        start = self.now if now is None else now
        self.cancel(name)
        timer = IntervalTimer(name=name, interval_ms=max(1, int(interval_ms)), handler=handler,
                              next_due=start + max(1, int(interval_ms)))
        self._intervals[name] = timer
        return timer

    def at(self, name: str, due_at: int, handler: Handler) -> OneShotTimer:
        self.cancel(name)
        timer = OneShotTimer(name=name, due_at=int(due_at), handler=handler)
        self._one_shots[name] = timer
        return timer

    def after(self, name: str, delay_ms: int, handler: Handler, now: Optional[int] = None) -> OneShotTimer:
        start = self.now if now is None else now
        return self.at(name, start + max(0, int(delay_ms)), handler)

    def cancel(self, name: str) -> bool:
        found = False
        interval = self._intervals.pop(name, None)
        if interval is not None:
            interval.cancel()
            found = True
        one_shot = self._one_shots.pop(name, None)
        if one_shot is not None:
            one_shot.cancel()
            found = True
        return found

    def pending(self) -> List[str]:
        return sorted(set(self._intervals) | set(self._one_shots))

    def advance(self, now: int) -> int:
        """Fire everything due at or before *now*. Returns the number of calls."""
        self.now = now
        calls = 0

        for name, timer in list(self._one_shots.items()):
            if timer.cancelled or timer.due_at > now:
                continue
            # Drop it before the call so the handler may schedule a successor
            # under the same name.
            if self._one_shots.get(name) is timer:
                del self._one_shots[name]
            timer.fired = True
            timer.handler(now)
            calls += 1

        for timer in list(self._intervals.values()):
            # An interval fires at most once per advance; missed periods are
            # skipped rather than replayed.
            if timer.cancelled or timer.next_due > now:
                continue
            timer.handler(now)
            calls += 1
            periods = (now - timer.next_due) // timer.interval_ms + 1
            timer.next_due += periods * timer.interval_ms

        return calls

    def clear_all(self) -> None:
        for timer in self._intervals.values():
            timer.cancel()
        for timer in self._one_shots.values():
            timer.cancel()
        self._intervals.clear()
        self._one_shots.clear()
        logger.debug("Scheduler cleared")
