"""
Single-threaded discrete-event timeline on a ``simpy.Environment``.

Events run in timestamp order; events sharing a timestamp run in the order
they were scheduled (simpy orders its queue by time, priority and event id).
Time never moves backwards.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional
import itertools
import math

import simpy


class Timeline:
    """
    Schedule plain callables on a simpy environment.

    Parameters
    ----------
    start_s : float
        Initial simulation time in seconds.
    env : simpy.Environment, optional
        Environment to schedule on. A new one is created when omitted, so the
        timeline can share a clock with other simpy processes.
    """

    def __init__(self, start_s: float = 0.0, env: Optional[simpy.Environment] = None):
        self.env = simpy.Environment(initial_time=float(start_s)) if env is None else env
        self._ids = itertools.count()
        self._pending: Dict[int, simpy.events.Timeout] = {}
        self._executed = 0

    @property
    def now_s(self) -> float:
        return float(self.env.now)

    def now(self) -> float:
        """Current simulation time; usable directly as a facade clock."""
        return float(self.env.now)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def schedule(self, delay_s: float, action: Callable[..., Any], *args: Any) -> int:
        """Run ``action(*args)`` after ``delay_s`` seconds; returns an event id."""
        delay_s = float(delay_s)
        if math.isnan(delay_s) or delay_s < 0:
            raise ValueError(f"delay must be >= 0, got {delay_s}")
        event_id = next(self._ids)
        event = self.env.timeout(delay_s)
        event.callbacks.append(lambda _event: self._fire(event_id, action, args))
        self._pending[event_id] = event
        return event_id

    def schedule_at(self, time_s: float, action: Callable[..., Any], *args: Any) -> int:
        """Run ``action(*args)`` at absolute ``time_s``."""
        time_s = float(time_s)
        if math.isnan(time_s) or time_s < self.env.now:
            raise ValueError(f"cannot schedule at {time_s} s, now is {self.env.now} s")
        return self.schedule(time_s - self.env.now, action, *args)

    def cancel(self, event_id: int) -> bool:
        """Cancel a pending event. Returns False if it already ran or is unknown."""
        return self._pending.pop(event_id, None) is not None

    def _fire(self, event_id: int, action: Callable[..., Any], args: tuple) -> None:
        if self._pending.pop(event_id, None) is None:
            return
        action(*args)
        self._executed += 1

    def run(self, until_s: Optional[float] = None) -> int:
        """
        Execute events in order and return how many ran.

        With ``until_s`` events at or before ``until_s`` run and the clock then
        stops there; later events stay queued.
        """
        executed_before = self._executed
        if until_s is None:
            self.env.run()
        else:
            until_s = float(until_s)
            while self.env.peek() <= until_s:
                self.env.step()
            if until_s > self.env.now:
                self.env.run(until=until_s)
        return self._executed - executed_before
