# debounce.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Any, Callable, Optional
import threading

_NOTHING = object()


class Debouncer:
    """
    Delivers the latest pushed value to ``callback`` once no new value has
    arrived for ``delay_ms`` milliseconds. A new push supersedes (does not merge)
    whatever was still waiting.

        d = Debouncer(500, on_value)
        d.push("{")
        d.push("{}")   # only "{}" reaches on_value, 500ms after this call
    """

    def __init__(self, delay_ms: int = 500, callback: Optional[Callable[[Any], None]] = None):
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.delay_ms = delay_ms
        self.callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._value: Any = _NOTHING
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._value is not _NOTHING

    def push(self, value: Any):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._value = value
            self._timer = threading.Timer(self.delay_ms / 1000.0, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            self._value = _NOTHING

    def flush(self) -> bool:
        """Deliver a pending value now. Returns False if nothing was waiting."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            value, self._value = self._value, _NOTHING
        if value is _NOTHING:
            return False
        self._deliver(value)
        return True

    def _fire(self, generation: int):
        with self._lock:
            # a timer that lost the race with push()/cancel() must not deliver
            if generation != self._generation or self._value is _NOTHING:
                return
            value, self._value = self._value, _NOTHING
            self._timer = None
        self._deliver(value)

    def _deliver(self, value: Any):
        if self.callback is not None:
            self.callback(value)
