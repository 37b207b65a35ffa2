"""A status label that shows queued messages for a while, then a default message.

Call :meth:`LabelQueue.pulse` regularly; each pulse advances the queue
according to the clock, which counts milliseconds.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

__all__ = ["LabelMessage", "LabelQueue"]

Clock = Callable[[], int]
Listener = Callable[["LabelQueue"], None]


def _milliseconds() -> int:
    return int(time.monotonic() * 1000)


@dataclass
class LabelMessage:
    """A coloured line of text."""

    text: str = ""
    colour: Any = None


@dataclass
class _Queued:
    message: LabelMessage
    timeout: int
    stamp: int | None = None


class LabelQueue:
    """A default message plus a queue of messages shown one after another."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _milliseconds
        self._lock = threading.RLock()
        self._default = LabelMessage()
        self._current = self._default
        self._queue: deque[_Queued] = deque()
        self._listener: Listener | None = None
        self._prefix = ""

    def set_default_message(self, message: str, colour: Any) -> None:
        with self._lock:
            self._default.text = message
            self._default.colour = colour

    def push_message(self, message: str, colour: Any, timeout: int) -> None:
        """Queue a message to be shown for ``timeout`` milliseconds."""
        with self._lock:
            self._queue.append(_Queued(LabelMessage(message, colour), int(timeout)))

    def set_default_prefix(self, prefix: str) -> None:
        with self._lock:
            self._prefix = prefix

    def pulse(self) -> None:
        """Show the next message, expire the shown one, or fall back to the default."""
        with self._lock:
            self._update()

    def _update(self) -> None:
        if self._queue:
            now = self._clock()
            front = self._queue[0]
            if front.stamp is None:
                self._current = front.message
                front.stamp = self._clock()
                self._notify()
                return
            if now > front.stamp + front.timeout:
                self._queue.popleft()
                self._notify()
                if self._queue:
                    front = self._queue[0]
                    if front.stamp is None:
                        self._current = front.message
                        front.stamp = now
                    return
            else:
                return
        self._current = self._default

    def _notify(self) -> None:
        if self._listener is not None:
            self._listener(self)

    def current(self) -> tuple[str, Any]:
        """The text and colour of the message shown now, without the prefix."""
        with self._lock:
            return self._current.text, self._current.colour

    def text(self) -> str:
        """The full text shown now: the prefix followed by the current message."""
        with self._lock:
            return self._prefix + self._current.text

    def add_listener(self, listener: Listener) -> None:
        """Set the one listener called with the queue when the shown message changes."""
        with self._lock:
            self._listener = listener

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listener = None