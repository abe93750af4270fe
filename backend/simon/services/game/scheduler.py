import heapq
import itertools
import logging
from typing import Callable, List, Tuple

from simon import socketio


logger = logging.getLogger(__name__)


class TimerHandle:
    """A pending callback. Cancelling it guarantees the callback never runs."""

    def __init__(self, delay_ms: int):
        self.delay_ms = delay_ms
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class SocketIOScheduler:
    """Runs each timer as a Socket.IO background task.

    Works with whatever async mode the server runs under (threads, eventlet,
    gevent) because it sleeps through ``socketio.sleep``.
    """

    def __init__(self, sio=None):
        self._sio = sio or socketio

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay_ms)

        def _worker():
            self._sio.sleep(max(0, delay_ms) / 1000.0)
            if handle.cancelled:
                logger.debug(f"[timer-abort] delay={delay_ms}ms cancelled before firing")
                return
            handle.fired = True
            try:
                callback()
            except Exception:
                logger.exception(f"[timer-error] delay={delay_ms}ms callback failed")

        self._sio.start_background_task(_worker)
        return handle


class ManualScheduler:
    """Virtual clock. Nothing fires until :meth:`advance` moves time forward.

    Timers due at the same instant fire in the order they were scheduled;
    callbacks may schedule further timers, which fire within the same
    ``advance`` call when they fall inside the window.
    """

    def __init__(self):
        self.now = 0
        self._queue: List[Tuple[int, int, TimerHandle, Callable[[], None]]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(delay_ms)
        due = self.now + max(0, delay_ms)
        heapq.heappush(self._queue, (due, next(self._counter), handle, callback))
        return handle

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = due
            if handle.cancelled:
                continue
            handle.fired = True
            callback()
        self.now = target

    def pending_count(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if handle.pending)


def create_scheduler(kind: str):
    if kind == 'manual':
        return ManualScheduler()
    if kind == 'socketio':
        return SocketIOScheduler()
    raise ValueError(f"Unknown GAME_SCHEDULER: {kind!r}")
