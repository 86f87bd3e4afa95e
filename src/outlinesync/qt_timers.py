"""Qt timer backend for hosts running a Qt event loop (``qt`` extra)."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QElapsedTimer, QObject, QTimer

__all__ = ["QtTimers"]


class _QtHandle:
    __slots__ = ("_timer",)

    def __init__(self, timer: QTimer) -> None:
        self._timer: QTimer | None = timer

    def cancel(self) -> None:
        timer = self._timer
        if timer is None:
            return
        self._timer = None
        timer.stop()
        timer.deleteLater()


class QtTimers:
    """One-shot :class:`QTimer` callbacks with a monotonic clock."""

    def __init__(self, parent: QObject | None = None) -> None:
        self._parent = parent
        self._clock = QElapsedTimer()
        self._clock.start()

    def now(self) -> float:
        return self._clock.elapsed() / 1000.0

    def call_later(self, delay: float, callback: Callable[[], None]) -> _QtHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        handle = _QtHandle(timer)

        def _fire() -> None:
            handle.cancel()
            callback()

        timer.timeout.connect(_fire)
        timer.start(max(0, int(round(delay * 1000))))
        return handle
