"""Background thread that drives viva timers once per second."""

from __future__ import annotations

from collections.abc import Callable
import logging
from threading import Event, Thread

from viva_portal.constants.viva_constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class SessionTicker:
    """Calls ``on_tick`` every interval until stopped."""

    def __init__(self, on_tick: Callable[[], None], interval_seconds: float = TICK_INTERVAL_SECONDS) -> None:
        self._on_tick = on_tick
        self._interval = interval_seconds
        self._stop_event = Event()
        self._thread: Thread | None = None

    def start(self) -> Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop_event.clear()
        self._thread = Thread(target=self._run, name="VivaSessionTicker", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._on_tick()
            except Exception:
                # one bad tick must not stop every other viva clock
                logger.exception("Viva tick failed")
