"""
Online/offline tracking with a stabilization delay before syncing.
"""
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Tracks connectivity and fires on_reconnect once the connection has stayed
    up for stabilization_delay seconds after an offline to online transition.

    Going offline before the delay elapses cancels the pending trigger, and
    repeated online signals never stack timers.
    """

    def __init__(
        self,
        on_reconnect: Callable[[], Any],
        stabilization_delay: float = 2.0,
        online: bool = True,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.on_reconnect = on_reconnect
        self.stabilization_delay = stabilization_delay
        self.timer_factory = timer_factory
        self._online = online
        self._timer: Optional[Any] = None
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        return self._online

    @property
    def reconnect_pending(self) -> bool:
        return self._timer is not None

    def set_online(self, online: bool) -> None:
        with self._lock:
            was_online = self._online
            self._online = online

            if not online:
                if was_online:
                    logger.info("Connection lost")
                self._cancel_timer()
                return

            if was_online or self._timer is not None:
                return

            logger.info(f"Connection restored, syncing in {self.stabilization_delay}s")
            timer = self.timer_factory(self.stabilization_delay, lambda: self._fire(timer))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("Pending reconnect sync cancelled")

    def _fire(self, timer: Any) -> None:
        with self._lock:
            # A timer replaced after an offline/online flap must not fire
            if self._timer is not timer or not self._online:
                return
            self._timer = None

        try:
            self.on_reconnect()
        except Exception as e:
            # Runs on the timer thread; nothing above us to report to
            logger.error(f"Reconnect sync failed: {e}", exc_info=True)

    def stop(self) -> None:
        with self._lock:
            self._cancel_timer()
