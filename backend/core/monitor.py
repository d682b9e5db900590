# core/monitor.py
import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``fn`` every ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, name: str, interval: float, fn: Callable[[], None]):
        self.name = name
        self.interval = interval
        self.fn = fn
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.fn()
            except Exception as e:
                logger.error(f"Periodic task {self.name} failed: {e}")

    def stop(self, timeout: float = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


class LivenessMonitor:
    """Detects a run that has stopped reporting progress and tries to unstick it.

    Soft recovery refreshes the page or scrolls to the top depending on the
    current operation. When a soft recovery fails and the run has already used
    STUCK_RECOVERY_MAX recoveries, the browser session is discarded and
    re-created on the next attempt.
    """

    def __init__(self, run_context, sleep: Callable[[float], None] = time.sleep):
        self.ctx = run_context
        self.config = run_context.config
        self._sleep = sleep
        self._recovering = threading.Lock()
        self.detections = 0
        self.hard_restarts = 0

    @property
    def recovering(self) -> bool:
        return self._recovering.locked()

    def check(self) -> bool:
        idle = self.ctx.activity.idle_seconds()
        if idle <= self.config.ACTIVITY_TIMEOUT or self.recovering:
            return False
        self.detections += 1
        self.ctx.validation_log.capture('Possible stuck detected', {
            'idle': f"{idle:.1f}s",
            'op': self.ctx.activity.current_operation,
            'timeout': f"{self.config.ACTIVITY_TIMEOUT}s",
        }, immediate=True)
        return self.recover()

    def recover(self) -> bool:
        if not self._recovering.acquire(blocking=False):
            return False
        try:
            operation = (self.ctx.activity.current_operation or '').lower()
            attempts = self.ctx.retry_state.record_stuck_recovery()
            self.ctx.validation_log.capture('Attempting stuck recovery', {'attempt': attempts, 'op': operation},
                                            immediate=True)
            try:
                session = self.ctx.sessions.current
                if session is not None:
                    if 'navigation' in operation:
                        session.refresh()
                    elif 'dropdown' in operation:
                        session.scroll_to_top()
                self._sleep(self.config.RECOVERY_DELAY)
                self.ctx.validation_log.capture('Recovery successful', immediate=True)
                return True
            except Exception as e:
                self.ctx.validation_log.capture('Recovery failed', {'error': str(e)}, immediate=True)
                if attempts >= self.config.STUCK_RECOVERY_MAX:
                    self.hard_restart()
                return False
        finally:
            self.ctx.activity.touch()
            self._recovering.release()

    def hard_restart(self) -> None:
        self.hard_restarts += 1
        self.ctx.validation_log.capture('INITIATING HARD RESTART', immediate=True)
        self.ctx.validation_log.flush()
        self.ctx.sessions.discard()
        logger.warning("Browser session discarded; it will be re-created on the next operation")
        self.ctx.validation_log.capture('Restart complete', immediate=True)
