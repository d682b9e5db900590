# core/run_context.py
import logging
import os
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional

from config.settings import Config
from core.monitor import LivenessMonitor, PeriodicTask
from core.retry import RetryState
from core.session import SessionHolder
from core.validation_log import ActivityTracker, ValidationLog
from models.results import UrlRunResult

logger = logging.getLogger(__name__)


class RunContext:
    """All mutable state of one test run.

    Owns the retry counters, the validation log, the session holder and the
    two background timers (liveness check and log flush). ``close()`` stops
    both timers and flushes the log, so repeated runs never share state.
    """

    def __init__(self, config=Config, execution_id: str = None, validation_log_path: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.execution_id = execution_id or datetime.now().isoformat().replace(':', '-').replace('.', '-')
        if validation_log_path is None and config.LOG_DIR:
            validation_log_path = os.path.join(config.LOG_DIR, 'validation.log')
        self.activity = ActivityTracker(clock)
        self.retry_state = RetryState()
        self.validation_log = ValidationLog(validation_log_path, self.activity, config.FLUSH_THRESHOLD)
        self.sessions = SessionHolder()
        self.monitor = LivenessMonitor(self, sleep=sleep)
        self.results: List[UrlRunResult] = []
        self.total_tests = 0
        self.passed_tests = 0
        self.failed_tests = 0
        self.started_at = datetime.now()
        self.finished_at: Optional[datetime] = None
        self._timers = [
            PeriodicTask('liveness-monitor', config.MONITOR_INTERVAL, self.monitor.check),
            PeriodicTask('validation-flush', config.FLUSH_INTERVAL, self.validation_log.flush),
        ]

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def timers_running(self) -> bool:
        return any(timer.running for timer in self._timers)

    def start(self) -> None:
        for timer in self._timers:
            timer.start()

    def close(self) -> None:
        for timer in self._timers:
            timer.stop(timeout=self.config.RECOVERY_DELAY + 1)
        self.sessions.close()
        self.validation_log.flush()
        self.finished_at = self.finished_at or datetime.now()

    def set_test_context(self, context: Optional[Dict]) -> None:
        self.validation_log.test_context = context

    def add_result(self, result: UrlRunResult) -> None:
        """Append a finished URL result and fold its combinations into the run counters."""
        self.results.append(result)
        for combination in result.combinations:
            self.total_tests += 1
            if combination.passed:
                self.passed_tests += 1
            else:
                self.failed_tests += 1

    @property
    def pass_rate(self) -> int:
        return round(self.passed_tests / self.total_tests * 100) if self.total_tests else 0
