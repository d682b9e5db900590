# core/retry.py
import logging
import random
import threading
import time
from collections import defaultdict
from typing import Any, Callable, Dict, Optional

from tenacity import RetryCallState, RetryError, Retrying, stop_after_attempt

from core.errors import OperationExhaustedError

logger = logging.getLogger(__name__)

# starts the session itself; never preceded by a restart
SESSION_INIT_OPERATION = 'initializeDriver'


class RetryState:
    """Per-operation retry counters for one run.

    ``consecutive`` and ``cumulative`` drop back to zero when the operation
    succeeds; ``total`` is never reset and feeds the final report.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.consecutive: Dict[str, int] = defaultdict(int)
        self.cumulative: Dict[str, int] = defaultdict(int)
        self.total: Dict[str, int] = defaultdict(int)
        self.stuck_recovery = 0

    def record_failure(self, operation_name: str) -> int:
        with self._lock:
            self.consecutive[operation_name] += 1
            self.cumulative[operation_name] += 1
            self.total[operation_name] += 1
            return self.cumulative[operation_name]

    def record_success(self, operation_name: str) -> None:
        with self._lock:
            self.consecutive[operation_name] = 0
            self.cumulative[operation_name] = 0

    def record_stuck_recovery(self) -> int:
        with self._lock:
            self.stuck_recovery += 1
            return self.stuck_recovery

    def snapshot(self) -> Dict:
        with self._lock:
            return {
                'outstanding': {k: v for k, v in self.cumulative.items() if v},
                'total': dict(self.total),
                'stuck_recovery': self.stuck_recovery,
            }


class RetryExecutor:
    """Runs fallible browser operations with bounded retries.

    Between attempts it backs off exponentially with jitter, then runs the
    recovery action registered for the operation name.
    """

    def __init__(self, run_context, sleep: Callable[[float], None] = time.sleep,
                 jitter: Callable[[], float] = None):
        self.ctx = run_context
        self.config = run_context.config
        self._sleep = sleep
        self._jitter = jitter or (lambda: random.uniform(0, self.config.BACKOFF_JITTER))
        self.recovery_actions: Dict[str, Callable[[int, Dict], None]] = {
            'navigation': self._clear_cookies,
            'dropdownFinding': self._reload_page,
        }

    def backoff_delay(self, attempt: int) -> float:
        return min(self.config.BACKOFF_BASE * 2 ** (attempt - 1), self.config.BACKOFF_CAP) + self._jitter()

    def execute_with_retry(self, operation_name: str, operation: Callable[[], Any],
                           max_attempts: int = None, context: Optional[Dict] = None) -> Any:
        max_attempts = max_attempts or self.config.max_attempts_for(operation_name)
        context = context or {}
        previous_operation = self.ctx.activity.begin(operation_name)
        retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=lambda retry_state: self.backoff_delay(retry_state.attempt_number),
            sleep=self._sleep,
            after=lambda retry_state: self._record_failure(operation_name, retry_state, max_attempts, context),
        )
        try:
            for attempt in retrying:
                with attempt:
                    number = attempt.retry_state.attempt_number
                    self.ctx.activity.begin(operation_name)
                    logger.debug(f"Attempt {number}/{max_attempts}: {operation_name} {context}")
                    if number > 1:
                        self._recover(operation_name, number - 1, context)
                    if self.ctx.sessions.needs_restart and operation_name != SESSION_INIT_OPERATION:
                        logger.info(f"Re-initializing browser session before {operation_name}")
                        self.ctx.sessions.start()
                    result = operation()
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise OperationExhaustedError(operation_name, last_error, max_attempts) from last_error
        finally:
            self.ctx.activity.restore(previous_operation)

        self.ctx.retry_state.record_success(operation_name)
        if number > 1:
            self.ctx.validation_log.capture(
                f"{operation_name} succeeded on attempt {number}", context or None, immediate=True)
        return result

    def _record_failure(self, operation_name: str, retry_state: RetryCallState,
                        max_attempts: int, context: Dict) -> None:
        retries = self.ctx.retry_state.record_failure(operation_name)
        logger.error(f"{operation_name} failed attempt {retry_state.attempt_number}/{max_attempts} "
                     f"(retries={retries}, context={context}): {retry_state.outcome.exception()}")

    def _recover(self, operation_name: str, attempt: int, context: Dict) -> None:
        action = self.recovery_actions.get(operation_name, self._wait)
        try:
            action(attempt, context)
        except Exception as e:
            logger.warning(f"Recovery for {operation_name} failed: {e}")

    def _clear_cookies(self, attempt: int, context: Dict) -> None:
        session = self.ctx.sessions.current
        if session is not None:
            session.delete_all_cookies()

    def _reload_page(self, attempt: int, context: Dict) -> None:
        session = self.ctx.sessions.current
        if session is not None:
            session.refresh()
        self._sleep(self.config.RECOVERY_DELAY)

    def _wait(self, attempt: int, context: Dict) -> None:
        self._sleep(self.config.RECOVERY_DELAY)
