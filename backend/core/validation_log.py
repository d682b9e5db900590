# core/validation_log.py
import json
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class ActivityTracker:
    """Last-progress timestamp and current operation name, shared with the liveness monitor."""

    def __init__(self, clock: Callable[[], float]):
        self._clock = clock
        self._lock = threading.Lock()
        self.last_activity = clock()
        self.current_operation: Optional[str] = None

    def touch(self) -> None:
        with self._lock:
            self.last_activity = self._clock()

    def begin(self, operation_name: str) -> Optional[str]:
        """Mark an operation as current and return the one it replaces."""
        with self._lock:
            previous = self.current_operation
            self.current_operation = operation_name
            self.last_activity = self._clock()
        return previous

    def restore(self, operation_name: Optional[str]) -> None:
        with self._lock:
            self.current_operation = operation_name

    def idle_seconds(self) -> float:
        with self._lock:
            return self._clock() - self.last_activity


class ValidationLog:
    """Append-only buffer of validation entries, flushed to validation.log.

    Flushes when asked to, when the buffer reaches ``threshold`` entries, or on
    the run context's periodic timer. Flushing an empty buffer is a no-op.
    """

    def __init__(self, path: Optional[str], activity: ActivityTracker = None, threshold: int = 50):
        self.path = path
        self.activity = activity
        self.threshold = threshold
        self.test_context: Optional[Dict] = None
        self._buffer: List[Dict] = []
        self._lock = threading.Lock()
        self.flushed_entries = 0

    def __len__(self):
        with self._lock:
            return len(self._buffer)

    def capture(self, message: str, data=None, immediate: bool = False) -> None:
        entry = {
            'ts': datetime.now().isoformat(),
            'msg': message,
            'data': data,
            'op': self.activity.current_operation if self.activity else None,
            'ctx': self.test_context,
        }
        with self._lock:
            self._buffer.append(entry)
            pending = len(self._buffer)
        logger.info(f"[VALIDATION] {message}")
        if data is not None:
            logger.debug(f"   Data: {json.dumps(data, default=str)}")
        if immediate or pending >= self.threshold:
            self.flush()
        if self.activity:
            self.activity.touch()

    def flush(self) -> int:
        with self._lock:
            entries, self._buffer = self._buffer, []
        if not entries:
            return 0
        if self.path:
            try:
                with open(self.path, 'a', encoding='utf-8') as f:
                    f.write(''.join(self._format(entry) for entry in entries))
            except OSError as e:
                logger.error(f"Validation buffer flush failed: {e}")
        self.flushed_entries += len(entries)
        if self.activity:
            self.activity.touch()
        return len(entries)

    @staticmethod
    def _format(entry: Dict) -> str:
        op = f" [{entry['op']}]" if entry['op'] else ''
        line = f"[{entry['ts']}]{op} {entry['msg']}\n"
        if entry['data'] is not None:
            data = entry['data']
            line += f"Data: {json.dumps(data, indent=2, default=str) if isinstance(data, (dict, list)) else data}\n"
        if entry['ctx']:
            line += f"Context: {json.dumps(entry['ctx'], indent=2, default=str)}\n"
        return line + '-' * 40 + '\n'
