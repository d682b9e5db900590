# utils/log_files.py
import logging
import os
from datetime import datetime
from typing import List

from config.settings import Config

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class ConsoleNoiseFilter(logging.Filter):
    """Drops browser/driver chatter from the console.

    Matching records at ERROR or above are handed to ``sink`` instead, so they
    still end up in browser-errors.log.
    """

    def __init__(self, patterns: List[str], sink: logging.Handler = None):
        super().__init__()
        self.patterns = patterns
        self.sink = sink
        self.suppressed = 0

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if not any(pattern in message for pattern in self.patterns):
            return True
        self.suppressed += 1
        if self.sink is not None and record.levelno >= logging.ERROR:
            self.sink.handle(record)
        return False


def write_banner(path: str, execution_id: str, title: str) -> None:
    with open(path, 'a', encoding='utf-8') as f:
        f.write(f"\n{'=' * 80}\n{title}\nExecution ID: {execution_id}\n"
                f"Started: {datetime.now().isoformat()}\n{'=' * 80}\n")


def log_paths(config=Config) -> dict:
    return {
        'errors': os.path.join(config.LOG_DIR, 'errors.log'),
        'execution': os.path.join(config.LOG_DIR, 'execution.log'),
        'validation': os.path.join(config.LOG_DIR, 'validation.log'),
        'browser_errors': os.path.join(config.LOG_DIR, 'browser-errors.log'),
    }


def attach_log_files(execution_id: str, config=Config, logger: logging.Logger = None) -> List[logging.Handler]:
    """Add execution/error file handlers and the console noise filter to ``logger``.

    Returns the handlers it added so the caller can detach them after the run.
    """
    logger = logger or logging.getLogger()
    os.makedirs(config.LOG_DIR, exist_ok=True)
    paths = log_paths(config)
    write_banner(paths['execution'], execution_id, 'EXECUTION LOG')
    write_banner(paths['errors'], execution_id, 'ERROR LOG')
    write_banner(paths['validation'], execution_id, 'VALIDATION LOG')

    formatter = logging.Formatter(LOG_FORMAT)
    execution = logging.FileHandler(paths['execution'], encoding='utf-8')
    execution.setLevel(logging.INFO)
    errors = logging.FileHandler(paths['errors'], encoding='utf-8')
    errors.setLevel(logging.ERROR)
    browser_errors = logging.FileHandler(paths['browser_errors'], encoding='utf-8', delay=True)
    for handler in (execution, errors, browser_errors):
        handler.setFormatter(formatter)

    # only the error handler sees every ERROR record once, so it alone feeds browser-errors.log
    noise = ConsoleNoiseFilter(config.CONSOLE_FILTERS)
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.addFilter(noise)
    execution.addFilter(noise)
    errors.addFilter(ConsoleNoiseFilter(config.CONSOLE_FILTERS, sink=browser_errors))
    logger.addHandler(execution)
    logger.addHandler(errors)
    return [execution, errors, browser_errors]


def detach_log_files(handlers: List[logging.Handler], logger: logging.Logger = None) -> None:
    logger = logger or logging.getLogger()
    for handler in handlers:
        logger.removeHandler(handler)
        handler.close()
    for handler in logger.handlers:
        for f in [f for f in handler.filters if isinstance(f, ConsoleNoiseFilter)]:
            handler.removeFilter(f)
