# core/dropdown_tester.py
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from core.aggregator import summarize_url, url_status
from core.classifier import PageStateClassifier
from core.dropdowns import DropdownController
from core.enumerator import CombinationEnumerator, total_combinations
from core.retry import RetryExecutor
from core.session import BrowserSession, dismiss_popups
from models.results import CombinationResult, Option, TestCase, UrlRunResult, UrlStatus

logger = logging.getLogger(__name__)


class DropdownTester:
    """Runs every dropdown combination of each test case's URL.

    One browser session per URL; it is torn down before the next URL starts.
    Errors that survive their retries mark the URL as ERROR and the run moves on.
    """

    def __init__(self, run_context, sleep: Callable[[float], None] = time.sleep,
                 session_factory: Callable[..., BrowserSession] = BrowserSession.launch):
        self.ctx = run_context
        self.config = run_context.config
        self._sleep = sleep
        self._session_factory = session_factory
        self.executor = RetryExecutor(run_context, sleep=sleep)
        self.dropdowns = DropdownController(run_context, self.executor, sleep=sleep)
        self.classifier = PageStateClassifier(run_context, self.executor, self.dropdowns, sleep=sleep)
        self.current_url: Optional[str] = None

    def run(self, test_cases: List[TestCase]) -> List[UrlRunResult]:
        logger.info('=' * 60)
        logger.info(f"DROPDOWN TESTING STARTED ({len(test_cases)} URLs, execution {self.ctx.execution_id})")
        logger.info('=' * 60)
        results = []
        for idx, test_case in enumerate(test_cases):
            results.append(self.test_url(test_case, idx, len(test_cases)))
            if idx < len(test_cases) - 1:
                self._sleep(self.config.BETWEEN_URLS_DELAY)
        return results

    def test_url(self, test_case: TestCase, idx: int = 0, total: int = 1) -> UrlRunResult:
        logger.info(f"Test {idx + 1}/{total}: {test_case.description or test_case.url}")
        logger.info(f"   Browser: {test_case.browser.upper()} | Device: {test_case.device}")
        self.ctx.set_test_context({'url_index': idx + 1, 'total': total, 'url': test_case.url,
                                   'browser': test_case.browser, 'device': test_case.device})
        result = UrlRunResult(test_case=test_case)
        try:
            self.initialize_session(test_case)
            self.navigate(test_case.url)
            result.combinations = self.test_all_combinations(result)
            result.status = url_status(result.combinations)
            self.ctx.validation_log.capture(f"URL test {result.status.value}", {
                'passed': sum(1 for c in result.combinations if c.passed),
                'failed': sum(1 for c in result.combinations if not c.passed),
            }, immediate=True)
        except Exception as e:
            result.status = UrlStatus.ERROR
            result.error = str(e)
            logger.error(f"URL test error for {test_case.url}: {e}")
            self.ctx.validation_log.capture('URL test error', {'error': str(e)}, immediate=True)
        finally:
            self.cleanup()
            summaries = summarize_url(result.combinations)
            result.summary = summaries['summary']
            result.tile_summary = summaries['tile_summary']
            result.sort_summary = summaries['sort_summary']
            result.finished_at = datetime.now().isoformat()
            self.ctx.add_result(result)
        return result

    def initialize_session(self, test_case: TestCase) -> BrowserSession:
        self.current_url = None

        def launch(generation: int) -> BrowserSession:
            session = self._session_factory(test_case, self.config, generation)
            # a session re-created after a hard restart must land back on the page
            if self.current_url:
                session.navigate(self.current_url)
                dismiss_popups(session, self.config.POPUP_SELECTORS, self.config.POPUP_DELAY, self._sleep)
            return session

        self.ctx.sessions.configure(launch)
        return self.executor.execute_with_retry('initializeDriver', self.ctx.sessions.start,
                                                context={'browser': test_case.browser})

    def navigate(self, url: str) -> None:
        def go():
            session = self.ctx.sessions.require()
            session.navigate(url)
            self.current_url = url
            dismiss_popups(session, self.config.POPUP_SELECTORS, self.config.POPUP_DELAY, self._sleep)

        self.executor.execute_with_retry('navigation', go, context={'url': url})
        self.ctx.validation_log.capture('Navigation complete', {'url': url}, immediate=True)

    def prepare_dropdowns(self, result: UrlRunResult) -> Tuple[List, List[List[Option]]]:
        handles = self.dropdowns.discover()
        option_sets = [self.dropdowns.extract_options(handle, i) for i, handle in enumerate(handles)]
        result.dropdown_count = len(handles)
        result.dropdown_details = [
            {'index': i + 1, 'options': len(options), 'values': [option.value for option in options]}
            for i, options in enumerate(option_sets)
        ]
        result.expected_combinations = total_combinations(option_sets)
        expected = result.test_case.expected_dropdowns
        if expected and len(handles) != expected:
            note = f"Expected {expected} dropdowns, found {len(handles)}"
            if note not in result.notes:
                result.notes.append(note)
            logger.warning(note)
        self.dropdowns.reset_to_default(handles)
        return handles, option_sets

    def test_all_combinations(self, result: UrlRunResult) -> List[CombinationResult]:
        self.classifier.base_url = result.test_case.url

        def attempt() -> List[CombinationResult]:
            # every attempt rediscovers: handles from a replaced session are dead
            handles, option_sets = self.prepare_dropdowns(result)
            logger.info(f"Testing {result.expected_combinations} combinations across {len(handles)} dropdowns")
            enumerator = CombinationEnumerator(self.dropdowns, self.classifier.classify, on_result=self._progress)
            return enumerator.enumerate(handles, option_sets)

        return self.executor.execute_with_retry('testAllCombinations', attempt, context={'url': result.test_case.url})

    def _progress(self, combination: CombinationResult, expected: int) -> None:
        status = 'PASSED' if combination.passed else 'FAILED'
        logger.info(f"   Combo {combination.ordinal}/{expected}: {status} ({combination.verdict.value})")

    def cleanup(self) -> None:
        self.ctx.sessions.close()
        self.ctx.sessions.needs_restart = False
        self.current_url = None
