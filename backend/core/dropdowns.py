# core/dropdowns.py
import logging
import time
from typing import Callable, List

from selenium.common.exceptions import WebDriverException

from core.errors import (
    NoDropdownsFoundError,
    NoOptionsFoundError,
    OperationExhaustedError,
    SelectionVerificationError,
    StaleSessionError,
)
from core.page_scripts import READ_OPTIONS, READ_VALUE, SET_VALUE
from core.retry import RetryExecutor
from core.session import wait_for_selector
from models.results import Option
from utils.element_utils import first_non_empty

logger = logging.getLogger(__name__)


class DropdownController:
    """Finds the page's dropdowns and reads and writes their values.

    Handles are whatever the session's ``find_elements`` returns; the scripts
    in ``core.page_scripts`` resolve the native select behind each one,
    including selects inside a shadow root.
    """

    def __init__(self, run_context, executor: RetryExecutor, sleep: Callable[[float], None] = time.sleep):
        self.ctx = run_context
        self.config = run_context.config
        self.executor = executor
        self._sleep = sleep

    @property
    def session(self):
        return self.ctx.sessions.require()

    def discover(self) -> List:
        return self.executor.execute_with_retry('dropdownFinding', self._discover_once)

    def _discover_once(self) -> List:
        session = self.session
        if self.config.CONTAINER_SELECTOR:
            wait_for_selector(session, self.config.CONTAINER_SELECTOR, self.config.CONTAINER_TIMEOUT)
        strategies = [(selector, selector) for selector in self.config.DROPDOWN_SELECTORS]
        selector, handles = first_non_empty(strategies, session.find_elements)
        if not handles:
            raise NoDropdownsFoundError("No dropdowns found")
        handles = handles[:self.config.MAX_DROPDOWNS]
        self.ctx.validation_log.capture(f"Found {len(handles)} dropdowns", {'selector': selector}, immediate=True)
        return handles

    def extract_options(self, handle, index: int) -> List[Option]:
        def extract():
            raw = self.session.evaluate(READ_OPTIONS, handle) or []
            options = [Option(value=str(item['value']), label=item.get('label') or '', ordinal_index=item['index'])
                       for item in raw if item.get('value') is not None]
            if not options:
                raise NoOptionsFoundError(index)
            self.ctx.validation_log.capture(f"Dropdown {index + 1} options", {'count': len(options)})
            return options

        return self.executor.execute_with_retry('dropdownOptions', extract, context={'dropdown': index + 1})

    def read_value(self, handle):
        return self.session.evaluate(READ_VALUE, handle)

    def select_option(self, handle, option: Option, index: int) -> bool:
        session = self.session
        if not session.evaluate(SET_VALUE, handle, option.value):
            raise SelectionVerificationError(index, option.value, None)
        self._sleep(self.config.SETTLE_DELAY)
        actual = self.read_value(handle)
        if actual != option.value:
            raise SelectionVerificationError(index, option.value, actual)
        self.ctx.validation_log.capture('Selected option', {'dropdown': index + 1, 'value': option.value})
        return True

    def apply_option(self, handle, option: Option, index: int) -> bool:
        """Select under the retry policy. False when the option could not be applied.

        Raises StaleSessionError when the session was replaced underneath us,
        since every handle we hold is then dead.
        """
        generation = self.ctx.sessions.generation
        try:
            return self.executor.execute_with_retry(
                'selection', lambda: self.select_option(handle, option, index),
                context={'dropdown': index + 1, 'value': option.value})
        except OperationExhaustedError as e:
            if isinstance(e.last_error, StaleSessionError) or self.ctx.sessions.generation != generation:
                raise StaleSessionError(f"Session replaced while selecting in dropdown {index + 1}") from e
            logger.warning(f"Could not apply {option.display()!r} to dropdown {index + 1}: {e.last_error}")
            return False

    def default_option(self, options: List[Option]) -> Option:
        for option in options:
            if option.value == '':
                return option
        return options[0]

    def reset_dropdowns(self, handles: List, from_index: int) -> None:
        generation = self.ctx.sessions.generation
        for index in range(from_index, len(handles)):
            try:
                options = self.extract_options(handles[index], index)
                self.apply_option(handles[index], self.default_option(options), index)
            except StaleSessionError:
                raise
            except OperationExhaustedError as e:
                if isinstance(e.last_error, StaleSessionError) or self.ctx.sessions.generation != generation:
                    raise StaleSessionError(f"Session replaced while resetting dropdown {index + 1}") from e
                logger.warning(f"Reset of dropdown {index + 1} skipped: {e}")

    def reset_to_default(self, handles: List) -> None:
        session = self.session
        clicked = False
        if self.config.RESET_BUTTON_SELECTOR:
            buttons = session.find_elements(self.config.RESET_BUTTON_SELECTOR)
            if buttons:
                try:
                    session.click(buttons[0])
                    clicked = True
                    self.ctx.validation_log.capture('Reset button clicked', immediate=True)
                except WebDriverException as e:
                    logger.warning(f"Reset button not clickable: {e}")
        if not clicked:
            self.reset_dropdowns(handles, 0)
            self.ctx.validation_log.capture('Manual reset completed', immediate=True)
        self._sleep(self.config.RESET_SETTLE_DELAY)
