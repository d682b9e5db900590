# core/session.py
import logging
import threading
import time
from typing import Callable, List, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.edge.options import Options as EdgeOptions
from selenium.webdriver.firefox.options import Options as FirefoxOptions
from selenium.webdriver.support.ui import WebDriverWait

from config.settings import Config
from core.errors import StaleSessionError
from core.page_scripts import READY_STATE, SCROLL_TO_TOP
from models.results import TestCase

logger = logging.getLogger(__name__)

DESKTOP_WINDOW = (1920, 1080)


class BrowserSession:
    """One browser instance, driven from a single run loop.

    Every driver call holds the session lock, so a recovery action issued from
    the liveness thread runs only once the in-flight call has returned. A call
    that returns after ``discard()`` raises StaleSessionError instead of
    handing back its result.
    """

    def __init__(self, driver, browser: str = 'chrome', generation: int = 0,
                 page_load_timeout: float = Config.PAGE_LOAD_TIMEOUT):
        self.driver = driver
        self.browser = browser
        self.generation = generation
        self.page_load_timeout = page_load_timeout
        self._lock = threading.RLock()
        self._discarded = False

    @classmethod
    def launch(cls, test_case: TestCase, config=Config, generation: int = 0) -> 'BrowserSession':
        browser = (test_case.browser or config.BROWSER).lower()
        device = cls.device_profile(test_case, config)
        if browser == 'firefox':
            driver = webdriver.Firefox(options=cls._firefox_options(test_case, device))
        elif browser == 'edge':
            driver = webdriver.Edge(options=cls._chromium_options(EdgeOptions(), test_case, device))
        else:
            browser = 'chrome'
            driver = webdriver.Chrome(options=cls._chromium_options(ChromeOptions(), test_case, device))
        driver.set_page_load_timeout(config.PAGE_LOAD_TIMEOUT)
        driver.set_script_timeout(config.SCRIPT_TIMEOUT)
        if device:
            driver.set_window_size(device['width'], device['height'])
        elif not test_case.headless:
            driver.maximize_window()
        logger.info(f"{browser} initialized for {test_case.device}"
                    f"{f' ({test_case.mobile_device})' if device else ''}")
        return cls(driver, browser=browser, generation=generation,
                   page_load_timeout=config.PAGE_LOAD_TIMEOUT)

    @staticmethod
    def device_profile(test_case: TestCase, config=Config) -> Optional[dict]:
        if test_case.device == 'desktop':
            return None
        return config.DEVICE_PRESETS.get(test_case.mobile_device) or config.DEVICE_PRESETS['iPhone 12']

    @staticmethod
    def _chromium_options(options, test_case: TestCase, device: Optional[dict]):
        for arg in ['--disable-notifications', '--no-sandbox', '--disable-dev-shm-usage',
                    '--disable-extensions', '--disable-gpu', '--log-level=3']:
            options.add_argument(arg)
        if test_case.headless:
            options.add_argument('--headless=new')
        if device:
            options.add_experimental_option('mobileEmulation', {
                'deviceMetrics': {'width': device['width'], 'height': device['height'],
                                  'pixelRatio': device['pixel_ratio']},
                'userAgent': device['user_agent'],
            })
        else:
            options.add_argument(f"--window-size={DESKTOP_WINDOW[0]},{DESKTOP_WINDOW[1]}")
        return options

    @staticmethod
    def _firefox_options(test_case: TestCase, device: Optional[dict]):
        options = FirefoxOptions()
        if test_case.headless:
            options.add_argument('--headless')
        if device:
            options.set_preference('general.useragent.override', device['user_agent'])
        options.set_preference('dom.disable_beforeunload', True)
        return options

    @property
    def discarded(self) -> bool:
        return self._discarded

    def _call(self, fn: Callable, *args):
        if self._discarded:
            raise StaleSessionError(f"Session {self.generation} was discarded")
        with self._lock:
            result = fn(*args)
        if self._discarded:
            raise StaleSessionError(f"Session {self.generation} was discarded while a call was in flight")
        return result

    def navigate(self, url: str, timeout: float = None) -> None:
        self._call(self.driver.get, url)
        self.wait(lambda: self.evaluate(READY_STATE) == 'complete', timeout or self.page_load_timeout)

    def find_elements(self, css_selector: str) -> List:
        return self._call(self.driver.find_elements, By.CSS_SELECTOR, css_selector)

    def evaluate(self, script: str, *args):
        return self._call(self.driver.execute_script, script, *args)

    def wait(self, predicate: Callable[[], bool], timeout: float) -> None:
        # the predicate makes its own locked calls
        WebDriverWait(self.driver, timeout).until(lambda _driver: predicate())

    def refresh(self) -> None:
        self._call(self.driver.refresh)

    def delete_all_cookies(self) -> None:
        self._call(self.driver.delete_all_cookies)

    def scroll_to_top(self) -> None:
        self.evaluate(SCROLL_TO_TOP)

    def click(self, element) -> None:
        self._call(element.click)

    def discard(self) -> None:
        """Drop the session without waiting for any in-flight call."""
        self._discarded = True
        try:
            self.driver.quit()
        except Exception as e:
            logger.warning(f"Error quitting discarded session {self.generation}: {e}")

    def quit(self) -> None:
        if self._discarded:
            return
        self._discarded = True
        with self._lock:
            self.driver.quit()


class SessionHolder:
    """Owns the current BrowserSession and replaces it after a hard restart."""

    def __init__(self, launcher: Callable[[int], BrowserSession] = None):
        self._launcher = launcher
        self._lock = threading.Lock()
        self._session: Optional[BrowserSession] = None
        self._generation = 0
        self.needs_restart = False

    @property
    def current(self) -> Optional[BrowserSession]:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    def require(self) -> BrowserSession:
        session = self._session
        if session is None:
            raise StaleSessionError("No active browser session")
        return session

    def configure(self, launcher: Callable[[int], BrowserSession]) -> None:
        self._launcher = launcher

    def start(self) -> BrowserSession:
        """Launch a fresh session, closing any previous one."""
        if self._launcher is None:
            raise RuntimeError("No session launcher configured")
        self.close()
        with self._lock:
            self._generation += 1
            generation = self._generation
        session = self._launcher(generation)
        with self._lock:
            self._session = session
            self.needs_restart = False
        return session

    def discard(self) -> None:
        with self._lock:
            session, self._session = self._session, None
            self.needs_restart = True
        if session is not None:
            session.discard()

    def close(self) -> None:
        with self._lock:
            session, self._session = self._session, None
        if session is not None:
            try:
                session.quit()
                logger.info("Driver cleaned up")
            except WebDriverException as e:
                logger.warning(f"Error closing driver: {e}")


def dismiss_popups(session: BrowserSession, selectors: List[str], delay: float = 0, sleep=time.sleep) -> bool:
    """Click the first visible consent/popup control, if any."""
    if delay:
        sleep(delay)
    for selector in selectors:
        try:
            for element in session.find_elements(selector):
                if element.is_displayed():
                    session.click(element)
                    logger.info(f"Clicked popup control: {selector}")
                    if delay:
                        sleep(delay * 0.75)
                    return True
        except StaleSessionError:
            raise
        except WebDriverException as e:
            logger.debug(f"Popup selector {selector} not usable: {e}")
    logger.info("No popups found")
    return False


def wait_for_selector(session: BrowserSession, selector: str, timeout: float) -> None:
    try:
        session.wait(lambda: len(session.find_elements(selector)) > 0, timeout)
    except TimeoutException:
        raise TimeoutException(f"Timed out after {timeout}s waiting for {selector}")
