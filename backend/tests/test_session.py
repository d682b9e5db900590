"""Tests for BrowserSession launch and navigation."""

from unittest.mock import Mock, patch

import pytest

from core.errors import StaleSessionError
from core.session import BrowserSession


@pytest.fixture
def slow_config(config):
    class SlowPageConfig(config):
        PAGE_LOAD_TIMEOUT = 7

    return SlowPageConfig


class TestLaunch:
    """Tests for BrowserSession.launch."""

    def test_uses_launch_config_for_page_loads(self, slow_config, test_case):
        """Should wait for pages with the timeout of the config it was launched with."""
        with patch('core.session.webdriver.Chrome') as chrome:
            session = BrowserSession.launch(test_case, slow_config, generation=3)

        chrome.return_value.set_page_load_timeout.assert_called_once_with(7)
        assert session.generation == 3
        assert session.page_load_timeout == 7

        with patch('core.session.WebDriverWait') as wait:
            session.navigate('https://example.com/topics')

        session.driver.get.assert_called_once_with('https://example.com/topics')
        wait.assert_called_once_with(session.driver, 7)

    def test_explicit_timeout_wins(self, slow_config, test_case):
        """Should prefer a timeout passed to navigate."""
        session = BrowserSession(Mock(), page_load_timeout=slow_config.PAGE_LOAD_TIMEOUT)
        with patch('core.session.WebDriverWait') as wait:
            session.navigate('https://example.com/topics', timeout=3)
        wait.assert_called_once_with(session.driver, 3)


class TestDiscard:
    """Tests for BrowserSession.discard."""

    def test_calls_after_discard_are_stale(self):
        """Should refuse driver calls once the session was discarded."""
        session = BrowserSession(Mock())
        session.discard()

        assert session.discarded
        with pytest.raises(StaleSessionError):
            session.evaluate('return 1;')
