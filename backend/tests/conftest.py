"""Shared fixtures built on the fakes in tests/fakes.py."""

import pytest

from config.settings import Config
from core.run_context import RunContext
from models.results import TestCase
from tests.fakes import FakeClock, FakePage, FakeSession, no_sleep


@pytest.fixture
def config(tmp_path):
    class FastConfig(Config):
        LOG_DIR = str(tmp_path / 'logs')
        REPORT_DIR = str(tmp_path / 'reports')
        CSV_PATH = str(tmp_path / 'urls.csv')
        CHECK_TILE_LINKS = False
        HEADLESS = True

    return FastConfig


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def run_context(config, clock, tmp_path):
    ctx = RunContext(config, execution_id='test-run', validation_log_path=str(tmp_path / 'validation.log'),
                     clock=clock, sleep=no_sleep)
    yield ctx
    ctx.close()


@pytest.fixture
def page():
    return FakePage(dropdowns=[['A', 'B'], ['X', 'Y', 'Z']])


@pytest.fixture
def session(run_context, page):
    """Start a fake session on ``run_context`` and return it."""
    run_context.sessions.configure(lambda generation: FakeSession(page, generation))
    return run_context.sessions.start()


@pytest.fixture
def test_case():
    return TestCase(url='https://example.com/topics', description='Topics', expected_dropdowns=2, headless=True)
