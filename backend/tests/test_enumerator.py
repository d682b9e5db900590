"""Tests for dropdown control and combination enumeration."""

from datetime import datetime

import pytest
from selenium.common.exceptions import TimeoutException

from core.dropdowns import DropdownController
from core.enumerator import CombinationEnumerator, total_combinations
from core.errors import NoDropdownsFoundError, OperationExhaustedError, StaleSessionError
from core.retry import RetryExecutor
from models.results import CombinationResult, Option, SortObservation, TileObservation, Verdict
from tests.fakes import FakePage, FakeSession, no_sleep


def passing(ordinal, selection, handles):
    now = datetime.now().isoformat()
    return CombinationResult(ordinal, selection, Verdict.PASSED, TileObservation(visible_count=1),
                             SortObservation(), None, now, now)


@pytest.fixture
def dropdowns(run_context):
    executor = RetryExecutor(run_context, sleep=no_sleep, jitter=lambda: 0)
    return DropdownController(run_context, executor, sleep=no_sleep)


def discover_all(dropdowns):
    handles = dropdowns.discover()
    return handles, [dropdowns.extract_options(handle, i) for i, handle in enumerate(handles)]


class TestTotalCombinations:
    """Tests for total_combinations."""

    def test_product_of_option_counts(self):
        """Should multiply the option counts."""
        options = [[Option(str(i), '', i) for i in range(n)] for n in (2, 3, 4)]
        assert total_combinations(options) == 24

    def test_single_dropdown(self):
        """Should equal the option count for one dropdown."""
        assert total_combinations([[Option('a', 'A', 0), Option('b', 'B', 1)]]) == 2


class TestDropdownController:
    """Tests for discovery, option extraction and selection."""

    def test_discovers_and_extracts_options(self, dropdowns, session):
        """Should find each dropdown and its options in page order."""
        handles, option_sets = discover_all(dropdowns)
        assert len(handles) == 2
        assert [[o.value for o in options] for options in option_sets] == [['A', 'B'], ['X', 'Y', 'Z']]
        assert option_sets[1][2].ordinal_index == 2

    def test_caps_at_max_dropdowns(self, run_context, dropdowns):
        """Should keep at most MAX_DROPDOWNS handles."""
        page = FakePage(dropdowns=[['a'], ['b'], ['c'], ['d']])
        run_context.sessions.configure(lambda generation: FakeSession(page, generation))
        run_context.sessions.start()
        assert len(dropdowns.discover()) == 3

    def test_no_dropdowns_exhausts_retries(self, run_context, dropdowns, session, page):
        """Should raise after the dropdownFinding attempts are used up."""
        page.selects = []
        with pytest.raises(OperationExhaustedError) as exc_info:
            dropdowns.discover()
        assert isinstance(exc_info.value.last_error, NoDropdownsFoundError)
        assert session.refreshes == 1

    def test_falls_back_through_selector_strategies(self, run_context, dropdowns, config):
        """Should try the selectors in order and stop at the first that matches."""
        page = FakePage(dropdowns=[['A', 'B'], ['X', 'Y']], dropdown_selector='select[data-test="select"]')
        run_context.sessions.configure(lambda generation: FakeSession(page, generation))
        session = run_context.sessions.start()

        handles = dropdowns.discover()

        assert [handle.select.name for handle in handles] == ['d0', 'd1']
        tried = [query for query in session.queries if query != config.CONTAINER_SELECTOR]
        assert tried == config.DROPDOWN_SELECTORS[:3]

    def test_first_matching_strategy_short_circuits(self, dropdowns, session, config):
        """Should not query later selectors once one returns dropdowns."""
        dropdowns.discover()
        tried = [query for query in session.queries if query != config.CONTAINER_SELECTOR]
        assert tried == config.DROPDOWN_SELECTORS[:1]

    def test_missing_container_exhausts_retries(self, run_context, dropdowns, session, page):
        """Should give up on discovery when the filter container never renders."""
        page.container = False
        with pytest.raises(OperationExhaustedError) as exc_info:
            dropdowns.discover()

        assert exc_info.value.operation_name == 'dropdownFinding'
        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.last_error, TimeoutException)
        assert run_context.config.CONTAINER_SELECTOR in str(exc_info.value.last_error)
        assert not any(query in session.queries for query in run_context.config.DROPDOWN_SELECTORS)

    def test_select_option_verifies_value(self, dropdowns, session, page):
        """Should apply and confirm the option value."""
        handles, option_sets = discover_all(dropdowns)
        assert dropdowns.apply_option(handles[1], option_sets[1][2], 1) is True
        assert page.selects[1].value == 'Z'

    def test_rejected_option_returns_false(self, dropdowns, session, page):
        """Should report False when the value cannot be applied."""
        page.rejected.add(('d0', 'B'))
        handles, option_sets = discover_all(dropdowns)
        assert dropdowns.apply_option(handles[0], option_sets[0][1], 0) is False
        assert page.selects[0].value == 'A'

    def test_default_option_prefers_empty_value(self, dropdowns):
        """Should pick the empty-value option, else the first."""
        options = [Option('x', 'X', 0), Option('', 'All', 1)]
        assert dropdowns.default_option(options).label == 'All'
        assert dropdowns.default_option(options[:1]).value == 'x'

    def test_reset_to_default_clicks_reset_button(self, dropdowns, session, page):
        """Should use the page's reset button when present."""
        page.reset_button = True
        handles, _ = discover_all(dropdowns)
        page.selects[0].value = 'B'
        dropdowns.reset_to_default(handles)
        assert page.values == ('A', 'X')
        assert page.history == []

    def test_reset_to_default_falls_back_to_manual(self, dropdowns, session, page):
        """Should reset every dropdown when there is no reset button."""
        handles, _ = discover_all(dropdowns)
        page.selects[0].value = 'B'
        page.selects[1].value = 'Z'
        dropdowns.reset_to_default(handles)
        assert page.values == ('A', 'X')


class TestCombinationEnumerator:
    """Tests for the depth-first combination walk."""

    def test_visits_every_combination_in_order(self, dropdowns, session):
        """Should produce the full product, depth-first and left to right."""
        handles, option_sets = discover_all(dropdowns)
        results = CombinationEnumerator(dropdowns, passing).enumerate(handles, option_sets)

        assert [r.ordinal for r in results] == [1, 2, 3, 4, 5, 6]
        assert [tuple(e.option.value for e in r.selection) for r in results] == [
            ('A', 'X'), ('A', 'Y'), ('A', 'Z'), ('B', 'X'), ('B', 'Y'), ('B', 'Z'),
        ]
        assert all([e.dropdown_index for e in r.selection] == [0, 1] for r in results)

    def test_resets_only_downstream_between_siblings(self, dropdowns, session, page):
        """Should reset later dropdowns between siblings and never the current one."""
        handles, option_sets = discover_all(dropdowns)
        CombinationEnumerator(dropdowns, passing).enumerate(handles, option_sets)

        assert page.history == [
            ('d0', 'A'), ('d1', 'X'), ('d1', 'Y'), ('d1', 'Z'),
            ('d1', 'X'),
            ('d0', 'B'), ('d1', 'X'), ('d1', 'Y'), ('d1', 'Z'),
        ]

    def test_downstream_at_default_before_next_sibling(self, dropdowns, session, page):
        """Should leave downstream dropdowns at their default when moving to the next sibling."""
        three = FakePage(dropdowns=[['A', 'B'], ['', 'M'], ['', 'X']])
        session.page = three
        handles, option_sets = discover_all(dropdowns)
        seen = []
        original = dropdowns.apply_option

        def spy(handle, option, index):
            if index == 0:
                seen.append(three.values[1:])
            return original(handle, option, index)

        dropdowns.apply_option = spy
        CombinationEnumerator(dropdowns, passing).enumerate(handles, option_sets)
        assert seen[1] == ('', '')

    def test_unreachable_subtree_recorded_as_failures(self, dropdowns, session, page):
        """Should record one failed result per leaf under an option that cannot be applied."""
        page.rejected.add(('d0', 'B'))
        handles, option_sets = discover_all(dropdowns)
        results = CombinationEnumerator(dropdowns, passing).enumerate(handles, option_sets)

        assert len(results) == 6
        failed = [r for r in results if not r.passed]
        assert [tuple(e.option.value for e in r.selection) for r in failed] == [('B', 'X'), ('B', 'Y'), ('B', 'Z')]
        assert all('Failed to select' in r.error for r in failed)

    def test_reports_progress(self, dropdowns, session):
        """Should report each result with the expected total."""
        handles, option_sets = discover_all(dropdowns)
        progress = []
        CombinationEnumerator(dropdowns, passing, on_result=lambda r, total: progress.append((r.ordinal, total))
                              ).enumerate(handles, option_sets)
        assert progress[-1] == (6, 6)

    def test_stale_session_propagates(self, dropdowns, session):
        """Should abandon the walk when the session is replaced."""
        handles, option_sets = discover_all(dropdowns)

        def stale(ordinal, selection, handles):
            raise StaleSessionError('replaced')

        with pytest.raises(StaleSessionError):
            CombinationEnumerator(dropdowns, stale).enumerate(handles, option_sets)

    def test_mismatched_option_sets_rejected(self, dropdowns):
        """Should refuse option sets that do not match the handles."""
        with pytest.raises(ValueError):
            CombinationEnumerator(dropdowns, passing).enumerate(['h1'], [])
