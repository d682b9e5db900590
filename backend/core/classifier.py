# core/classifier.py
import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from core.dropdowns import DropdownController
from core.errors import OperationExhaustedError, SelectionVerificationError, StaleSessionError
from core.page_scripts import DESCRIBE_TILES, HIDDEN_TILE_COUNT, NO_RESULTS_PROBE, SORT_CONTROLS, TILE_STRATEGIES
from core.retry import RetryExecutor
from models.results import (
    CombinationResult,
    Selection,
    SortObservation,
    SortStatus,
    TileObservation,
    Verdict,
    describe_selection,
)
from utils.element_utils import clip, first_non_empty, get_status_code

logger = logging.getLogger(__name__)


def classify_order(titles: Sequence[str]) -> SortStatus:
    keys = [title.casefold() for title in titles]
    if keys == sorted(keys):
        return SortStatus.ALPHABETICAL
    if keys == sorted(keys, reverse=True):
        return SortStatus.REVERSE_ALPHABETICAL
    return SortStatus.UNSORTED


def pick_message(candidates: Optional[List[Dict]]) -> Dict:
    """Choose the element that actually carries the no-results message.

    A wrapper whose child holds the same phrasing is skipped, so text and
    visibility come from the innermost match. Notifications win over
    generic elements.
    """
    innermost = [c for c in candidates or [] if not c.get('nested_match')]
    preferred = [c for c in innermost if c.get('notification')] or innermost
    if not preferred:
        return {'found': False, 'text': None, 'element': None, 'canonical': False, 'visible': False}
    chosen = preferred[0]
    return {
        'found': True,
        'text': chosen.get('text'),
        'element': chosen.get('element'),
        'canonical': bool(chosen.get('canonical')),
        'visible': bool(chosen.get('visible')),
    }


def decide_verdict(observation: TileObservation) -> Tuple[Verdict, str]:
    """Map a tile observation to a verdict.

    An empty result page is a valid outcome; only the caller's exceptions
    (selection not applied, script errors) produce FAILED.
    """
    if observation.visible_count > 0:
        return Verdict.PASSED, f"{observation.visible_count} visible tiles found"
    if observation.has_no_results_message and observation.message_is_canonical and observation.message_visible:
        return Verdict.PASSED_NO_RESULTS_EXPECTED, f'Expected behavior: "{clip(observation.message_text)}"'
    if observation.has_no_results_message:
        return (Verdict.PASSED_AMBIGUOUS_MESSAGE,
                f'No visible tiles but message is not the expected one: "{clip(observation.message_text)}"')
    return Verdict.PASSED_NO_VISIBLE_TILES, 'No visible tiles found for this combination'


class PageStateClassifier:
    def __init__(self, run_context, executor: RetryExecutor, dropdowns: DropdownController,
                 sleep: Callable[[float], None] = time.sleep, link_checker: Callable = get_status_code):
        self.ctx = run_context
        self.config = run_context.config
        self.executor = executor
        self.dropdowns = dropdowns
        self._sleep = sleep
        self._link_checker = link_checker
        self.base_url: Optional[str] = None

    @property
    def session(self):
        return self.ctx.sessions.require()

    def classify(self, ordinal: int, selection: Selection, handles: List) -> CombinationResult:
        started_at = datetime.now().isoformat()
        tiles = TileObservation()
        sort = SortObservation(reason='Not evaluated')
        error = None
        note = None
        generation = self.ctx.sessions.generation
        try:
            self.verify_selection(selection, handles)
            tiles = self.observe_tiles()
            verdict, note = decide_verdict(tiles)
            sort = self.validate_sort(tiles)
            if self.ctx.sessions.generation != generation:
                # a re-created session starts from a fresh page, not from this selection
                raise StaleSessionError(f"Session replaced while classifying combo {ordinal}")
        except StaleSessionError:
            raise
        except OperationExhaustedError as e:
            if isinstance(e.last_error, StaleSessionError) or self.ctx.sessions.generation != generation:
                raise StaleSessionError(f"Session replaced while classifying combo {ordinal}") from e
            verdict = Verdict.FAILED
            error = str(e.last_error)
        except Exception as e:
            verdict = Verdict.FAILED
            error = str(e)

        self.ctx.validation_log.capture(f"Combo {ordinal}: {verdict.value}", {
            'selection': describe_selection(selection),
            'tiles': f"{tiles.visible_count} visible ({tiles.total_found} found)",
            'message': clip(tiles.message_text, 50) or None,
            'sort': sort.status.value,
            'error': error,
        }, immediate=verdict is Verdict.FAILED)
        return CombinationResult(
            ordinal=ordinal,
            selection=selection,
            verdict=verdict,
            tile_observation=tiles,
            sort_observation=sort,
            error=error,
            started_at=started_at,
            finished_at=datetime.now().isoformat(),
            note=note,
        )

    def verify_selection(self, selection: Selection, handles: List) -> None:
        for entry in selection:
            actual = self.dropdowns.read_value(handles[entry.dropdown_index])
            if actual != entry.option.value:
                raise SelectionVerificationError(entry.dropdown_index, entry.option.value, actual)

    def observe_tiles(self) -> TileObservation:
        return self.executor.execute_with_retry('tileValidation', self._observe_tiles_once)

    def _observe_tiles_once(self) -> TileObservation:
        session = self.session
        self._sleep(self.config.TILE_SETTLE_DELAY)
        session.scroll_to_top()
        strategy, tiles = first_non_empty(TILE_STRATEGIES, session.evaluate)
        described = {'visible': 0, 'samples': []}
        if tiles:
            described = session.evaluate(DESCRIBE_TILES, tiles, self.config.TILE_SAMPLE_SIZE) or described
        message = self.detect_no_results()
        observation = TileObservation(
            total_found=len(tiles),
            visible_count=int(described.get('visible') or 0),
            has_no_results_message=bool(message.get('found')),
            message_text=message.get('text'),
            message_element=message.get('element'),
            message_is_canonical=bool(message.get('canonical')),
            message_visible=bool(message.get('visible')),
            strategy=strategy or 'no strategies worked',
            sample_tiles=list(described.get('samples') or []),
        )
        if observation.has_no_results_message and observation.total_found and not observation.visible_count:
            observation.hidden_count = int(session.evaluate(HIDDEN_TILE_COUNT) or 0)
        if self.config.CHECK_TILE_LINKS:
            for sample in observation.sample_tiles:
                sample['status_code'] = self._link_checker(sample.get('href'), self.base_url)
        return observation

    def detect_no_results(self) -> Dict:
        return pick_message(self.session.evaluate(
            NO_RESULTS_PROBE, self.config.NO_RESULTS_MESSAGES, self.config.CANONICAL_NO_RESULTS))

    def validate_sort(self, tiles: TileObservation) -> SortObservation:
        if tiles.visible_count < 2:
            return SortObservation(status=SortStatus.NOT_APPLICABLE, tiles_to_sort=tiles.visible_count,
                                   reason='Insufficient tiles (< 2) for sort validation')
        try:
            return self.executor.execute_with_retry('sortByValidation', lambda: self._probe_sort(tiles))
        except OperationExhaustedError as e:
            if isinstance(e.last_error, StaleSessionError):
                raise e.last_error
            return SortObservation(status=SortStatus.ERROR, tiles_to_sort=tiles.visible_count,
                                   reason=f"Sort validation failed: {e.last_error}")

    def _probe_sort(self, tiles: TileObservation) -> SortObservation:
        self._sleep(self.config.SORT_SETTLE_DELAY)
        controls = self.session.evaluate(SORT_CONTROLS, self.config.SORT_CONTROL_SELECTORS) or {}
        count = int(controls.get('count') or 0)
        if not count:
            return SortObservation(status=SortStatus.NOT_APPLICABLE, tiles_to_sort=tiles.visible_count,
                                   reason='No sort controls found on page')
        titles = [sample['title'] for sample in tiles.sample_tiles if sample.get('title')]
        options = [control for control in controls.get('controls') or [] if control.get('options')]
        if len(titles) < 2:
            return SortObservation(status=SortStatus.NOT_APPLICABLE, tiles_to_sort=tiles.visible_count,
                                   sort_controls_found=count, sort_options=options,
                                   reason='Insufficient tile titles for sort validation')
        return SortObservation(
            status=classify_order(titles),
            reason='Sufficient tiles (>= 2) and sort controls available',
            tiles_to_sort=tiles.visible_count,
            sort_controls_found=count,
            sort_options=options,
            sample_titles=titles[:3],
        )
