# core/enumerator.py
import itertools
import logging
from datetime import datetime
from functools import reduce
from typing import Callable, List, Optional, Sequence

from core.dropdowns import DropdownController
from models.results import (
    CombinationResult,
    Option,
    Selection,
    SelectionEntry,
    SortObservation,
    TileObservation,
    Verdict,
)

logger = logging.getLogger(__name__)


def total_combinations(option_sets: Sequence[Sequence[Option]]) -> int:
    return reduce(lambda total, options: total * len(options), option_sets, 1)


class CombinationEnumerator:
    """Depth-first walk over every full assignment of options to dropdowns.

    Between sibling options of dropdown ``d`` only dropdowns ``d+1..N-1`` are
    reset; dropdown ``d`` is overwritten by the next selection anyway. When an
    option cannot be applied, every leaf of its subtree is recorded as a
    FAILED result with a full-length selection, so a URL always reports one
    result per combination.
    """

    def __init__(self, dropdowns: DropdownController, classify: Callable[[int, Selection, List], CombinationResult],
                 on_result: Optional[Callable[[CombinationResult, int], None]] = None):
        self.dropdowns = dropdowns
        self.classify = classify
        self.on_result = on_result
        self._expected = 0

    def enumerate(self, handles: List, option_sets: List[List[Option]]) -> List[CombinationResult]:
        if len(handles) != len(option_sets):
            raise ValueError(f"{len(handles)} dropdowns but {len(option_sets)} option sets")
        self._expected = total_combinations(option_sets)
        results: List[CombinationResult] = []
        self._walk(handles, option_sets, 0, (), results)
        return results

    def _walk(self, handles, option_sets, idx: int, partial: Selection, results: List[CombinationResult]) -> None:
        if idx == len(option_sets):
            self._record(self.classify(len(results) + 1, partial, handles), results)
            return
        options = option_sets[idx]
        for i, option in enumerate(options):
            selection = partial + (SelectionEntry(idx, option),)
            if self.dropdowns.apply_option(handles[idx], option, idx):
                self._walk(handles, option_sets, idx + 1, selection, results)
                if i < len(options) - 1 and idx < len(option_sets) - 1:
                    self.dropdowns.reset_dropdowns(handles, idx + 1)
            else:
                self._record_unreachable(option_sets, idx, selection, results)

    def _record_unreachable(self, option_sets, idx: int, selection: Selection,
                            results: List[CombinationResult]) -> None:
        failed = selection[-1].option
        error = f"Failed to select {failed.display()!r} in dropdown {idx + 1}"
        remaining = option_sets[idx + 1:]
        for tail in itertools.product(*remaining):
            leaf = selection + tuple(SelectionEntry(idx + 1 + k, option) for k, option in enumerate(tail))
            self._record(synthetic_failure(len(results) + 1, leaf, error), results)

    def _record(self, result: CombinationResult, results: List[CombinationResult]) -> None:
        results.append(result)
        if self.on_result:
            self.on_result(result, self._expected)


def synthetic_failure(ordinal: int, selection: Selection, error: str) -> CombinationResult:
    now = datetime.now().isoformat()
    return CombinationResult(
        ordinal=ordinal,
        selection=selection,
        verdict=Verdict.FAILED,
        tile_observation=TileObservation(),
        sort_observation=SortObservation(reason='Combination not reached'),
        error=error,
        started_at=now,
        finished_at=now,
    )
