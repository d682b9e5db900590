# models/results.py
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, List, Tuple


class Verdict(str, Enum):
    PASSED = 'PASSED'
    PASSED_NO_RESULTS_EXPECTED = 'PASSED_NO_RESULTS_EXPECTED'
    PASSED_AMBIGUOUS_MESSAGE = 'PASSED_AMBIGUOUS_MESSAGE'
    PASSED_NO_VISIBLE_TILES = 'PASSED_NO_VISIBLE_TILES'
    FAILED = 'FAILED'

    @property
    def is_pass(self) -> bool:
        return self is not Verdict.FAILED


class SortStatus(str, Enum):
    ALPHABETICAL = 'ALPHABETICAL'
    REVERSE_ALPHABETICAL = 'REVERSE_ALPHABETICAL'
    UNSORTED = 'UNSORTED'
    NOT_APPLICABLE = 'NOT_APPLICABLE'
    ERROR = 'ERROR'


class UrlStatus(str, Enum):
    PENDING = 'PENDING'
    PASSED = 'PASSED'
    FAILED = 'FAILED'
    SKIPPED = 'SKIPPED'
    ERROR = 'ERROR'


@dataclass(frozen=True)
class Option:
    value: str
    label: str
    ordinal_index: int

    def display(self) -> str:
        return self.label or self.value


@dataclass(frozen=True)
class SelectionEntry:
    dropdown_index: int
    option: Option


Selection = Tuple[SelectionEntry, ...]


def describe_selection(selection: Selection) -> str:
    return ' > '.join(entry.option.display() for entry in selection)


@dataclass
class TileObservation:
    total_found: int = 0
    visible_count: int = 0
    has_no_results_message: bool = False
    message_text: Optional[str] = None
    message_element: Optional[str] = None
    message_is_canonical: bool = False
    message_visible: bool = False
    hidden_count: int = 0
    strategy: str = ''
    sample_tiles: List[Dict] = field(default_factory=list)

    @property
    def observed(self) -> bool:
        # every observation of the page records the strategy it ended on
        return bool(self.strategy)


@dataclass
class SortObservation:
    status: SortStatus = SortStatus.NOT_APPLICABLE
    reason: str = ''
    tiles_to_sort: int = 0
    sort_controls_found: int = 0
    sort_options: List[Dict] = field(default_factory=list)
    sample_titles: List[str] = field(default_factory=list)

    @property
    def applicable(self) -> bool:
        return self.status not in (SortStatus.NOT_APPLICABLE, SortStatus.ERROR)


@dataclass(frozen=True)
class CombinationResult:
    ordinal: int
    selection: Selection
    verdict: Verdict
    tile_observation: TileObservation
    sort_observation: SortObservation
    error: Optional[str]
    started_at: str
    finished_at: str
    note: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.verdict.is_pass

    def to_dict(self) -> Dict:
        return {
            'ordinal': self.ordinal,
            'name': f'Combo {self.ordinal}',
            'selection': [
                {'dropdown': entry.dropdown_index + 1, 'value': entry.option.value, 'label': entry.option.label}
                for entry in self.selection
            ],
            'verdict': self.verdict.value,
            'status': 'PASSED' if self.passed else 'FAILED',
            'tile_observation': asdict(self.tile_observation),
            'sort_observation': {**asdict(self.sort_observation), 'status': self.sort_observation.status.value},
            'error': self.error,
            'note': self.note,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
        }


@dataclass
class TestCase:
    url: str
    description: str = ''
    expected_dropdowns: int = 3
    browser: str = 'chrome'
    device: str = 'desktop'
    mobile_device: str = 'iPhone 12'
    headless: bool = False

    # keep pytest from collecting this as a test class
    __test__ = False


@dataclass
class UrlRunResult:
    test_case: TestCase
    status: UrlStatus = UrlStatus.PENDING
    dropdown_count: int = 0
    dropdown_details: List[Dict] = field(default_factory=list)
    combinations: List[CombinationResult] = field(default_factory=list)
    expected_combinations: int = 0
    summary: Dict = field(default_factory=dict)
    tile_summary: Dict = field(default_factory=dict)
    sort_summary: Dict = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)
    error: Optional[str] = None
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    finished_at: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'url': self.test_case.url,
            'description': self.test_case.description,
            'browser': self.test_case.browser,
            'device': self.test_case.device,
            'mobile_device': self.test_case.mobile_device,
            'headless': self.test_case.headless,
            'status': self.status.value,
            'dropdowns': self.dropdown_count,
            'dropdown_details': self.dropdown_details,
            'expected_combinations': self.expected_combinations,
            'summary': self.summary,
            'tile_summary': self.tile_summary,
            'sort_summary': self.sort_summary,
            'notes': self.notes,
            'error': self.error,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
            'combinations': [c.to_dict() for c in self.combinations],
        }
