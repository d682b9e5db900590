"""In-memory page and browser session standing in for Selenium."""

from selenium.common.exceptions import StaleElementReferenceException, TimeoutException, WebDriverException

from config.settings import Config
from core import page_scripts
from core.errors import StaleSessionError


def no_sleep(seconds):
    pass


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeSelect:
    def __init__(self, name, options):
        self.name = name
        self.options = options
        self.value = options[0][0]

    def reset(self):
        self.value = self.options[0][0]


class FakeHandle:
    """Element handle tied to the session generation that found it."""

    def __init__(self, select, generation):
        self.select = select
        self.generation = generation


class FakePage:
    """Dropdowns, tiles and messages of a page, computed from the current selects.

    ``tiles`` and ``message`` are callables taking the tuple of current select
    values. ``message`` returns the text of a visible notification, or the
    raw list of matching elements. ``on_set`` is called with the running count
    of value writes. Dropdowns answer only ``dropdown_selector``; without
    ``container`` the page never renders its filter container.
    """

    def __init__(self, dropdowns=None, tiles=lambda values: 3, message=lambda values: None,
                 sort_controls=0, titles=None, rejected=(), reset_button=False,
                 dropdown_selector=Config.DROPDOWN_SELECTORS[0], container=True):
        self.selects = [FakeSelect(f"d{i}", [(value, value) for value in values])
                        for i, values in enumerate(dropdowns or [])]
        self.tiles = tiles
        self.message = message
        self.sort_controls = sort_controls
        self.titles = titles
        self.rejected = set(rejected)
        self.reset_button = reset_button
        self.dropdown_selector = dropdown_selector
        self.container = container
        self.sort_error = False
        self.history = []
        self.on_set = None

    @property
    def values(self):
        return tuple(select.value for select in self.selects)

    def reset(self):
        for select in self.selects:
            select.reset()


class FakeSession:
    def __init__(self, page, generation=1):
        self.page = page
        self.generation = generation
        self.discarded = False
        self.quit_called = False
        self.refreshes = 0
        self.cookies_cleared = 0
        self.scrolls = 0
        self.urls = []
        self.queries = []
        self.refresh_error = None

    def _check(self):
        if self.discarded:
            raise StaleSessionError(f"Session {self.generation} was discarded")

    def _select(self, handle):
        if handle.generation != self.generation:
            raise StaleElementReferenceException("stale element reference")
        return handle.select

    def navigate(self, url, timeout=None):
        self._check()
        self.urls.append(url)
        self.page.reset()

    def find_elements(self, css_selector):
        self._check()
        self.queries.append(css_selector)
        if css_selector == Config.CONTAINER_SELECTOR:
            return ['container'] if self.page.container else []
        if css_selector == self.page.dropdown_selector:
            return [FakeHandle(select, self.generation) for select in self.page.selects]
        if css_selector == Config.RESET_BUTTON_SELECTOR and self.page.reset_button:
            return ['reset-button']
        return []

    def evaluate(self, script, *args):
        self._check()
        page = self.page
        if script == page_scripts.READ_OPTIONS:
            return [{'value': value, 'label': label, 'index': i}
                    for i, (value, label) in enumerate(self._select(args[0]).options)]
        if script == page_scripts.SET_VALUE:
            select = self._select(args[0])
            page.history.append((select.name, args[1]))
            if page.on_set:
                page.on_set(len(page.history))
                self._check()
            if (select.name, args[1]) in page.rejected:
                return False
            select.value = args[1]
            return True
        if script == page_scripts.READ_VALUE:
            return self._select(args[0]).value
        if script == page_scripts.READY_STATE:
            return 'complete'
        if script == page_scripts.SCROLL_TO_TOP:
            return None
        if script == page_scripts.BOLT_TILES:
            return [f"tile-{i}" for i in range(page.tiles(page.values))]
        if script in (page_scripts.CONTAINER_TILES, page_scripts.GRID_TILES, page_scripts.CONTENT_LINK_TILES):
            return []
        if script == page_scripts.DESCRIBE_TILES:
            tiles, size = args
            titles = page.titles or [f"Tile {i}" for i in range(len(tiles))]
            return {'visible': len(tiles),
                    'samples': [{'index': i, 'title': titles[i], 'href': f"/topics/{i}"}
                                for i in range(min(len(tiles), size))]}
        if script == page_scripts.NO_RESULTS_PROBE:
            phrasings, canonical = args
            message = page.message(page.values)
            if message is None:
                return []
            if isinstance(message, list):
                return message
            return [{'text': message, 'element': 'bolt-notification', 'canonical': canonical in message,
                     'visible': True, 'nested_match': False, 'notification': True}]
        if script == page_scripts.HIDDEN_TILE_COUNT:
            return 0
        if script == page_scripts.SORT_CONTROLS:
            if page.sort_error:
                raise WebDriverException("sort probe failed")
            return {'count': page.sort_controls,
                    'controls': [{'tag_name': 'select', 'class_name': 'sort-by',
                                  'options': [{'label': 'A-Z', 'value': 'az'}]}] * page.sort_controls}
        raise AssertionError(f"Unexpected script: {script[:60]}")

    def wait(self, predicate, timeout):
        if not predicate():
            raise TimeoutException(f"Timed out after {timeout}s")

    def refresh(self):
        self._check()
        if self.refresh_error:
            raise self.refresh_error
        self.refreshes += 1

    def delete_all_cookies(self):
        self._check()
        self.cookies_cleared += 1

    def scroll_to_top(self):
        self.evaluate(page_scripts.SCROLL_TO_TOP)
        self.scrolls += 1

    def click(self, element):
        self._check()
        if element == 'reset-button':
            self.page.reset()

    def discard(self):
        self.discarded = True

    def quit(self):
        self.quit_called = True
        self.discarded = True
