# config/settings.py
import os


def _env_float(name, default):
    return float(os.getenv(name, default))


class Config:
    # Browser defaults, overridden per CSV row
    BROWSER = os.getenv('BROWSER', 'chrome')
    DEVICE = os.getenv('DEVICE', 'desktop')
    MOBILE_DEVICE = os.getenv('MOBILE_DEVICE', 'iPhone 12')
    HEADLESS = os.getenv('HEADLESS', 'true').lower() == 'true'
    PAGE_LOAD_TIMEOUT = int(os.getenv('PAGE_LOAD_TIMEOUT', 60))
    SCRIPT_TIMEOUT = int(os.getenv('SCRIPT_TIMEOUT', 60))

    # Input / output
    CSV_PATH = os.getenv('CSV_PATH', 'urls.csv')
    DEFAULT_URL = os.getenv('DEFAULT_URL', 'https://example.com')
    REPORT_DIR = os.getenv('REPORT_DIR', 'reports')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')

    # Page structure
    CONTAINER_SELECTOR = os.getenv('CONTAINER_SELECTOR', '.nw-container')
    CONTAINER_TIMEOUT = _env_float('CONTAINER_TIMEOUT', 30)
    MAX_DROPDOWNS = int(os.getenv('MAX_DROPDOWNS', 3))
    DROPDOWN_SELECTORS = [
        'bolt-select',
        '.main-filter bolt-select',
        'select[data-test="select"]',
        'select',
    ]
    RESET_BUTTON_SELECTOR = os.getenv('RESET_BUTTON_SELECTOR', '#tileFilterResetButton')
    POPUP_SELECTORS = [
        '#truste-consent-button',
        'button.call[role="button"]',
        'button[aria-label*="Accept"]',
        '.cookie-banner button',
        '.truste-icon-box',
        'button.required[role="button"]',
    ]

    # Delays, in seconds
    SETTLE_DELAY = _env_float('SETTLE_DELAY', 0.8)
    TILE_SETTLE_DELAY = _env_float('TILE_SETTLE_DELAY', 2.5)
    SORT_SETTLE_DELAY = _env_float('SORT_SETTLE_DELAY', 1.0)
    RESET_SETTLE_DELAY = _env_float('RESET_SETTLE_DELAY', 1.0)
    RECOVERY_DELAY = _env_float('RECOVERY_DELAY', 2.0)
    POPUP_DELAY = _env_float('POPUP_DELAY', 2.0)
    BETWEEN_URLS_DELAY = _env_float('BETWEEN_URLS_DELAY', 3.0)

    # Retry policy
    BACKOFF_BASE = _env_float('BACKOFF_BASE', 1.0)
    BACKOFF_CAP = _env_float('BACKOFF_CAP', 10.0)
    BACKOFF_JITTER = _env_float('BACKOFF_JITTER', 1.0)
    DEFAULT_MAX_ATTEMPTS = 3
    MAX_ATTEMPTS = {
        'initializeDriver': 2,
        'navigation': 3,
        'dropdownFinding': 2,
        'dropdownOptions': 2,
        'selection': 2,
        'testAllCombinations': 3,
        'tileValidation': 2,
        'sortByValidation': 2,
    }

    # Liveness monitor and validation log
    MONITOR_INTERVAL = _env_float('MONITOR_INTERVAL', 10)
    ACTIVITY_TIMEOUT = _env_float('ACTIVITY_TIMEOUT', 45)
    STUCK_RECOVERY_MAX = int(os.getenv('STUCK_RECOVERY_MAX', 2))
    FLUSH_INTERVAL = _env_float('FLUSH_INTERVAL', 5)
    FLUSH_THRESHOLD = int(os.getenv('FLUSH_THRESHOLD', 50))

    # Classification
    TILE_SAMPLE_SIZE = int(os.getenv('TILE_SAMPLE_SIZE', 10))
    CANONICAL_NO_RESULTS = "There are no items that match your choices."
    NO_RESULTS_MESSAGES = [
        CANONICAL_NO_RESULTS,
        "No results found",
        "No items match your selection",
        "No content available",
        "0 results found",
        "No matches found",
    ]
    SORT_CONTROL_SELECTORS = [
        'select[data-test*="sort"]',
        '[data-test*="sort"] select',
        '.sort-by',
        '.sort-select',
        'bolt-select[data-test*="sort"]',
        '[class*="sort"] select',
        '[id*="sort"]',
    ]
    CHECK_TILE_LINKS = os.getenv('CHECK_TILE_LINKS', 'false').lower() == 'true'

    # Console noise routed to browser-errors.log
    CONSOLE_FILTERS = ['DEPRECATED_ENDPOINT', 'GCM', 'gcm', 'ERROR:device_event_log', 'ERROR:gpu']

    DEVICE_PRESETS = {
        'iPhone 12': {'width': 390, 'height': 844, 'pixel_ratio': 3,
                      'user_agent': 'Mozilla/5.0 (iPhone; CPU iPhone OS 14_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1'},
        'Samsung Galaxy S21': {'width': 360, 'height': 800, 'pixel_ratio': 3,
                               'user_agent': 'Mozilla/5.0 (Linux; Android 11; SM-G991B) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.114 Mobile Safari/537.36'},
        'iPad Pro': {'width': 1024, 'height': 1366, 'pixel_ratio': 2,
                     'user_agent': 'Mozilla/5.0 (iPad; CPU OS 14_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1'},
        'Surface Duo': {'width': 540, 'height': 720, 'pixel_ratio': 2.5,
                        'user_agent': 'Mozilla/5.0 (Linux; Android 10; Surface Duo) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Mobile Safari/537.36 Edg/91.0.864.64'},
    }

    @classmethod
    def max_attempts_for(cls, operation_name: str) -> int:
        return cls.MAX_ATTEMPTS.get(operation_name, cls.DEFAULT_MAX_ATTEMPTS)
