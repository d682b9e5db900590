# utils/csv_loader.py
import csv
import logging
import os
from typing import List

from config.settings import Config
from core.errors import CsvLoadError
from models.results import TestCase

logger = logging.getLogger(__name__)

FIELDNAMES = ['url', 'description', 'expectedDropdowns', 'browser', 'device', 'mobileDevice', 'headless']


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def default_test_case(config=Config, url: str = None) -> TestCase:
    return TestCase(
        url=url or config.DEFAULT_URL,
        description='Default',
        browser=config.BROWSER,
        device=config.DEVICE,
        mobile_device=config.MOBILE_DEVICE,
        headless=config.HEADLESS,
    )


def write_default_csv(path: str, config=Config) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        writer.writerow({
            'url': config.DEFAULT_URL,
            'description': 'Test Page',
            'expectedDropdowns': 3,
            'browser': config.BROWSER,
            'device': config.DEVICE,
            'mobileDevice': config.MOBILE_DEVICE,
            'headless': str(config.HEADLESS).lower(),
        })
    logger.info(f"Created default CSV at {path}")


def load_test_cases(path: str = None, config=Config) -> List[TestCase]:
    """Read test cases from a CSV file, creating a one-row default file when missing."""
    path = path or config.CSV_PATH
    if not os.path.exists(path):
        write_default_csv(path, config)
    test_cases = []
    try:
        with open(path, newline='', encoding='utf-8-sig') as f:
            for row in csv.DictReader(f):
                url = (row.get('url') or '').strip()
                if not url:
                    continue
                test_cases.append(TestCase(
                    url=url,
                    description=(row.get('description') or '').strip(),
                    expected_dropdowns=_to_int(row.get('expectedDropdowns'), 3) or 3,
                    browser=(row.get('browser') or config.BROWSER).strip().lower(),
                    device=(row.get('device') or config.DEVICE).strip().lower(),
                    mobile_device=(row.get('mobileDevice') or config.MOBILE_DEVICE).strip(),
                    headless=(row.get('headless') or '').strip().lower() == 'true',
                ))
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise CsvLoadError(f"Could not read {path}: {e}") from e
    if not test_cases:
        logger.warning(f"No URLs in {path}; using the default test case")
        test_cases.append(default_test_case(config))
    logger.info(f"Loaded {len(test_cases)} URLs from {path}")
    return test_cases
