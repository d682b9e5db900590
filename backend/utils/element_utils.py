# utils/element_utils.py
import logging
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar
from urllib.parse import urljoin

import requests

T = TypeVar('T')


def first_non_empty(strategies: Iterable[Tuple[str, T]], probe: Callable[[T], List]) -> Tuple[Optional[str], List]:
    """Try each (name, strategy) in order; return the first that yields anything."""
    for name, strategy in strategies:
        found = probe(strategy) or []
        logging.debug(f"Strategy {name}: {len(found)} matches")
        if found:
            return name, list(found)
    return None, []


def get_status_code(href: str, base_url: str = None) -> Optional[List[int]]:
    if not href or href.startswith(('#', 'javascript:', 'mailto:', 'tel:')):
        return None
    try:
        if base_url and not href.startswith(('http://', 'https://')):
            href = urljoin(base_url, href)
        response = requests.head(href, allow_redirects=True, timeout=5)
        return [r.status_code for r in response.history] + [response.status_code]
    except requests.RequestException:
        return None


def clip(text: Optional[str], length: int = 100) -> str:
    return (text or '')[:length]
