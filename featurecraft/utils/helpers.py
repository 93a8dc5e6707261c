"""Helper utilities"""
import re
import time
from typing import Iterable, List


def sanitize_filename(name: str) -> str:
    """Sanitize string for use as filename"""
    return re.sub(r'[<>:"/\\|?*]', '_', name)


def fill_char(char: str, count: int) -> str:
    """Repeat a character, returning an empty string for non-positive counts"""
    return char * max(count, 0)


def template_feature_filename() -> str:
    """Filename for a feature that has not been saved yet"""
    return f"noname_{int(time.time() * 1000)}.feature"


def unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates while keeping first-seen order"""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
