"""Gherkin keyword tables per spoken language"""
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from featurecraft.utils.helpers import unique


@dataclass(frozen=True)
class Locale:
    language: str
    feature: str
    background: str
    scenario: str
    step_keywords: Tuple[str, ...]

    def word_step_keywords(self) -> List[str]:
        """Step keywords usable in step definitions (skips punctuation-only ones like '*')"""
        return [keyword for keyword in self.step_keywords if is_word(keyword)]

    def step_keyword_of(self, line: str) -> Optional[str]:
        """Return the step keyword a line starts with, if any"""
        for keyword in self.step_keywords:
            if line == keyword or line.startswith(keyword + ' '):
                return keyword
        return None


LOCALES: Dict[str, Locale] = {
    'en': Locale(
        language='en',
        feature='Feature',
        background='Background',
        scenario='Scenario',
        step_keywords=('Given', 'When', 'Then', 'And', 'But', '*'),
    ),
    'da': Locale(
        language='da',
        feature='Egenskab',
        background='Baggrund',
        scenario='Scenarie',
        step_keywords=('Givet', 'Når', 'Så', 'Og', 'Men', '*'),
    ),
}

DEFAULT_LANGUAGE = 'en'


def is_word(text: str) -> bool:
    return bool(re.fullmatch(r'\w+', text))


def get_locale(language: str = DEFAULT_LANGUAGE) -> Locale:
    try:
        return LOCALES[language or DEFAULT_LANGUAGE]
    except KeyError:
        raise ValueError(f"Unsupported language: {language}") from None


def all_step_prefixes() -> List[str]:
    """Every step keyword of every known locale"""
    return unique(keyword for locale in LOCALES.values() for keyword in locale.step_keywords)
