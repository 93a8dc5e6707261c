"""
Step matcher
Decides whether step text corresponds to a known step definition
"""

import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from featurecraft.models.document import DocumentNode
from featurecraft.parser.step_definition_parser import StepPattern
from featurecraft.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class MatchResult:
    matched: bool
    bound_values: List[str] = field(default_factory=list)
    prefix: Optional[str] = None
    pattern: Optional[StepPattern] = None


def match(step_text: str, patterns: Sequence[StepPattern]) -> MatchResult:
    """First pattern (in import order) whose expression matches the whole text wins"""
    step_text = step_text.strip()
    for pattern in patterns:
        found = pattern.compiled_pattern.fullmatch(step_text)
        if found:
            groups = found.groups()
            return MatchResult(
                matched=True,
                bound_values=[value if value is not None else '' for value in groups[1:]],
                prefix=groups[0],
                pattern=pattern,
            )
    return MatchResult(matched=False)


class PatternMatcher:
    """Holds the active pattern set and annotates Step nodes with their match status"""

    def __init__(self, patterns: Iterable[StepPattern] = ()):
        self._patterns: Tuple[StepPattern, ...] = tuple(patterns)
        self._swap_lock = threading.Lock()

    @property
    def patterns(self) -> Tuple[StepPattern, ...]:
        return self._patterns

    def replace_patterns(self, patterns: Iterable[StepPattern]):
        """Swap in a complete new pattern set; the previous set is dropped entirely"""
        new_patterns = tuple(patterns)
        with self._swap_lock:
            self._patterns = new_patterns
        logger.info(f"Active step definitions: {len(new_patterns)}")

    def match(self, step_text: str) -> MatchResult:
        return match(step_text, self._patterns)

    def apply(self, node: DocumentNode) -> MatchResult:
        """Match a Step node's text and record the result on the node"""
        result = self.match(node.title)
        node.matched = result.matched
        node.bound_values = list(result.bound_values)
        if not result.matched:
            logger.debug(f"Unmatched step: {node.title}")
        return result

    def apply_all(self, nodes: Iterable[DocumentNode]) -> int:
        """Re-match every step below the given nodes, returning the unmatched count"""
        unmatched = 0
        for node in nodes:
            for step in node.iter_steps():
                if not self.apply(step).matched:
                    unmatched += 1
        return unmatched
