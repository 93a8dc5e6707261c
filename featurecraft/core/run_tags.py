"""Run tag selection: which tagged scenarios a test run includes or excludes"""
from typing import Iterable, List, Set

NEGATION_PREFIX = '~'


def negated_tag(tag: str) -> str:
    return NEGATION_PREFIX + tag


def is_negated(tag: str) -> bool:
    return tag.startswith(NEGATION_PREFIX)


class RunTagSelection:
    """
    Set of enabled run tags, kept outside the feature tree.

    Toggling cycles a tag through off -> '@tag' -> '~@tag' -> off.
    """

    def __init__(self, tags: Iterable[str] = ()):
        self._tags: Set[str] = set(tags)

    def toggle(self, tag: str):
        negated = negated_tag(tag)
        if tag in self._tags:
            self._tags.remove(tag)
            self._tags.add(negated)
        elif negated in self._tags:
            self._tags.remove(negated)
        else:
            self._tags.add(tag)

    def is_enabled(self, tag: str) -> bool:
        return tag in self._tags

    def clear(self):
        self._tags.clear()

    @property
    def tags(self) -> List[str]:
        return sorted(self._tags)

    def selects(self, tags: Iterable[str]) -> bool:
        """
        Whether something carrying these tags takes part in the run.

        With no positive tags enabled everything not excluded is selected.
        """
        tags = set(tags)
        excluded = {tag[len(NEGATION_PREFIX):] for tag in self._tags if is_negated(tag)}
        included = {tag for tag in self._tags if not is_negated(tag)}
        if tags & excluded:
            return False
        return not included or bool(tags & included)
