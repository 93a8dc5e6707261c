"""
Gherkin writer
Turns a feature tree back into feature file text
"""

from typing import List, Optional, Union

from featurecraft.models.document import DocumentNode, NodeKind, Table, TreeInvariantError
from featurecraft.models.locale import Locale, get_locale
from featurecraft.utils.helpers import fill_char
from featurecraft.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_INDENT = '  '


def escape_cell(text: str) -> str:
    """Cell text as written between pipes: '\\' becomes '\\\\' and '|' becomes '\\|'"""
    return text.replace('\\', '\\\\').replace('|', '\\|')


class GherkinWriter:
    """
    Serialize feature trees into canonical feature file text.

    A feature is written as blocks separated by one blank line: the header
    (comment, tags, title line, description) and then one block per child.
    Scenario and Background bodies are indented one level, steps two and
    table rows three.
    """

    def __init__(self, locale: Union[Locale, str] = None, indent: str = DEFAULT_INDENT):
        self.locale = locale if isinstance(locale, Locale) else get_locale(locale)
        self.indent = indent

    def serialize(self, node: DocumentNode) -> str:
        """Text of a node and its subtree"""
        if node.kind == NodeKind.FEATURE:
            blocks = [self._feature_header(node)]
            blocks.extend(self._child_block(child) for child in node.children)
        else:
            blocks = [self._child_block(node)]
        return self._join(blocks)

    def export(self, node: DocumentNode) -> str:
        """
        Text that runs on its own.

        A Scenario or Background is written under a header synthesized from its
        Feature, and a Scenario is preceded by the Feature's Background.
        """
        if node.kind == NodeKind.FEATURE:
            return self.serialize(node)
        if node.kind not in (NodeKind.SCENARIO, NodeKind.BACKGROUND):
            raise ValueError(f"Cannot export a {node.kind.value} on its own")

        feature = node.feature()
        if feature is None:
            raise ValueError(f"{node!r} is not part of a feature")

        blocks = [self._feature_header(feature, with_description=False)]
        background = node.find_background()
        if background is not None and background is not node:
            blocks.append(self._child_block(background))
        blocks.append(self._child_block(node))
        return self._join(blocks)

    def table_lines(self, table: Table, depth: int = 3) -> List[str]:
        """Pipe-delimited rows, each column padded to its longest escaped cell"""
        rows = [[escape_cell(text) for text in row] for row in table.rows]
        widths = [max(len(row[j]) for row in rows) for j in range(table.col_count)]
        lines = []
        for row in rows:
            line = self.indent * depth + '|'
            for text, width in zip(row, widths):
                if text:
                    line += ' ' + text + fill_char(' ', width + 1 - len(text))
                else:
                    line += fill_char(' ', width + 2)
                line += '|'
            lines.append(line)
        return lines

    def _feature_header(self, feature: DocumentNode, with_description: bool = True) -> List[str]:
        lines = self._comment_lines(feature.comment, 0)
        if feature.tags:
            lines.append(' '.join(feature.tags))
        lines.append(f"{self.locale.feature}: {feature.title}".rstrip())
        if with_description:
            lines.extend((self.indent + line).rstrip() for line in feature.description)
        return lines

    def _child_block(self, node: DocumentNode) -> List[str]:
        if node.kind == NodeKind.COMMENT:
            return self._comment_lines(node.title, 1)
        if node.kind not in (NodeKind.SCENARIO, NodeKind.BACKGROUND):
            raise TreeInvariantError(f"A {node.kind.value} cannot be written at feature level")

        lines = self._comment_lines(node.comment, 1)
        if node.tags:
            lines.append(self.indent + ' '.join(node.tags))
        keyword = self.locale.scenario if node.kind == NodeKind.SCENARIO else self.locale.background
        lines.append(f"{self.indent}{keyword}: {node.title}".rstrip())
        for child in node.children:
            lines.extend(self._body_lines(child))
        return lines

    def _body_lines(self, node: DocumentNode) -> List[str]:
        if node.kind == NodeKind.COMMENT:
            return self._comment_lines(node.title, 2)
        lines = self._comment_lines(node.comment, 2)
        lines.append(self.indent * 2 + node.title.strip())
        if node.table is not None:
            lines.extend(self.table_lines(node.table))
        return lines

    def _comment_lines(self, text: Optional[str], depth: int) -> List[str]:
        if text is None:
            return []
        lines = []
        for line in text.split('\n'):
            lines.append(self.indent * depth + ('# ' + line if line else '#'))
        return lines

    @staticmethod
    def _join(blocks: List[List[str]]) -> str:
        return '\n\n'.join('\n'.join(block) for block in blocks if block) + '\n'
