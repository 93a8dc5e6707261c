"""
Feature tree model
Features own Backgrounds, Scenarios and Comments; Scenarios own Steps and Comments
"""

import copy
import weakref
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Set


class NodeKind(Enum):
    FEATURE = "feature"
    BACKGROUND = "background"
    SCENARIO = "scenario"
    COMMENT = "comment"
    STEP = "step"


ALLOWED_CHILDREN = {
    NodeKind.FEATURE: {NodeKind.BACKGROUND, NodeKind.SCENARIO, NodeKind.COMMENT},
    NodeKind.BACKGROUND: {NodeKind.STEP, NodeKind.COMMENT},
    NodeKind.SCENARIO: {NodeKind.STEP, NodeKind.COMMENT},
    NodeKind.COMMENT: set(),
    NodeKind.STEP: set(),
}

TAGGABLE = {NodeKind.FEATURE, NodeKind.SCENARIO}


class TreeInvariantError(AssertionError):
    """Raised when an edit would break the feature tree structure"""


def normalize_tag(tag: str) -> str:
    """'smoke' and ' @smoke ' both become '@smoke'; blank input stays empty"""
    tag = tag.strip()
    if tag and not tag.startswith('@'):
        tag = '@' + tag
    return tag


class Table:
    """Grid of string cells owned by a Step. Always at least 1x1 and rectangular."""

    def __init__(self, rows: int = 1, cols: int = 1):
        if rows < 1 or cols < 1:
            raise ValueError(f"Table must be at least 1x1, got {rows}x{cols}")
        self._cells = [['' for _ in range(cols)] for _ in range(rows)]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[str]]) -> 'Table':
        """Build a table from row data, padding short rows with empty cells"""
        row_count = max(len(rows), 1)
        col_count = max([len(row) for row in rows] + [1])
        table = cls(row_count, col_count)
        for i, row in enumerate(rows):
            for j, text in enumerate(row):
                table._cells[i][j] = text
        return table

    @property
    def row_count(self) -> int:
        return len(self._cells)

    @property
    def col_count(self) -> int:
        return len(self._cells[0])

    @property
    def rows(self) -> List[List[str]]:
        return [list(row) for row in self._cells]

    def cell(self, row: int, col: int) -> str:
        return self._cells[row][col]

    def set_cell(self, row: int, col: int, text: str):
        self._cells[row][col] = text or ''

    def add_row(self, index: int = None):
        if index is None:
            index = self.row_count
        self._cells.insert(index, ['' for _ in range(self.col_count)])

    def add_column(self, index: int = None):
        if index is None:
            index = self.col_count
        for row in self._cells:
            row.insert(index, '')

    def remove_row(self, index: int):
        if self.row_count == 1:
            raise ValueError("Cannot remove the last row of a table")
        del self._cells[index]

    def remove_column(self, index: int):
        if self.col_count == 1:
            raise ValueError("Cannot remove the last column of a table")
        for row in self._cells:
            del row[index]

    def column_widths(self) -> List[int]:
        """Longest cell text per column"""
        return [max(len(row[j]) for row in self._cells) for j in range(self.col_count)]

    def __eq__(self, other):
        return isinstance(other, Table) and self._cells == other._cells

    def __repr__(self):
        return f"Table({self.row_count}x{self.col_count})"


class DocumentNode:
    """
    One element of a feature tree.

    The parent link is a weak reference: a node is owned only by the
    children list of its parent. A parent therefore stays reachable only
    while something holds the root of the tree, so keep the Feature returned
    by a parse (or the Workspace holding it) alive while navigating upwards.
    """

    def __init__(self, kind: NodeKind, title: str = "", tags: Sequence[str] = None,
                 comment: Optional[str] = None, table: Optional[Table] = None,
                 description: Sequence[str] = None, filename: Optional[str] = None):
        self.kind = kind
        self.title = title
        self.children: List['DocumentNode'] = []
        self.tags: List[str] = []
        self.comment = comment
        self.description: List[str] = list(description or [])
        self.filename = filename
        self.table = None
        self.matched = False
        self.bound_values: List[str] = []
        self._parent_ref = None

        if tags:
            self.set_tags(tags)
        if table is not None:
            self.set_table(table)

    def __repr__(self):
        return f"DocumentNode({self.kind.value}, {self.title!r}, children={len(self.children)})"

    @property
    def parent(self) -> Optional['DocumentNode']:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def is_step(self) -> bool:
        return self.kind == NodeKind.STEP

    def add_child(self, node: 'DocumentNode', position: int = None):
        if node.kind not in ALLOWED_CHILDREN[self.kind]:
            raise TreeInvariantError(f"{self.kind.value} cannot own a {node.kind.value}")
        if node.parent is not None:
            raise TreeInvariantError(f"{node!r} already belongs to {node.parent!r}")
        if position is None:
            self.children.append(node)
        else:
            self.children.insert(position, node)
        node._parent_ref = weakref.ref(self)

    def remove_child(self, node: 'DocumentNode'):
        for i, child in enumerate(self.children):
            if child is node:
                del self.children[i]
                node._parent_ref = None
                return
        raise TreeInvariantError(f"{node!r} is not a child of {self!r}")

    def index_of(self, node: 'DocumentNode') -> int:
        for i, child in enumerate(self.children):
            if child is node:
                return i
        return -1

    def set_table(self, table: Optional[Table]):
        if table is not None and self.kind != NodeKind.STEP:
            raise TreeInvariantError(f"Only steps can own a table, not a {self.kind.value}")
        self.table = table

    def set_tags(self, tags: Sequence[str]):
        self.tags = []
        for tag in tags:
            self.add_tag(tag)

    def add_tag(self, tag: str):
        if self.kind not in TAGGABLE:
            raise TreeInvariantError(f"A {self.kind.value} cannot carry tags")
        tag = normalize_tag(tag)
        if tag and tag not in self.tags:
            self.tags.append(tag)

    def remove_tag(self, tag: str):
        tag = normalize_tag(tag)
        if tag in self.tags:
            self.tags.remove(tag)

    def find_tags(self) -> Set[str]:
        """All distinct tags present in this subtree"""
        tags = set(self.tags)
        for child in self.children:
            tags.update(child.find_tags())
        return tags

    def feature(self) -> Optional['DocumentNode']:
        node = self
        while node is not None and node.kind != NodeKind.FEATURE:
            node = node.parent
        return node

    def find_background(self) -> Optional['DocumentNode']:
        """The Background of the feature this node belongs to"""
        feature = self.feature()
        if feature is None:
            return None
        for child in feature.children:
            if child.kind == NodeKind.BACKGROUND:
                return child
        return None

    def iter_steps(self) -> Iterator['DocumentNode']:
        if self.kind == NodeKind.STEP:
            yield self
        for child in self.children:
            yield from child.iter_steps()

    def duplicate(self) -> 'DocumentNode':
        """Detached deep copy of this subtree"""
        node = DocumentNode(self.kind, self.title, tags=self.tags, comment=self.comment,
                            description=self.description, filename=self.filename)
        node.table = copy.deepcopy(self.table)
        node.matched = self.matched
        node.bound_values = list(self.bound_values)
        for child in self.children:
            node.add_child(child.duplicate())
        return node


def feature(title: str, **kwargs) -> DocumentNode:
    return DocumentNode(NodeKind.FEATURE, title, **kwargs)


def background(title: str = "", **kwargs) -> DocumentNode:
    return DocumentNode(NodeKind.BACKGROUND, title, **kwargs)


def scenario(title: str, **kwargs) -> DocumentNode:
    return DocumentNode(NodeKind.SCENARIO, title, **kwargs)


def step(text: str, table: Optional[Table] = None, **kwargs) -> DocumentNode:
    return DocumentNode(NodeKind.STEP, text, table=table, **kwargs)


def comment(text: str) -> DocumentNode:
    return DocumentNode(NodeKind.COMMENT, text)
