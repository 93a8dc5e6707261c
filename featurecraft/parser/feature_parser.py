"""
Feature parser
Reads Gherkin feature files into feature trees
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from featurecraft.models.document import DocumentNode, NodeKind, Table
from featurecraft.models.locale import Locale, get_locale
from featurecraft.serializer.gherkin_writer import DEFAULT_INDENT
from featurecraft.utils.errors import FileReadError
from featurecraft.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_FILE_GLOB = '**/*.feature'


class ReaderState(Enum):
    EXPECT_FEATURE = "expect_feature"
    IN_FEATURE_HEADER = "in_feature_header"
    IN_BACKGROUND_OR_SCENARIO = "in_background_or_scenario"
    IN_STEP_BLOCK = "in_step_block"


@dataclass
class FeatureImport:
    """Result of importing a batch of feature files"""
    features: List[DocumentNode] = field(default_factory=list)
    errors: List[FileReadError] = field(default_factory=list)


def comment_text(line: str) -> str:
    """Text of a '# comment' line without the marker and one separating space"""
    text = line[1:]
    if text.startswith(' '):
        text = text[1:]
    return text.rstrip()


def table_cells(line: str) -> List[str]:
    """
    Split a '| a | b |' row into stripped cell texts.

    '\\|' and '\\\\' are unescaped to '|' and '\\'; any other backslash is kept.
    A missing closing pipe is tolerated.
    """
    body = line.strip()
    cells = []
    current = []
    i = 1
    while i < len(body):
        char = body[i]
        if char == '\\' and i + 1 < len(body) and body[i + 1] in '|\\':
            current.append(body[i + 1])
            i += 2
            continue
        if char == '|':
            cells.append(''.join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    rest = ''.join(current).strip()
    if rest:
        cells.append(rest)
    return cells


class FeatureParser:
    """Parse Gherkin feature files into DocumentNode trees"""

    def __init__(self, locale: Union[Locale, str] = None, indent: str = DEFAULT_INDENT,
                 file_glob: str = DEFAULT_FILE_GLOB):
        self.locale = locale if isinstance(locale, Locale) else get_locale(locale)
        self.indent = indent
        self.file_glob = file_glob
        self.header_pattern = re.compile(
            r'({}|{}|{}):(.*)'.format(
                re.escape(self.locale.feature),
                re.escape(self.locale.background),
                re.escape(self.locale.scenario),
            )
        )

    def parse_features(self, paths: Iterable[Union[str, Path]]) -> FeatureImport:
        """Parse feature files (directories are searched recursively)"""
        result = FeatureImport()
        for feature_file in self._expand_paths(paths):
            try:
                feature = self.parse_file(feature_file)
            except FileReadError as e:
                logger.error(str(e))
                result.errors.append(e)
                continue
            if feature is not None:
                result.features.append(feature)
        logger.info(f"Imported {len(result.features)} features ({len(result.errors)} files failed)")
        return result

    def parse_file(self, file_path: Union[str, Path]) -> Optional[DocumentNode]:
        logger.info(f"Parsing feature file: {file_path}")
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FileReadError(file_path, e) from e
        return self.parse_text(text, filename=str(file_path))

    def parse_text(self, text: str, filename: str = None) -> Optional[DocumentNode]:
        """
        Build a feature tree from feature file text.

        Lines that fit nowhere are kept as Comment nodes. Returns None when
        the text has no Feature header at all.
        """
        return _FeatureReader(self, filename).read(text.splitlines())

    def _expand_paths(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        files = []
        for path in paths:
            path = Path(path)
            if path.is_dir():
                files.extend(sorted(path.glob(self.file_glob)))
            else:
                files.append(path)
        return files


class _FeatureReader:
    """Line by line state machine for one feature file"""

    def __init__(self, parser: FeatureParser, filename: Optional[str]):
        self.parser = parser
        self.locale = parser.locale
        self.filename = filename
        self.state = ReaderState.EXPECT_FEATURE
        self.feature: Optional[DocumentNode] = None
        self.container: Optional[DocumentNode] = None
        self.last_step: Optional[DocumentNode] = None
        self.table_rows: List[List[str]] = []
        self.pending_comments: List[Tuple[str, int]] = []
        self.pending_tags: List[str] = []

    def read(self, lines: List[str]) -> Optional[DocumentNode]:
        for line_number, raw in enumerate(lines, 1):
            self._read_line(raw, line_number)
        self._flush_comments()
        if self.pending_tags:
            logger.warning(f"{self._where()}: dangling tags at end of file: {' '.join(self.pending_tags)}")
        if self.feature is None:
            logger.warning(f"{self._where()}: no feature found")
        return self.feature

    def _read_line(self, raw: str, line_number: int):
        line = raw.strip()
        indent = len(raw) - len(raw.lstrip())

        if not line:
            self._flush_comments()
            return
        if line.startswith('#'):
            self.pending_comments.append((comment_text(line), indent))
            return
        if line.startswith('@'):
            self.pending_tags.extend(token for token in line.split() if token.startswith('@'))
            return

        header = self.parser.header_pattern.fullmatch(line)
        if header:
            if not self._open_header(header.group(1), header.group(2).strip()):
                self._unrecognized(line, indent, line_number)
            return

        if line.startswith('|'):
            if self.last_step is not None and not self.pending_comments:
                self.table_rows.append(table_cells(line))
                self.last_step.set_table(Table.from_rows(self.table_rows))
            else:
                self._unrecognized(line, indent, line_number)
            return

        if self.locale.step_keyword_of(line):
            if self.container is not None:
                self._open_step(line, line_number)
            else:
                self._unrecognized(line, indent, line_number)
            return

        if self.state == ReaderState.IN_FEATURE_HEADER:
            self._flush_comments()
            self.feature.description.append(line)
            return

        self._unrecognized(line, indent, line_number)

    def _open_header(self, keyword: str, title: str) -> bool:
        if keyword == self.locale.feature:
            if self.feature is not None:
                return False
            self.feature = DocumentNode(
                NodeKind.FEATURE, title,
                tags=self._take_tags(),
                comment=self._take_comment(),
                filename=self.filename,
            )
            self.state = ReaderState.IN_FEATURE_HEADER
            return True

        if self.feature is None:
            return False

        if keyword == self.locale.scenario:
            node = DocumentNode(NodeKind.SCENARIO, title, tags=self._take_tags())
        else:
            if self.pending_tags:
                logger.warning(f"{self._where()}: tags on a background are ignored: {' '.join(self.pending_tags)}")
            self.pending_tags = []
            node = DocumentNode(NodeKind.BACKGROUND, title)
        node.comment = self._take_comment()
        self.feature.add_child(node)
        self.container = node
        self.last_step = None
        self.state = ReaderState.IN_BACKGROUND_OR_SCENARIO
        return True

    def _open_step(self, line: str, line_number: int):
        self._flush_comments(into=self.container)
        if self.pending_tags:
            logger.warning(f"{self._where(line_number)}: tags before a step are ignored: {' '.join(self.pending_tags)}")
            self.pending_tags = []
        step = DocumentNode(NodeKind.STEP, line)
        self.container.add_child(step)
        self.last_step = step
        self.table_rows = []
        self.state = ReaderState.IN_STEP_BLOCK

    def _unrecognized(self, line: str, indent: int, line_number: int):
        logger.warning(f"{self._where(line_number)}: unrecognized line kept as comment: {line}")
        self.pending_comments.append((line, indent))
        if self.feature is None:
            return
        target = self.container if self.state == ReaderState.IN_STEP_BLOCK else None
        self._flush_comments(into=target)

    def _flush_comments(self, into: DocumentNode = None):
        """Turn pending comment lines into Comment nodes"""
        if self.feature is None or not self.pending_comments:
            return
        for text, indent in self.pending_comments:
            target = into
            if target is None:
                nested = self.container is not None and indent > len(self.parser.indent)
                target = self.container if nested else self.feature
            target.add_child(DocumentNode(NodeKind.COMMENT, text))
        self.pending_comments = []
        self.last_step = None

    def _take_comment(self) -> Optional[str]:
        if not self.pending_comments:
            return None
        text = '\n'.join(text for text, _ in self.pending_comments)
        self.pending_comments = []
        return text

    def _take_tags(self) -> List[str]:
        tags, self.pending_tags = self.pending_tags, []
        return tags

    def _where(self, line_number: int = None) -> str:
        where = self.filename or '<text>'
        return f"{where}:{line_number}" if line_number else where
