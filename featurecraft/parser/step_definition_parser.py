"""
Step definition parser
Extracts step patterns from automation source files (Ruby style `Given /^...$/ do`)
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from featurecraft.models.locale import Locale, all_step_prefixes, get_locale
from featurecraft.utils.errors import FileReadError
from featurecraft.utils.logger import setup_logger

logger = setup_logger(__name__)

WILDCARD = '*'
GROUP_REGEX = '(.*)'
DEFAULT_COMMENT_MARKER = '# featurecraft'
DEFAULT_FILE_GLOB = '**/*.rb'


@dataclass(frozen=True)
class ParameterSpec:
    """Accepted values of one step parameter; ('*',) accepts anything"""
    values: Tuple[str, ...] = (WILDCARD,)

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self.values

    def accepts(self, value: str) -> bool:
        return self.is_wildcard or value in self.values


ANY_VALUE = ParameterSpec()


@dataclass
class StepPattern:
    """A compiled step definition"""
    pattern: str
    parameters: List[ParameterSpec]
    source: Optional[str] = None
    line_number: int = 0
    degraded: bool = False
    compiled_pattern: re.Pattern = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.compiled_pattern is None:
            self.compiled_pattern = re.compile(self.pattern)

    @property
    def group_count(self) -> int:
        return self.compiled_pattern.groups


@dataclass
class StepDefinitionImport:
    """Result of importing a batch of step definition files"""
    patterns: List[StepPattern] = field(default_factory=list)
    errors: List[FileReadError] = field(default_factory=list)


def split_groups(body: str) -> Tuple[List[str], List[str]]:
    """
    Split a definition body into literal regex chunks around its bracketed groups.

    Returns the literal chunks (always one more than the groups) and the raw
    group texts, each including its parentheses and trailing quantifier.
    Escaped characters and character classes are copied verbatim, nested groups
    count as one, an unclosed group turns the remainder into escaped literal text
    and a stray closing parenthesis becomes a literal one.
    """
    chunks = []
    groups = []
    current = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == '\\' and i + 1 < len(body):
            current.append(body[i:i + 2])
            i += 2
        elif char == '[':
            end = _skip_class(body, i)
            current.append(body[i:end])
            i = end
        elif char == '(':
            end = _find_group_end(body, i)
            if end == -1:
                logger.debug(f"Unclosed group in step definition, treating as literal: {body[i:]!r}")
                current.append(re.escape(body[i:]))
                break
            end += 1
            if end < len(body) and body[end] in '?+*':
                end += 1
            chunks.append(''.join(current))
            groups.append(body[i:end])
            current = []
            i = end
        elif char == ')':
            current.append('\\)')
            i += 1
        else:
            current.append(char)
            i += 1
    chunks.append(''.join(current))
    return chunks, groups


def _skip_class(body: str, start: int) -> int:
    """Index just past the character class opening at start"""
    i = start + 1
    if i < len(body) and body[i] == '^':
        i += 1
    if i < len(body) and body[i] == ']':
        i += 1
    while i < len(body):
        if body[i] == '\\':
            i += 2
            continue
        if body[i] == ']':
            return i + 1
        i += 1
    return len(body)


def _find_group_end(body: str, start: int) -> int:
    depth = 0
    i = start
    while i < len(body):
        char = body[i]
        if char == '\\':
            i += 2
            continue
        if char == '[':
            i = _skip_class(body, i)
            continue
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def capture(group: str) -> str:
    """
    Rewrite a raw group as exactly one capturing group.

    '(\\d+)' stays as is, '(?:a|b)?' becomes '((?:a|b)?)' and any capturing
    groups nested inside are made non-capturing.
    """
    quantifier = ''
    if group[-1] in '?+*':
        group, quantifier = group[:-1], group[-1]
    inner = group[1:-1]
    named = re.match(r'\?P<\w+>', inner)
    if inner.startswith('?:'):
        inner = inner[2:]
    elif named:
        inner = inner[named.end():]
    elif inner.startswith('?'):
        inner = '(' + inner + ')'
    inner = _uncapture(inner)
    if quantifier:
        return f"((?:{inner}){quantifier})"
    return f"({inner})"


def _uncapture(text: str) -> str:
    result = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == '\\':
            result.append(text[i:i + 2])
            i += 2
        elif char == '[':
            end = _skip_class(text, i)
            result.append(text[i:end])
            i = end
        elif char == '(':
            named = re.match(r'\(\?P<\w+>', text[i:])
            if named:
                result.append('(?:')
                i += named.end()
            elif text.startswith('(?', i):
                result.append('(')
                i += 1
            else:
                result.append('(?:')
                i += 1
        else:
            result.append(char)
            i += 1
    return ''.join(result)


def prefix_regex(keywords: Iterable[str]) -> str:
    """Optional leading group capturing a step keyword, so bare step text matches too"""
    alternatives = '|'.join(re.escape(keyword) for keyword in sorted(keywords, key=len, reverse=True))
    return f"(?:({alternatives}) )?"


def parse_parameter_comment(text: str) -> List[ParameterSpec]:
    """Parse '(a|b) (c|d|e)' into one spec per parenthesised group"""
    parameters = []
    while True:
        start = text.find('(')
        if start == -1:
            break
        end = text.find(')', start)
        if end == -1:
            logger.debug(f"Unclosed parameter group in override comment: {text!r}")
            break
        parameters.append(ParameterSpec(tuple(text[start + 1:end].split('|'))))
        text = text[end + 1:]
    return parameters


class StepDefinitionParser:
    """Scan automation source for step definitions"""

    def __init__(self, locale: Union[Locale, str] = None,
                 comment_marker: str = DEFAULT_COMMENT_MARKER,
                 file_glob: str = DEFAULT_FILE_GLOB):
        self.locale = locale if isinstance(locale, Locale) else get_locale(locale)
        self.comment_marker = comment_marker.rstrip()
        self.file_glob = file_glob
        self.prefix_spec = ParameterSpec(tuple(all_step_prefixes()))
        self.prefix_regex = prefix_regex(self.prefix_spec.values)
        self.override_pattern = re.compile(re.escape(self.comment_marker) + r' (.*)')
        self.definition_patterns = [
            re.compile(re.escape(keyword) + r' /\^(.*)\$/.*')
            for keyword in self.locale.word_step_keywords()
        ]

    def parse_files(self, paths: Iterable[Union[str, Path]]) -> StepDefinitionImport:
        """Parse every file (directories are expanded), collecting per-file errors"""
        result = StepDefinitionImport()
        for path in self._expand_paths(paths):
            try:
                result.patterns.extend(self.parse_file(path))
            except FileReadError as e:
                logger.error(str(e))
                result.errors.append(e)
        logger.info(f"Imported {len(result.patterns)} step definitions "
                    f"({len(result.errors)} files failed)")
        return result

    def parse_file(self, path: Union[str, Path]) -> List[StepPattern]:
        logger.info(f"Parsing step definition file: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise FileReadError(path, e) from e
        return self.parse_lines(lines, source=str(path))

    def parse_lines(self, lines: Sequence[str], source: str = None) -> List[StepPattern]:
        patterns = []
        parameters = None
        for line_number, line in enumerate(lines, 1):
            line = line.strip()
            override = self._parse_override(line)
            if override:
                logger.debug(f"Found parameters: {override}")
                parameters = override
                continue
            pattern = self.parse_line(line, parameters, source=source, line_number=line_number)
            if pattern:
                patterns.append(pattern)
            parameters = None
        return patterns

    def parse_line(self, line: str, parameters: str = None, source: str = None,
                   line_number: int = 0) -> Optional[StepPattern]:
        """Build a StepPattern if the line is a step definition"""
        if not line:
            return None
        for definition_pattern in self.definition_patterns:
            match = definition_pattern.fullmatch(line)
            if match:
                return self.build_pattern(match.group(1), parameters, source, line_number)
        return None

    def build_pattern(self, body: str, parameters: str = None, source: str = None,
                      line_number: int = 0) -> StepPattern:
        """
        Compile a definition body into a StepPattern.

        Groups keep their own expression so '(\\d+)' only matches digits. If
        that does not compile every group is widened to '(.*)', and if the body
        is still invalid its literal text is escaped. The group count is the
        same at every level.
        """
        chunks, groups = split_groups(body)
        if parameters:
            specs = parse_parameter_comment(parameters)
            specs = (specs + [ANY_VALUE] * len(groups))[:len(groups)]
        else:
            specs = [ANY_VALUE] * len(groups)

        candidates = [
            self._join(chunks, [capture(group) for group in groups]),
            self._join(chunks, [GROUP_REGEX] * len(groups)),
            self._join([re.escape(chunk) for chunk in chunks], [GROUP_REGEX] * len(groups)),
        ]
        for level, regex in enumerate(candidates):
            try:
                compiled = re.compile(regex)
            except re.error as e:
                logger.debug(f"Step definition {body!r} does not compile as {regex!r}: {e}")
                continue
            if level:
                logger.warning(f"Step definition {body!r} is not a valid expression, degraded to {regex!r}")
            return StepPattern(
                pattern=regex,
                parameters=[self.prefix_spec] + specs,
                source=source,
                line_number=line_number,
                degraded=level > 0,
                compiled_pattern=compiled,
            )
        raise AssertionError(f"Escaped step definition failed to compile: {body!r}")

    def _join(self, chunks: List[str], groups: List[str]) -> str:
        regex = self.prefix_regex + chunks[0]
        for group, chunk in zip(groups, chunks[1:]):
            regex += group + chunk
        return regex

    def _parse_override(self, line: str) -> Optional[str]:
        match = self.override_pattern.fullmatch(line)
        if match and match.group(1).strip():
            return match.group(1)
        return None

    def _expand_paths(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        files = []
        for path in paths:
            path = Path(path)
            if path.is_dir():
                files.extend(sorted(path.glob(self.file_glob)))
            else:
                files.append(path)
        return files
