"""
Workspace: the feature trees being edited plus the active step definitions
All tree mutations happen under one lock, since a renderer may read the trees concurrently
"""

import concurrent.futures
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from featurecraft.core.config_manager import DEFAULT_CONFIG
from featurecraft.core.run_tags import RunTagSelection
from featurecraft.models.document import DocumentNode, NodeKind
from featurecraft.parser.feature_parser import FeatureImport, FeatureParser
from featurecraft.parser.step_definition_parser import StepDefinitionImport, StepDefinitionParser
from featurecraft.parser.step_matcher import MatchResult, PatternMatcher
from featurecraft.serializer.gherkin_writer import GherkinWriter
from featurecraft.utils.errors import FileWriteError
from featurecraft.utils.helpers import sanitize_filename, template_feature_filename
from featurecraft.utils.logger import setup_logger

logger = setup_logger(__name__)

PathLike = Union[str, Path]


class Workspace:
    """Explicit editor state: features, pattern set, run tags and the tree lock"""

    def __init__(self, config: Dict = None):
        config = config or DEFAULT_CONFIG
        locale = config.get('locale', 'en')
        indent = config.get('export', {}).get('indent', '  ')
        step_config = config.get('step_definitions', {})

        self.lock = threading.RLock()
        self.features: List[DocumentNode] = []
        self.features_base_dir: Optional[Path] = None
        self.matcher = PatternMatcher()
        self.run_tags = RunTagSelection()
        self.feature_parser = FeatureParser(
            locale, indent=indent,
            file_glob=config.get('features', {}).get('file_glob', '**/*.feature'),
        )
        self.step_parser = StepDefinitionParser(
            locale,
            comment_marker=step_config.get('comment_marker', '# featurecraft'),
            file_glob=step_config.get('file_glob', '**/*.rb'),
        )
        self.writer = GherkinWriter(locale, indent=indent)
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self._executor.shutdown(wait=True)

    # Features

    def scratch_features(self) -> DocumentNode:
        """Drop all features and start over with one template feature"""
        with self.lock:
            self.features = []
            self.features_base_dir = None
            feature = DocumentNode(NodeKind.FEATURE, "New Feature", filename=template_feature_filename())
            feature.add_child(DocumentNode(NodeKind.SCENARIO, "New Scenario"))
            self.features.append(feature)
        return feature

    def import_features(self, paths: Iterable[PathLike]) -> FeatureImport:
        """Add features from files or directories; unreadable files are reported, not fatal"""
        paths = [Path(path) for path in paths]
        if not paths:
            return FeatureImport()
        with self.lock:
            self.features_base_dir = paths[0] if len(paths) == 1 and paths[0].is_dir() else None
            result = self.feature_parser.parse_features(paths)
            for feature in result.features:
                feature.filename = str(Path(feature.filename).resolve())
            self.features.extend(result.features)
            self.matcher.apply_all(result.features)
        return result

    def add_node(self, parent: DocumentNode, node: DocumentNode, position: int = None):
        with self.lock:
            parent.add_child(node, position)
            self.matcher.apply_all([node])

    def remove_node(self, node: DocumentNode):
        with self.lock:
            if node.kind == NodeKind.FEATURE and node.parent is None:
                self.features = [feature for feature in self.features if feature is not node]
                return
            if node.parent is None:
                raise ValueError(f"{node!r} is not attached to anything")
            node.parent.remove_child(node)

    def edit_step_text(self, step: DocumentNode, text: str) -> MatchResult:
        if not step.is_step:
            raise ValueError(f"Expected a step, got a {step.kind.value}")
        with self.lock:
            step.title = text
            return self.matcher.apply(step)

    def defined_tags(self) -> List[str]:
        with self.lock:
            tags = set()
            for feature in self.features:
                tags.update(feature.find_tags())
        return sorted(tags)

    def toggle_run_tag(self, tag: str):
        with self.lock:
            self.run_tags.toggle(tag)

    def is_run_tag_enabled(self, tag: str) -> bool:
        with self.lock:
            return self.run_tags.is_enabled(tag)

    def selected_scenarios(self) -> List[DocumentNode]:
        """Scenarios the current run tag selection includes; feature tags are inherited"""
        with self.lock:
            return [
                child
                for feature in self.features
                for child in feature.children
                if child.kind == NodeKind.SCENARIO and self.run_tags.selects(feature.tags + child.tags)
            ]

    def unmatched_steps(self) -> List[DocumentNode]:
        with self.lock:
            return [step for feature in self.features for step in feature.iter_steps() if not step.matched]

    # Step definitions

    def import_step_definitions(self, paths: Iterable[PathLike]) -> StepDefinitionImport:
        """
        Parse step definition files and make them the active pattern set.

        Parsing happens without the tree lock; the swap and the re-match of
        every step happen under it, so matching never sees a partial set.
        """
        result = self.step_parser.parse_files(paths)
        with self.lock:
            self.matcher.replace_patterns(result.patterns)
            unmatched = self.matcher.apply_all(self.features)
        logger.info(f"Re-matched steps after import, {unmatched} unmatched")
        return result

    def import_step_definitions_async(self, paths: Iterable[PathLike]) -> concurrent.futures.Future:
        return self._executor.submit(self.import_step_definitions, list(paths))

    # Output

    def export_node(self, node: DocumentNode) -> str:
        with self.lock:
            return self.writer.export(node)

    def save_features(self) -> List[FileWriteError]:
        """Write every feature back to its own file"""
        errors = []
        with self.lock:
            for feature in self.features:
                path = self._resolve_filename(feature)
                error = self._write(path, self.writer.serialize(feature))
                if error:
                    errors.append(error)
        return errors

    def export_features(self, directory: PathLike) -> List[FileWriteError]:
        """Write every feature into a directory, keeping only the file's base name"""
        directory = Path(directory)
        errors = []
        with self.lock:
            for feature in self.features:
                name = Path(feature.filename).name if feature.filename else self._default_name(feature)
                error = self._write(directory / name, self.writer.serialize(feature))
                if error:
                    errors.append(error)
        return errors

    def _resolve_filename(self, feature: DocumentNode) -> Path:
        if not feature.filename:
            feature.filename = self._default_name(feature)
        path = Path(feature.filename)
        if not path.is_absolute() and self.features_base_dir is not None:
            path = self.features_base_dir / path
        return path

    @staticmethod
    def _default_name(feature: DocumentNode) -> str:
        if feature.title:
            return sanitize_filename(feature.title.lower().replace(' ', '_')) + '.feature'
        return template_feature_filename()

    @staticmethod
    def _write(path: Path, text: str) -> Optional[FileWriteError]:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Could not write {path}: {e}")
            return FileWriteError(path, e)
        logger.info(f"Wrote feature file: {path}")
        return None
