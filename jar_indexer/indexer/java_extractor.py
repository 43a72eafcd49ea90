"""Structural extraction of Java type declarations using tree-sitter."""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from .grammars import JAVA, LanguageConfig, create_parser
from .models import ClassEntry, FieldEntry, MethodEntry, ParameterEntry
from .source_walker import find_source_files

logger = logging.getLogger(__name__)

# Implicit supertypes recorded for declarations without an explicit superclass
OBJECT_TYPE = "java.lang.Object"
ENUM_TYPE = "java.lang.Enum"
RECORD_TYPE = "java.lang.Record"

ANNOTATION_NODES = ("marker_annotation", "annotation")


class SourceParseError(Exception):
    """Raised when a source file cannot be parsed into a syntax tree."""

    def __init__(self, path: str, diagnostics: List[str]):
        self.path = path
        self.diagnostics = diagnostics
        super().__init__(f"Parse failed: {'; '.join(diagnostics)}")


@dataclass
class FileResult:
    """Outcome of parsing a single source file."""

    path: str
    entries: List[ClassEntry] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ParseReport:
    """Aggregated outcome of parsing a source tree."""

    entries: List[ClassEntry] = field(default_factory=list)
    files_found: int = 0
    files_parsed: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def files_failed(self) -> int:
        return len(self.failures)


def _text(node: Any) -> str:
    return node.text.decode("utf-8")


def _simple_type_name(node: Any) -> str:
    """Reduce a written type like ``java.util.List<String>`` to ``List``."""
    if node.type == "annotated_type":
        node = node.named_children[-1]
    if node.type == "generic_type":
        node = node.named_children[0]
    if node.type == "scoped_type_identifier":
        identifiers = [child for child in node.named_children if child.type == "type_identifier"]
        if identifiers:
            node = identifiers[-1]
    return _text(node)


def _child_of_type(node: Any, node_type: str) -> Optional[Any]:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _type_list_names(container: Optional[Any]) -> List[str]:
    """Simple names from a ``super_interfaces`` or ``extends_interfaces`` node."""
    if container is None:
        return []
    type_list = _child_of_type(container, "type_list")
    if type_list is None:
        return []
    return [_simple_type_name(child) for child in type_list.named_children]


def _type_parameter_names(node: Any) -> List[str]:
    params = node.child_by_field_name("type_parameters")
    if params is None:
        return []
    names = []
    for param in params.named_children:
        if param.type != "type_parameter":
            continue
        for child in param.named_children:
            if child.type in ("type_identifier", "identifier"):
                names.append(_text(child))
                break
    return names


def _modifiers_and_annotations(node: Any) -> Tuple[List[str], List[str]]:
    """Split a declaration's ``modifiers`` node into keywords and annotation names.

    Both lists keep source order.
    """
    modifiers: List[str] = []
    annotations: List[str] = []
    modifiers_node = _child_of_type(node, "modifiers")
    if modifiers_node is not None:
        for child in modifiers_node.children:
            if child.type in ANNOTATION_NODES:
                annotations.append(_text(child.child_by_field_name("name")))
            elif not child.is_named:
                modifiers.append(child.type)
    return list(dict.fromkeys(modifiers)), annotations


def _with_dimensions(type_text: str, node: Any) -> str:
    dimensions = node.child_by_field_name("dimensions")
    return type_text + _text(dimensions) if dimensions is not None else type_text


def collect_diagnostics(root: Any) -> List[str]:
    """Describe every ERROR and MISSING node below a syntax tree root.

    Args:
        root: Root node of a tree with ``has_error`` set

    Returns:
        Messages formatted as ``line:column: description``
    """
    diagnostics: List[str] = []

    def visit(node: Any) -> None:
        row, column = node.start_point
        if node.is_missing:
            diagnostics.append(f"{row + 1}:{column + 1}: missing {node.type}")
        elif node.type == "ERROR":
            snippet = " ".join(_text(node).split())[:40]
            diagnostics.append(f"{row + 1}:{column + 1}: unexpected {snippet!r}")
        elif node.has_error:
            for child in node.children:
                visit(child)

    visit(root)
    return diagnostics or ["unknown syntax error"]


class ClassExtractor:
    """Extract normalized class entries from Java source files."""

    def __init__(self, lang_config: LanguageConfig = JAVA):
        """Initialize the extractor.

        Args:
            lang_config: Language configuration describing declaration node types
        """
        self.lang_config = lang_config
        self.parser = create_parser(lang_config)

    def _members(self, body: Optional[Any]) -> Iterator[Any]:
        """Yield member declarations of a type body, flattening enum body declarations."""
        if body is None:
            return
        for child in body.named_children:
            if child.type in self.lang_config.body_containers:
                yield from child.named_children
            else:
                yield child

    def _supertypes(self, node: Any, kind: str) -> Tuple[Optional[str], List[str], List[str]]:
        """Resolve superclass, interfaces and type parameters for a declaration kind."""
        if kind == "interface":
            extends = _child_of_type(node, "extends_interfaces")
            return None, _type_list_names(extends), _type_parameter_names(node)

        interfaces = _type_list_names(node.child_by_field_name("interfaces"))
        if kind == "enum":
            return ENUM_TYPE, interfaces, []
        if kind == "record":
            return RECORD_TYPE, interfaces, _type_parameter_names(node)
        if kind == "annotation":
            return OBJECT_TYPE, [], []

        superclass = OBJECT_TYPE
        superclass_node = node.child_by_field_name("superclass")
        if superclass_node is not None and superclass_node.named_children:
            superclass = _simple_type_name(superclass_node.named_children[0])
        return superclass, interfaces, _type_parameter_names(node)

    def _fields(self, declaration: Any) -> List[FieldEntry]:
        """Expand a field declaration into one entry per declared variable."""
        modifiers, annotations = _modifiers_and_annotations(declaration)
        base_type = _text(declaration.child_by_field_name("type"))
        entries = []
        for declarator in declaration.children_by_field_name("declarator"):
            entries.append(
                FieldEntry(
                    name=_text(declarator.child_by_field_name("name")),
                    type=_with_dimensions(base_type, declarator),
                    modifiers=list(modifiers),
                    annotations=list(annotations),
                )
            )
        return entries

    def _parameters(self, params: Optional[Any]) -> List[ParameterEntry]:
        if params is None:
            return []
        entries = []
        for child in params.named_children:
            if child.type == "formal_parameter":
                type_text = _with_dimensions(_text(child.child_by_field_name("type")), child)
                entries.append(
                    ParameterEntry(name=_text(child.child_by_field_name("name")), type=type_text)
                )
            elif child.type == "spread_parameter":
                declarator = _child_of_type(child, "variable_declarator")
                type_node = next(
                    c
                    for c in child.named_children
                    if c.type not in ("modifiers", "variable_declarator") + ANNOTATION_NODES
                )
                entries.append(
                    ParameterEntry(
                        name=_text(declarator.child_by_field_name("name")),
                        type=_text(type_node) + "...",
                    )
                )
        return entries

    def _method(self, declaration: Any) -> MethodEntry:
        modifiers, annotations = _modifiers_and_annotations(declaration)
        # Annotations written between type parameters and the return type
        annotations.extend(
            _text(child.child_by_field_name("name"))
            for child in declaration.named_children
            if child.type in ANNOTATION_NODES
        )

        throws_node = _child_of_type(declaration, "throws")
        throws = [_text(t) for t in throws_node.named_children] if throws_node is not None else []

        return MethodEntry(
            name=_text(declaration.child_by_field_name("name")),
            return_type=_with_dimensions(_text(declaration.child_by_field_name("type")), declaration),
            parameters=self._parameters(declaration.child_by_field_name("parameters")),
            modifiers=modifiers,
            annotations=annotations,
            throws=throws,
        )

    def extract(
        self,
        node: Any,
        package: str,
        source_file: str,
        enclosing_fqcn: Optional[str] = None,
    ) -> List[ClassEntry]:
        """Extract a type declaration and all of its nested types.

        The declaration's own entry comes first, followed by the entries of
        each nested declaration in source order (depth-first, pre-order).

        Args:
            node: Type declaration node
            package: Declaring package, empty for the unnamed package
            source_file: Source path recorded on every entry
            enclosing_fqcn: Fully-qualified name of the enclosing type, if nested

        Returns:
            Flat list of entries
        """
        name = _text(node.child_by_field_name("name"))
        if enclosing_fqcn:
            fqcn = f"{enclosing_fqcn}.{name}"
        else:
            fqcn = f"{package}.{name}" if package else name

        kind = self.lang_config.declaration_types[node.type]
        modifiers, annotations = _modifiers_and_annotations(node)
        superclass, interfaces, type_parameters = self._supertypes(node, kind)

        entry = ClassEntry(
            fqcn=fqcn,
            package=package,
            name=name,
            kind=kind,
            modifiers=modifiers,
            superclass=superclass,
            interfaces=interfaces,
            type_parameters=type_parameters,
            annotations=annotations,
            source_file=source_file,
        )

        nested = []
        for member in self._members(node.child_by_field_name("body")):
            if member.type in ("field_declaration", "constant_declaration"):
                entry.fields.extend(self._fields(member))
            elif member.type == "method_declaration":
                entry.methods.append(self._method(member))
            elif self.lang_config.is_type_declaration(member.type):
                entry.inner_classes.append(_text(member.child_by_field_name("name")))
                nested.append(member)

        entries = [entry]
        for member in nested:
            entries.extend(self.extract(member, package, source_file, fqcn))
        return entries

    def parse_source(self, source: bytes, source_file: str) -> List[ClassEntry]:
        """Parse source bytes and extract every type declared in them.

        Raises:
            SourceParseError: If the syntax tree contains errors
        """
        tree = self.parser.parse(source)
        root = tree.root_node
        if root.has_error:
            raise SourceParseError(source_file, collect_diagnostics(root))

        package = ""
        package_node = _child_of_type(root, "package_declaration")
        if package_node is not None:
            name_node = next(
                c for c in package_node.named_children if c.type in ("identifier", "scoped_identifier")
            )
            package = _text(name_node)

        entries = []
        for child in root.named_children:
            if self.lang_config.is_type_declaration(child.type):
                entries.extend(self.extract(child, package, source_file))
        return entries

    def parse_file(self, file_path: Path, project_root: Path) -> List[ClassEntry]:
        """Parse a source file, recording its path relative to the project root.

        Raises:
            SourceParseError: If the file cannot be read, decoded or parsed
        """
        file_path = Path(file_path)
        try:
            source_file = file_path.relative_to(project_root).as_posix()
        except ValueError:
            source_file = file_path.as_posix()

        try:
            source = file_path.read_bytes()
        except OSError as e:
            raise SourceParseError(source_file, [f"cannot read file: {e}"]) from e

        try:
            return self.parse_source(source, source_file)
        except UnicodeDecodeError as e:
            raise SourceParseError(source_file, [f"invalid UTF-8: {e}"]) from e

    def parse_one(self, file_path: Path, project_root: Path) -> FileResult:
        """Parse one file, capturing a parse failure instead of raising it."""
        try:
            return FileResult(path=str(file_path), entries=self.parse_file(file_path, project_root))
        except SourceParseError as e:
            return FileResult(path=str(file_path), error=str(e))
        except Exception as e:
            logger.error(f"Error extracting types from {file_path}: {e}", exc_info=True)
            return FileResult(path=str(file_path), error=f"Extraction failed: {e}")

    def index_directory(self, source_dir: Path, project_root: Path, workers: int = 1) -> ParseReport:
        """Parse every source file under a directory.

        A file that fails to parse is logged and counted; the remaining
        files are still parsed. Entries keep discovery order regardless of
        the number of workers.

        Args:
            source_dir: Root of the decompiled source tree
            project_root: Directory that recorded source paths are relative to
            workers: Worker processes; 1 parses sequentially

        Returns:
            Aggregated parse report
        """
        files = find_source_files(source_dir, self.lang_config)
        logger.info(f"Found {len(files)} {self.lang_config.name} files to parse")

        if workers > 1 and len(files) > 1:
            with ProcessPoolExecutor(
                max_workers=workers, initializer=_init_worker, initargs=(self.lang_config,)
            ) as executor:
                results = executor.map(
                    _parse_in_worker,
                    [(path, project_root) for path in files],
                    chunksize=max(1, len(files) // (workers * 4)),
                )
                return self._collect(results, len(files))

        return self._collect((self.parse_one(path, project_root) for path in files), len(files))

    def _collect(self, results, files_found: int) -> ParseReport:
        report = ParseReport(files_found=files_found)
        for result in results:
            if result.error is not None:
                logger.warning(f"Failed to parse {result.path}: {result.error}")
                report.failures.append((result.path, result.error))
                continue
            report.files_parsed += 1
            report.entries.extend(result.entries)
        return report


_worker_extractor: Optional[ClassExtractor] = None


def _init_worker(lang_config: LanguageConfig) -> None:
    global _worker_extractor
    _worker_extractor = ClassExtractor(lang_config)


def _parse_in_worker(task: Tuple[Path, Path]) -> FileResult:
    file_path, project_root = task
    return _worker_extractor.parse_one(file_path, project_root)
