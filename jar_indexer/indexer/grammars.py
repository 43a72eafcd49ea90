"""Language grammar configuration for tree-sitter."""

import logging
from pathlib import Path
from typing import Dict, List

import tree_sitter_java as tsjava
from tree_sitter import Language, Parser

logger = logging.getLogger(__name__)


class LanguageConfig:
    """Configuration for a parsed source language."""

    def __init__(
        self,
        name: str,
        extensions: List[str],
        feature_level: str,
        declaration_types: Dict[str, str],
        body_containers: List[str],
    ):
        """Initialize language configuration.

        Args:
            name: Language name
            extensions: List of source file extensions
            feature_level: Newest language level the extractor targets
            declaration_types: Mapping of type declaration node types to index kinds
            body_containers: Node types whose children are also type members
        """
        self.name = name
        self.extensions = extensions
        self.feature_level = feature_level
        self.declaration_types = declaration_types
        self.body_containers = body_containers

    def is_type_declaration(self, node_type: str) -> bool:
        """Check if a node type declares a class, interface, enum, record or annotation."""
        return node_type in self.declaration_types

    def is_supported_file(self, file_path: str) -> bool:
        """Check if a file has one of this language's source extensions."""
        return Path(file_path).suffix in self.extensions


# Java 21 covers records, sealed types and pattern matching as emitted by
# the decompiler.
JAVA = LanguageConfig(
    name="java",
    extensions=[".java"],
    feature_level="JAVA_21",
    declaration_types={
        "class_declaration": "class",
        "interface_declaration": "interface",
        "enum_declaration": "enum",
        "record_declaration": "record",
        "annotation_type_declaration": "annotation",
    },
    body_containers=["enum_body_declarations"],
)


def load_language() -> Language:
    """Load the tree-sitter Java grammar."""
    return Language(tsjava.language())


def create_parser(lang_config: LanguageConfig = JAVA) -> Parser:
    """Create a parser for the configured grammar.

    Declaration kinds the installed grammar does not know are logged rather
    than treated as fatal, so an older grammar still indexes what it can.

    Args:
        lang_config: Language configuration

    Returns:
        Parser bound to the grammar
    """
    language = load_language()
    missing = missing_node_kinds(language, lang_config.declaration_types)
    if missing:
        logger.warning(
            f"Installed {lang_config.name} grammar lacks {', '.join(missing)}; "
            f"files using them will fail to parse (target level {lang_config.feature_level})"
        )

    parser = Parser()
    parser.language = language
    logger.debug(f"Initialized parser for {lang_config.name} ({lang_config.feature_level})")
    return parser


def missing_node_kinds(language: Language, node_kinds) -> List[str]:
    """Return the named node kinds the grammar does not define.

    Args:
        language: Loaded tree-sitter language
        node_kinds: Iterable of named node kinds

    Returns:
        Sorted list of unknown kinds
    """
    return sorted(kind for kind in node_kinds if not language.id_for_node_kind(kind, True))
