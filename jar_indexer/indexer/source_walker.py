"""Deterministic discovery of decompiled source files."""

import logging
from pathlib import Path
from typing import List

from .grammars import JAVA, LanguageConfig

logger = logging.getLogger(__name__)


def find_source_files(root: Path, lang_config: LanguageConfig = JAVA) -> List[Path]:
    """Recursively collect source files under a directory in stable order.

    Files are ordered by their path relative to ``root`` compared as POSIX
    strings, so the order does not depend on filesystem iteration order.

    Args:
        root: Directory to scan
        lang_config: Language whose extensions are collected

    Returns:
        Sorted list of source file paths (empty if none match)
    """
    root = Path(root)
    files = [
        path
        for path in root.rglob("*")
        if path.is_file() and lang_config.is_supported_file(str(path))
    ]
    files.sort(key=lambda path: path.relative_to(root).as_posix())
    logger.debug(f"Found {len(files)} {lang_config.name} files under {root}")
    return files
