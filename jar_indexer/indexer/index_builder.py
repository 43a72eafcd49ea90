"""Assemble and persist the class index document."""

import hashlib
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from .models import ClassEntry, ClassIndex

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"
HASH_CHUNK_SIZE = 1024 * 1024


class IndexBuildError(RuntimeError):
    """Raised when no usable index can be produced or written."""


def compute_archive_hash(path: Path) -> str:
    """Compute the SHA-256 content hash of an archive.

    Args:
        path: Archive path

    Returns:
        ``sha256:`` followed by the lowercase hex digest
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return f"sha256:{digest.hexdigest()}"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Format an instant as ISO-8601 UTC with a ``Z`` suffix."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def unique_entries(entries: Iterable[ClassEntry]) -> List[ClassEntry]:
    """Drop entries whose fully-qualified name was already seen, keeping the first."""
    seen = set()
    unique = []
    for entry in entries:
        if entry.fqcn in seen:
            logger.warning(f"Skipping duplicate type {entry.fqcn} from {entry.source_file}")
            continue
        seen.add(entry.fqcn)
        unique.append(entry)
    return unique


def build_class_index(
    entries: Iterable[ClassEntry],
    jar_hash: str,
    version: str = SCHEMA_VERSION,
    generated_at: Optional[str] = None,
) -> ClassIndex:
    """Assemble the index document.

    Args:
        entries: Extracted entries in discovery order
        jar_hash: Content hash of the input archive
        version: Schema version
        generated_at: Generation timestamp, now if omitted

    Returns:
        Index document with duplicate type names removed
    """
    return ClassIndex(
        version=version,
        jar_hash=jar_hash,
        generated_at=generated_at or utc_timestamp(),
        classes=unique_entries(entries),
    )


def serialize_class_index(index: ClassIndex) -> str:
    """Render the document as indented JSON with stable key order."""
    return json.dumps(index.to_dict(), indent=2, ensure_ascii=False) + "\n"


def write_class_index(index: ClassIndex, output_path: Path) -> None:
    """Write the document so readers never observe a partial file.

    The JSON is written to a temporary file in the destination directory
    and then renamed over the destination.

    Args:
        index: Document to persist
        output_path: Destination path; parent directories are created

    Raises:
        IndexBuildError: If the document cannot be written
    """
    output_path = Path(output_path)
    payload = serialize_class_index(index)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
        )
    except OSError as e:
        raise IndexBuildError(f"Cannot write {output_path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(temp_name, output_path)
    except OSError as e:
        raise IndexBuildError(f"Cannot write {output_path}: {e}") from e
    finally:
        if os.path.exists(temp_name):
            os.unlink(temp_name)

    logger.debug(f"Wrote {len(payload)} bytes to {output_path}")


def save_class_index(
    entries: List[ClassEntry],
    jar_hash: str,
    output_path: Path,
    files_found: int,
    files_failed: int = 0,
    generated_at: Optional[str] = None,
) -> ClassIndex:
    """Build the index, check it is usable, and persist it.

    Failed files do not fail the build; it fails only when source files
    existed but none produced an entry.

    Args:
        entries: Extracted entries
        jar_hash: Content hash of the input archive
        output_path: Destination path
        files_found: Number of source files discovered
        files_failed: Number of source files that failed to parse
        generated_at: Generation timestamp, now if omitted

    Returns:
        The persisted document

    Raises:
        IndexBuildError: If no entries were produced from existing files or the write fails
    """
    if files_found > 0 and not entries:
        raise IndexBuildError(
            f"No types extracted from {files_found} source files ({files_failed} failed to parse)"
        )

    index = build_class_index(entries, jar_hash, generated_at=generated_at)
    write_class_index(index, output_path)
    duplicates = len(entries) - len(index.classes)

    logger.info(
        f"Parsed {files_found - files_failed} files successfully, {files_failed} errors"
    )
    logger.info(f"Indexed {len(index.classes)} types, skipped {duplicates} duplicates")
    logger.info(f"Written to: {output_path}")
    return index
