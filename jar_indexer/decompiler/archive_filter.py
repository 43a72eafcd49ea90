"""Reduce a JAR to the packages worth decompiling."""

import logging
import shutil
import zipfile
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)

MANIFEST_NAME = "META-INF/MANIFEST.MF"
METADATA_PREFIX = "META-INF/"
FRESH_MANIFEST = "Manifest-Version: 1.0\r\nCreated-By: jar-indexer\r\n\r\n"


def normalize_prefixes(prefixes: Iterable[str]) -> List[str]:
    """Normalize package prefixes to archive path form.

    ``com.example`` and ``com/example`` both become ``com/example/``.
    Empty entries are dropped and order is kept.

    Args:
        prefixes: Package prefixes in dotted or slash form

    Returns:
        Deduplicated list of slash-separated prefixes ending in ``/``
    """
    normalized = []
    for prefix in prefixes:
        prefix = prefix.strip().replace(".", "/").strip("/")
        if prefix:
            normalized.append(prefix + "/")
    return list(dict.fromkeys(normalized))


def should_include(entry_name: str, prefixes: List[str]) -> bool:
    """Check if an archive entry belongs in the filtered archive.

    Args:
        entry_name: Entry path inside the archive
        prefixes: Allowed prefixes in archive path form

    Returns:
        True for metadata entries (except the manifest) and allowed packages
    """
    # The manifest is regenerated
    if entry_name == MANIFEST_NAME:
        return False
    if entry_name.startswith(METADATA_PREFIX):
        return True
    return any(entry_name.startswith(prefix) for prefix in prefixes)


def filter_archive(source: Path, target: Path, prefixes: Iterable[str]) -> int:
    """Write a copy of an archive containing only the allowed entries.

    The source archive is not modified. The target receives a freshly
    generated manifest, every other ``META-INF/`` entry, and every entry
    under an allowed prefix.

    Args:
        source: Archive to read
        target: Archive to create (overwritten if present)
        prefixes: Allowed package prefixes

    Returns:
        Number of entries copied from the source (the new manifest is not counted)

    Raises:
        OSError: If the source cannot be opened or the target cannot be created
    """
    allowed = normalize_prefixes(prefixes)
    count = 0

    try:
        with zipfile.ZipFile(source) as src, zipfile.ZipFile(
            target, "w", compression=zipfile.ZIP_DEFLATED
        ) as dst:
            dst.writestr(MANIFEST_NAME, FRESH_MANIFEST)

            for info in src.infolist():
                if not should_include(info.filename, allowed):
                    continue

                copied = zipfile.ZipInfo(info.filename, date_time=info.date_time)
                copied.external_attr = info.external_attr
                if info.is_dir():
                    dst.writestr(copied, b"")
                else:
                    copied.compress_type = zipfile.ZIP_DEFLATED
                    with src.open(info) as reader, dst.open(copied, "w") as writer:
                        shutil.copyfileobj(reader, writer)
                count += 1
    except zipfile.BadZipFile as e:
        raise OSError(f"Cannot read archive {source}: {e}") from e

    logger.debug(f"Filtered {source} to {count} entries in {target}")
    return count
