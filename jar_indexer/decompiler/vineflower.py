"""Source reconstruction with the Vineflower decompiler."""

import logging
import os
import shutil
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .archive_filter import filter_archive, normalize_prefixes

logger = logging.getLogger(__name__)


class DecompilerError(RuntimeError):
    """Raised when the decompiler cannot be run at all."""


@dataclass
class DecompileOptions:
    """Engine settings for one decompilation run."""

    decompile_generics: bool = True
    allow_synthetic_access: bool = True  # needed for inner classes
    remove_synthetic: bool = True
    indent: str = "    "
    log_level: str = "WARN"
    threads: int = field(default_factory=lambda: os.cpu_count() or 1)


@dataclass
class RunSummary:
    """Result of a completed decompilation run."""

    engine: str
    archive_path: str
    output_dir: str
    threads: int
    elapsed_seconds: float
    source_files: int


class SourceReconstructor(ABC):
    """Capability interface for turning an archive into a source tree."""

    name: str = "reconstructor"

    @abstractmethod
    def reconstruct_source(
        self, archive_path: Path, output_dir: Path, options: DecompileOptions
    ) -> RunSummary:
        """Write one source file per top-level type into ``output_dir``.

        Per-class failures are the engine's concern and are not reported
        here. Implementations raise ``DecompilerError`` only when the engine
        could not run.
        """
        pass


class VineflowerReconstructor(SourceReconstructor):
    """Run Vineflower as an external JVM process."""

    name = "vineflower"

    def __init__(self, jar_path: Path, java_bin: str = "java", java_opts: Optional[List[str]] = None):
        """Initialize the adapter.

        Args:
            jar_path: Path to the Vineflower jar
            java_bin: Java launcher executable
            java_opts: Extra JVM options (heap size etc.)
        """
        self.jar_path = Path(jar_path)
        self.java_bin = java_bin
        self.java_opts = list(java_opts or [])

    def build_command(self, archive_path: Path, output_dir: Path, options: DecompileOptions) -> List[str]:
        """Build the engine command line.

        Args:
            archive_path: Archive to decompile
            output_dir: Destination directory
            options: Engine settings

        Returns:
            Argument vector
        """
        return [
            self.java_bin,
            *self.java_opts,
            "-jar",
            str(self.jar_path),
            f"-dgs={int(options.decompile_generics)}",
            f"-asc={int(options.allow_synthetic_access)}",
            f"-rsy={int(options.remove_synthetic)}",
            f"-ind={options.indent}",
            f"-log={options.log_level}",
            f"-thr={options.threads}",
            str(archive_path),
            str(output_dir),
        ]

    def reconstruct_source(
        self, archive_path: Path, output_dir: Path, options: DecompileOptions
    ) -> RunSummary:
        if not self.jar_path.is_file():
            raise DecompilerError(f"Vineflower jar not found: {self.jar_path}")

        command = self.build_command(archive_path, output_dir, options)
        logger.info(f"Starting Vineflower with {options.threads} threads...")
        logger.debug(f"Command: {' '.join(command)}")

        start = time.monotonic()
        try:
            completed = subprocess.run(command, check=False)
        except OSError as e:
            raise DecompilerError(f"Cannot launch {self.java_bin}: {e}") from e
        elapsed = time.monotonic() - start

        if completed.returncode != 0:
            raise DecompilerError(f"Vineflower exited with status {completed.returncode}")

        logger.info(f"Decompilation completed in {elapsed:.1f} seconds")
        return RunSummary(
            engine=self.name,
            archive_path=str(archive_path),
            output_dir=str(output_dir),
            threads=options.threads,
            elapsed_seconds=elapsed,
            source_files=sum(1 for _ in Path(output_dir).rglob("*.java")),
        )


def decompile_archive(
    archive_path: Path,
    output_dir: Path,
    prefixes: List[str],
    reconstructor: SourceReconstructor,
    options: Optional[DecompileOptions] = None,
) -> RunSummary:
    """Decompile the allowed packages of an archive into a source tree.

    Any previous contents of the output directory are removed. The archive
    is first filtered into a temporary file in the system temp directory,
    which is removed on every exit path.

    Args:
        archive_path: Archive to decompile (left untouched)
        output_dir: Destination directory; emptied first if it exists
        prefixes: Allowed package prefixes
        reconstructor: Engine adapter
        options: Engine settings, defaults if omitted

    Returns:
        Summary reported by the engine adapter

    Raises:
        DecompilerError: If the output directory cannot be created or the engine cannot run
    """
    options = options or DecompileOptions()
    output_dir = Path(output_dir)
    # Sources left by an earlier run must not reach the index
    try:
        if output_dir.exists():
            shutil.rmtree(output_dir)
        output_dir.mkdir(parents=True)
    except OSError as e:
        raise DecompilerError(f"Cannot create output directory {output_dir}: {e}") from e

    fd, temp_name = tempfile.mkstemp(prefix="jar-indexer-filtered-", suffix=".jar")
    os.close(fd)
    filtered = Path(temp_name)
    try:
        count = filter_archive(archive_path, filtered, prefixes)
        logger.info(f"Input JAR: {archive_path}")
        logger.info(
            f"Filtered to {count} entries (packages: {', '.join(normalize_prefixes(prefixes))})"
        )
        logger.info(f"Output:    {output_dir}")
        return reconstructor.reconstruct_source(filtered, output_dir, options)
    finally:
        filtered.unlink(missing_ok=True)
