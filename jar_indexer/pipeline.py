"""Sequencing of the decompile, parse and index stages."""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import IndexerConfig
from .decompiler.vineflower import (
    DecompileOptions,
    RunSummary,
    SourceReconstructor,
    VineflowerReconstructor,
    decompile_archive,
)
from .indexer.index_builder import compute_archive_hash, save_class_index
from .indexer.java_extractor import ClassExtractor, ParseReport
from .indexer.models import ClassIndex

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outputs of a completed run."""

    index: ClassIndex
    decompile: RunSummary
    parse: ParseReport


def create_reconstructor(config: IndexerConfig) -> SourceReconstructor:
    """Build the Vineflower adapter from configuration."""
    return VineflowerReconstructor(
        jar_path=config.vineflower_jar,
        java_bin=config.java_bin,
        java_opts=config.java_opts,
    )


def run_pipeline(
    config: IndexerConfig,
    reconstructor: Optional[SourceReconstructor] = None,
    extractor: Optional[ClassExtractor] = None,
) -> PipelineResult:
    """Decompile the archive, parse the sources and write the class index.

    Args:
        config: Run configuration
        reconstructor: Decompiler adapter, Vineflower if omitted
        extractor: Structural parser, a default Java extractor if omitted

    Returns:
        Result of the run
    """
    logger.info(f"Project root: {config.project_root} (from {config.root_source})")

    # Hash before anything touches the filesystem
    jar_hash = compute_archive_hash(config.archive_path)
    logger.info(f"JAR SHA-256: {jar_hash}")

    reconstructor = reconstructor or create_reconstructor(config)

    logger.info(f"=== Phase 1a: Decompiling JAR with {reconstructor.name} ===")
    summary = decompile_archive(
        config.archive_path,
        config.decompiled_dir,
        config.include_prefixes,
        reconstructor,
        DecompileOptions(threads=config.decompiler_threads),
    )

    logger.info("=== Phase 1b: Parsing decompiled source ===")
    extractor = extractor or ClassExtractor()
    report = extractor.index_directory(
        config.decompiled_dir, config.project_root, workers=config.parse_workers
    )
    index = save_class_index(
        report.entries,
        jar_hash,
        config.class_index_path,
        files_found=report.files_found,
        files_failed=report.files_failed,
    )

    logger.info("=== Phase 1 complete ===")
    logger.info(f"  Decompiled source: {config.decompiled_dir}")
    logger.info(f"  Class index:       {config.class_index_path}")
    return PipelineResult(index=index, decompile=summary, parse=report)
