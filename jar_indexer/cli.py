"""Command-line entry point: jar-indexer <path-to-jar>."""

import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, load_config
from .pipeline import run_pipeline

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FATAL = 2

USAGE = """Usage: jar-indexer <path-to-jar>
  <path-to-jar>  Path to the server JAR file

Decompiles the JAR and writes decompiled/ and class-index.json under the
project root (PROJECT_ROOT, else the parent of input/, else the working
directory)."""


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL and LOG_FILE."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_file = os.getenv("LOG_FILE")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def _usage_error(message: Optional[str] = None) -> int:
    if message:
        print(f"ERROR: {message}", file=sys.stderr)
    print(USAGE, file=sys.stderr)
    return EXIT_USAGE


def main(argv: Optional[List[str]] = None) -> int:
    """Validate arguments and run the indexing pipeline.

    Args:
        argv: Arguments without the program name, ``sys.argv[1:]`` if omitted

    Returns:
        Process exit status
    """
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        return _usage_error()

    archive_path = Path(args[0]).expanduser().absolute()
    if not archive_path.is_file():
        return _usage_error(f"File not found: {archive_path}")
    if archive_path.suffix.lower() != ".jar":
        return _usage_error(f"Expected a .jar file, got: {archive_path.name}")

    try:
        config = load_config(archive_path)
    except ConfigError as e:
        return _usage_error(str(e))

    configure_logging()

    try:
        result = run_pipeline(config)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"FATAL: {e}", exc_info=True)
        return EXIT_FATAL

    if result.parse.files_failed:
        logger.warning(f"{result.parse.files_failed} files could not be parsed")
    return EXIT_OK


def _interrupt(signum, frame):
    raise KeyboardInterrupt(f"signal {signum}")


def run() -> None:
    """Console script entry point."""
    signal.signal(signal.SIGTERM, _interrupt)
    sys.exit(main())


if __name__ == "__main__":
    run()
