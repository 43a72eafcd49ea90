"""Environment-driven configuration for an indexing run."""

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

DEFAULT_INCLUDE_PREFIXES = "com/hypixel/hytale/"
STAGED_INPUT_DIR = "input"
DECOMPILED_DIR = "decompiled"
CLASS_INDEX_FILE = "class-index.json"


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""


@dataclass(frozen=True)
class IndexerConfig:
    """Resolved settings for one run."""

    archive_path: Path
    project_root: Path
    include_prefixes: List[str]
    vineflower_jar: Path
    java_bin: str
    java_opts: List[str]
    decompiler_threads: int
    parse_workers: int
    root_source: str = "working directory"

    @property
    def decompiled_dir(self) -> Path:
        return self.project_root / DECOMPILED_DIR

    @property
    def class_index_path(self) -> Path:
        return self.project_root / CLASS_INDEX_FILE


def resolve_project_root(archive_path: Path, explicit: Optional[str] = None) -> Tuple[Path, str]:
    """Resolve the directory outputs are written under.

    An explicit root wins. Otherwise an archive staged in an ``input/``
    directory puts the root at that directory's parent, and anything else
    falls back to the current working directory.

    Args:
        archive_path: Absolute archive path
        explicit: Value of ``PROJECT_ROOT`` if set

    Returns:
        Tuple of (root, how it was resolved)
    """
    if explicit:
        return Path(explicit).expanduser().resolve(), "PROJECT_ROOT"
    parent = archive_path.parent
    if parent.name == STAGED_INPUT_DIR:
        return parent.parent, f"parent of {STAGED_INPUT_DIR}/"
    return Path.cwd().resolve(), "working directory"


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{name} must be at least 1, got {value}")
    return value


def load_config(archive_path: Path, env: Optional[Mapping[str, str]] = None) -> IndexerConfig:
    """Build the run configuration from environment variables.

    Args:
        archive_path: Archive given on the command line
        env: Environment mapping, ``os.environ`` if omitted

    Returns:
        Resolved configuration

    Raises:
        ConfigError: If a variable holds an invalid value
    """
    env = os.environ if env is None else env
    archive_path = Path(archive_path).resolve()

    project_root, source = resolve_project_root(archive_path, env.get("PROJECT_ROOT"))

    prefixes = [
        p.strip() for p in env.get("INCLUDE_PREFIXES", DEFAULT_INCLUDE_PREFIXES).split(",") if p.strip()
    ]
    if not prefixes:
        raise ConfigError("INCLUDE_PREFIXES must name at least one package prefix")

    vineflower_jar = env.get("VINEFLOWER_JAR")
    return IndexerConfig(
        archive_path=archive_path,
        project_root=project_root,
        include_prefixes=prefixes,
        vineflower_jar=Path(vineflower_jar) if vineflower_jar else project_root / "tools" / "vineflower.jar",
        java_bin=env.get("JAVA_BIN", "java"),
        java_opts=shlex.split(env.get("JAVA_OPTS", "-Xmx4g")),
        decompiler_threads=_positive_int(env, "DECOMPILER_THREADS", os.cpu_count() or 1),
        parse_workers=_positive_int(env, "PARSE_WORKERS", 1),
        root_source=source,
    )
