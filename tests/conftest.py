import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from jar_indexer.config import IndexerConfig
from jar_indexer.decompiler.vineflower import DecompileOptions, RunSummary, SourceReconstructor

OUTER_SOURCE = """\
package com.example;

public class Outer {
    private final int count;

    public int get() {
        return count;
    }

    public static class Inner {
    }
}
"""

SAMPLE_JAR_ENTRIES = {
    "META-INF/MANIFEST.MF": b"Manifest-Version: 1.0\r\nMain-Class: com.example.Outer\r\n\r\n",
    "META-INF/services/java.sql.Driver": b"com.example.Driver\n",
    "com/example/": b"",
    "com/example/Outer.class": b"\xca\xfe\xba\xbe outer",
    "com/example/Outer$Inner.class": b"\xca\xfe\xba\xbe inner",
    "org/vendor/Big.class": b"\xca\xfe\xba\xbe vendor",
}


def _build_jar(path: Path, entries: Dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as jar:
        for name, data in entries.items():
            jar.writestr(name, data)
    return path


def _write_sources(root: Path, sources: Dict[str, str]) -> None:
    for relative, text in sources.items():
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")


class StubReconstructor(SourceReconstructor):
    """Writes canned sources instead of running a decompiler."""

    name = "stub"

    def __init__(self, sources: Optional[Dict[str, str]] = None):
        self.sources = sources or {}
        self.seen_entries: List[str] = []
        self.seen_archive: Optional[Path] = None

    def reconstruct_source(self, archive_path, output_dir, options: DecompileOptions) -> RunSummary:
        self.seen_archive = Path(archive_path)
        with zipfile.ZipFile(archive_path) as jar:
            self.seen_entries = jar.namelist()
        _write_sources(Path(output_dir), self.sources)
        return RunSummary(
            engine=self.name,
            archive_path=str(archive_path),
            output_dir=str(output_dir),
            threads=options.threads,
            elapsed_seconds=0.0,
            source_files=len(self.sources),
        )


@pytest.fixture
def build_jar():
    return _build_jar


@pytest.fixture
def write_sources():
    return _write_sources


@pytest.fixture
def stub_reconstructor():
    return StubReconstructor


@pytest.fixture
def outer_source() -> str:
    return OUTER_SOURCE


@pytest.fixture
def sample_jar(tmp_path: Path) -> Path:
    return _build_jar(tmp_path / "input" / "app.jar", SAMPLE_JAR_ENTRIES)


@pytest.fixture
def make_config():
    def factory(archive: Path, project_root: Path, **overrides) -> IndexerConfig:
        settings = dict(
            archive_path=archive,
            project_root=project_root,
            include_prefixes=["com/example/"],
            vineflower_jar=project_root / "tools" / "vineflower.jar",
            java_bin="java",
            java_opts=[],
            decompiler_threads=2,
            parse_workers=1,
        )
        settings.update(overrides)
        return IndexerConfig(**settings)

    return factory
