import json
import shutil
from pathlib import Path

import pytest

from jar_indexer.decompiler.vineflower import DecompilerError, VineflowerReconstructor
from jar_indexer.indexer.index_builder import IndexBuildError
from jar_indexer.pipeline import create_reconstructor, run_pipeline


def test_end_to_end_outer_with_inner(
    sample_jar: Path, tmp_path: Path, make_config, stub_reconstructor, outer_source
) -> None:
    config = make_config(sample_jar, tmp_path)
    stub = stub_reconstructor({"com/example/Outer.java": outer_source})

    result = run_pipeline(config, reconstructor=stub)

    document = json.loads(config.class_index_path.read_text(encoding="utf-8"))
    assert document["version"] == "1.0.0"
    assert document["jar_hash"].startswith("sha256:")
    assert document["generated_at"].endswith("Z")

    outer, inner = document["classes"]
    assert outer["fqcn"] == "com.example.Outer"
    assert outer["fields"] == [
        {"name": "count", "type": "int", "modifiers": ["private", "final"], "annotations": []}
    ]
    assert outer["methods"] == [
        {
            "name": "get",
            "return_type": "int",
            "parameters": [],
            "modifiers": ["public"],
            "annotations": [],
            "throws": [],
        }
    ]
    assert outer["inner_classes"] == ["Inner"]
    assert outer["source_file"] == "decompiled/com/example/Outer.java"

    assert inner["fqcn"] == "com.example.Outer.Inner"
    assert inner["fields"] == []
    assert inner["methods"] == []

    assert result.parse.files_failed == 0
    assert result.decompile.engine == "stub"
    assert "org/vendor/Big.class" not in stub.seen_entries


def test_rerun_on_identical_archive_is_reproducible(
    sample_jar: Path, tmp_path: Path, make_config, stub_reconstructor, outer_source
) -> None:
    copy = tmp_path / "copy" / "app.jar"
    copy.parent.mkdir()
    shutil.copyfile(sample_jar, copy)
    sources = {
        "com/example/Outer.java": outer_source,
        "com/example/util/Helper.java": "package com.example.util;\nenum Helper { ONE }\n",
    }

    first = run_pipeline(make_config(sample_jar, tmp_path / "one"), reconstructor=stub_reconstructor(sources))
    second = run_pipeline(make_config(copy, tmp_path / "two"), reconstructor=stub_reconstructor(sources))

    assert first.index.jar_hash == second.index.jar_hash
    assert first.index.classes == second.index.classes


def test_rerun_drops_sources_from_previous_run(
    sample_jar: Path, tmp_path: Path, make_config, stub_reconstructor, outer_source
) -> None:
    config = make_config(sample_jar, tmp_path)
    old = "package com.example;\nclass Old {}\n"

    run_pipeline(
        config,
        reconstructor=stub_reconstructor({"com/example/Outer.java": outer_source, "com/example/Old.java": old}),
    )
    second = run_pipeline(config, reconstructor=stub_reconstructor({"com/example/Outer.java": outer_source}))

    assert [c.fqcn for c in second.index.classes] == ["com.example.Outer", "com.example.Outer.Inner"]
    assert not (config.decompiled_dir / "com" / "example" / "Old.java").exists()


def test_broken_file_is_excluded_and_counted(
    sample_jar: Path, tmp_path: Path, make_config, stub_reconstructor, outer_source
) -> None:
    stub = stub_reconstructor(
        {
            "com/example/Outer.java": outer_source,
            "com/example/Bad.java": "package com.example;\nclass Bad { int }\n",
        }
    )

    result = run_pipeline(make_config(sample_jar, tmp_path), reconstructor=stub)

    assert result.parse.files_failed == 1
    assert [c.fqcn for c in result.index.classes] == ["com.example.Outer", "com.example.Outer.Inner"]


def test_no_matching_packages_yields_empty_index(
    sample_jar: Path, tmp_path: Path, make_config, stub_reconstructor
) -> None:
    config = make_config(sample_jar, tmp_path, include_prefixes=["net/nothing/"])
    stub = stub_reconstructor()

    result = run_pipeline(config, reconstructor=stub)

    assert stub.seen_entries == ["META-INF/MANIFEST.MF", "META-INF/services/java.sql.Driver"]
    assert result.index.classes == []
    assert json.loads(config.class_index_path.read_text(encoding="utf-8"))["classes"] == []


def test_all_files_failing_is_fatal_and_writes_nothing(
    sample_jar: Path, tmp_path: Path, make_config, stub_reconstructor
) -> None:
    config = make_config(sample_jar, tmp_path)
    stub = stub_reconstructor({"com/example/Bad.java": "class Bad {"})

    with pytest.raises(IndexBuildError):
        run_pipeline(config, reconstructor=stub)

    assert not config.class_index_path.exists()


def test_missing_engine_is_fatal(sample_jar: Path, tmp_path: Path, make_config) -> None:
    config = make_config(sample_jar, tmp_path)

    reconstructor = create_reconstructor(config)
    assert isinstance(reconstructor, VineflowerReconstructor)

    with pytest.raises(DecompilerError):
        run_pipeline(config)
    assert not config.class_index_path.exists()
