from pathlib import Path

import pytest

from jar_indexer.cli import EXIT_FATAL, EXIT_OK, EXIT_USAGE, main
from jar_indexer import cli


def test_missing_argument_is_usage_error(capsys) -> None:
    assert main([]) == EXIT_USAGE
    assert "Usage: jar-indexer" in capsys.readouterr().err


def test_too_many_arguments_is_usage_error(sample_jar: Path) -> None:
    assert main([str(sample_jar), "extra"]) == EXIT_USAGE


def test_nonexistent_path_is_usage_error(tmp_path: Path, capsys) -> None:
    assert main([str(tmp_path / "missing.jar")]) == EXIT_USAGE
    assert "File not found" in capsys.readouterr().err


def test_wrong_extension_is_usage_error(tmp_path: Path, capsys) -> None:
    archive = tmp_path / "app.zip"
    archive.write_bytes(b"PK")
    assert main([str(archive)]) == EXIT_USAGE
    assert "Expected a .jar file" in capsys.readouterr().err
    assert not (tmp_path / "decompiled").exists()


def test_invalid_environment_is_usage_error(sample_jar: Path, monkeypatch) -> None:
    monkeypatch.setenv("PARSE_WORKERS", "zero")
    assert main([str(sample_jar)]) == EXIT_USAGE


def test_invalid_environment_creates_no_log_file(sample_jar: Path, tmp_path: Path, monkeypatch) -> None:
    log_file = tmp_path / "logs" / "run.log"
    log_file.parent.mkdir()
    monkeypatch.setenv("LOG_FILE", str(log_file))
    monkeypatch.setenv("DECOMPILER_THREADS", "0")

    assert main([str(sample_jar)]) == EXIT_USAGE
    assert not log_file.exists()


def test_engine_failure_is_fatal(sample_jar: Path, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path / "root"))
    monkeypatch.setenv("VINEFLOWER_JAR", str(tmp_path / "absent.jar"))

    assert main([str(sample_jar)]) == EXIT_FATAL
    assert not (tmp_path / "root" / "class-index.json").exists()


def test_successful_run_returns_zero(
    sample_jar: Path, tmp_path: Path, monkeypatch, stub_reconstructor, outer_source
) -> None:
    monkeypatch.setenv("PROJECT_ROOT", str(tmp_path / "root"))
    monkeypatch.setenv("INCLUDE_PREFIXES", "com.example")
    stub = stub_reconstructor({"com/example/Outer.java": outer_source})
    monkeypatch.setattr("jar_indexer.pipeline.create_reconstructor", lambda config: stub)

    assert main([str(sample_jar)]) == EXIT_OK
    assert (tmp_path / "root" / "class-index.json").is_file()
    assert "com/example/Outer.class" in stub.seen_entries


def test_interrupt_handler_raises_keyboard_interrupt() -> None:
    with pytest.raises(KeyboardInterrupt):
        cli._interrupt(15, None)
