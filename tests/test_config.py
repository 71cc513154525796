"""Tests for environment configuration and logging setup."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from kubeetl.config import (
    EngineConfig,
    configure_logging,
    parse_log_level,
    parse_manifest_paths,
)
from kubeetl.engine.planner import DEFAULT_INJECTION_IMAGE


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogLevel:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), (None, logging.INFO)],
    )
    def test_parse_log_level(self, value: str | None, expected: int) -> None:
        assert parse_log_level(value) == expected

    def test_invalid_level_falls_back_to_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert parse_log_level("verbose") == logging.INFO
        assert "Invalid log level 'VERBOSE'" in capsys.readouterr().err

    @pytest.mark.usefixtures("restore_root_logger")
    def test_configure_logging_uses_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEETL_LOG_LEVEL", "ERROR")

        assert configure_logging() == logging.ERROR
        assert logging.getLogger().level == logging.ERROR

    @pytest.mark.usefixtures("restore_root_logger")
    def test_explicit_level_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KUBEETL_LOG_LEVEL", "ERROR")
        assert configure_logging("DEBUG") == logging.DEBUG


class TestManifestPaths:
    def test_missing_and_file_entries_are_skipped(self, tmp_path: Path) -> None:
        manifests = tmp_path / "manifests"
        manifests.mkdir()
        not_a_dir = tmp_path / "file.yaml"
        not_a_dir.write_text("")

        paths = parse_manifest_paths(f"{manifests}, ,{not_a_dir},{tmp_path / 'absent'}")

        assert paths == [manifests]

    def test_empty(self) -> None:
        assert parse_manifest_paths("") == []


class TestEngineConfig:
    def test_defaults(self) -> None:
        config = EngineConfig.from_env({})

        assert config.injection_image == DEFAULT_INJECTION_IMAGE
        assert config.manifest_paths == []
        assert config.secret_store == Path("~/.kubeetl/secrets").expanduser()
        assert config.log_level == "INFO"

    def test_from_environment(self, tmp_path: Path) -> None:
        config = EngineConfig.from_env(
            {
                "KUBEETL_INJECTION_CONTAINER": "registry.local/provider:2.0",
                "KUBEETL_MANIFEST_PATHS": str(tmp_path),
                "KUBEETL_CONFIG_STORE": str(tmp_path / "cm"),
                "KUBEETL_SECRET_STORE": str(tmp_path / "secrets"),
                "KUBEETL_LOG_LEVEL": "DEBUG",
            }
        )

        assert config.manifest_paths == [tmp_path]
        assert config.config_store == tmp_path / "cm"
        assert config.secret_store == tmp_path / "secrets"
        assert config.planner_config().injection_image == "registry.local/provider:2.0"
