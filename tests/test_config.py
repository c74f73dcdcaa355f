"""Tests for roost.config — AppConfig frozen dataclass."""

from pathlib import Path

import pytest

from roost.config import AppConfig


class TestAppConfig:
    def test_defaults(self) -> None:
        cfg = AppConfig()

        assert cfg.host == "127.0.0.1"
        assert cfg.port == 8000
        assert cfg.debug is True
        assert cfg.outdir == "dist"
        assert cfg.assets_dir == "assets"
        assert cfg.cdn_url == "https://esm.sh"
        assert cfg.strict_imports is False
        assert cfg.request_id_header == "X-Request-ID"
        assert cfg.build_on_startup is True
        assert cfg.mode == "development"

    def test_override(self) -> None:
        cfg = AppConfig(port=3000, debug=False, outdir=Path("build"))

        assert cfg.port == 3000
        assert cfg.mode == "production"
        assert cfg.outdir == Path("build")

    def test_frozen(self) -> None:
        cfg = AppConfig()

        with pytest.raises(AttributeError):
            cfg.debug = False  # type: ignore[misc]

    def test_assets_dir_none(self) -> None:
        assert AppConfig(assets_dir=None).assets_dir is None


class TestFromEnv:
    def test_empty_environment_is_development(self) -> None:
        assert AppConfig.from_env({}).debug is True

    def test_production(self) -> None:
        assert AppConfig.from_env({"ROOST_ENV": "production"}).mode == "production"

    def test_any_other_value_is_development(self) -> None:
        assert AppConfig.from_env({"ROOST_ENV": "staging"}).debug is True

    def test_host_port_and_log_level(self) -> None:
        cfg = AppConfig.from_env(
            {"ROOST_HOST": "0.0.0.0", "ROOST_PORT": "9000", "ROOST_LOG_LEVEL": "debug"}
        )
        assert cfg.host == "0.0.0.0"
        assert cfg.port == 9000
        assert cfg.log_level == "debug"

    def test_overrides_win(self) -> None:
        cfg = AppConfig.from_env({"ROOST_ENV": "production", "ROOST_PORT": "9000"}, port=1234)
        assert cfg.port == 1234
        assert cfg.debug is False

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ROOST_ENV", "production")
        assert AppConfig.from_env().debug is False
