"""Tests for pixelforge.config: platform configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from pixelforge.config import PlatformConfig, load_platform_config
from pixelforge.constants import GEMINI_KEY_PLACEHOLDER
from pixelforge.errors import ConfigError


class TestPlatformConfig:
    def test_defaults(self) -> None:
        config = PlatformConfig()
        assert config.replicate_base_url == "https://api.replicate.com/v1"
        assert config.poll_interval == 1.0
        assert config.max_wait is None
        assert not config.has_replicate_token
        assert not config.has_gemini_key

    def test_placeholder_gemini_key_is_absent(self) -> None:
        assert not PlatformConfig(gemini_api_key=GEMINI_KEY_PLACEHOLDER).has_gemini_key
        assert PlatformConfig(gemini_api_key="real").has_gemini_key

    def test_frozen(self) -> None:
        config = PlatformConfig(replicate_api_token="t")
        with pytest.raises(Exception):
            config.replicate_api_token = "other"  # type: ignore[misc]


class TestLoadPlatformConfig:
    def test_from_environ(self) -> None:
        config = load_platform_config(
            environ={
                "REPLICATE_API_TOKEN": " r8_token ",
                "REPLICATE_MODEL_ID": "acme/frames:v2",
                "GEMINI_API_KEY": "",
                "PIXELFORGE_POLL_INTERVAL": "0.5",
                "UNRELATED": "x",
            }
        )
        assert config.replicate_api_token == "r8_token"
        assert config.replicate_model_id == "acme/frames:v2"
        assert config.gemini_api_key is None
        assert config.poll_interval == 0.5

    def test_env_file_then_environ(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("REPLICATE_API_TOKEN=from-file\nGEMINI_API_KEY=gem-file\n")
        config = load_platform_config(
            env_file=env_file, environ={"REPLICATE_API_TOKEN": "from-env"}
        )
        assert config.replicate_api_token == "from-env"
        assert config.gemini_api_key == "gem-file"

    def test_yaml_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "pixelforge.yaml"
        path.write_text(
            "platform:\n"
            "  replicate_api_token: from-yaml\n"
            "  max_wait: 120\n"
        )
        config = load_platform_config(
            config_path=path, environ={"REPLICATE_API_TOKEN": "from-env"}
        )
        assert config.replicate_api_token == "from-yaml"
        assert config.max_wait == 120

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_platform_config(config_path=path, environ={}) == PlatformConfig()

    def test_missing_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_platform_config(config_path=tmp_path / "nope.yaml", environ={})

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("platform: [unclosed\n")
        with pytest.raises(ConfigError, match="Malformed YAML"):
            load_platform_config(config_path=path, environ={})

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_platform_config(config_path=path, environ={})

    def test_invalid_value(self) -> None:
        with pytest.raises(ConfigError, match="Invalid platform configuration"):
            load_platform_config(environ={"PIXELFORGE_POLL_INTERVAL": "-1"})
