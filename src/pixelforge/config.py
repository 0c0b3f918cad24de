"""Platform configuration loading.

Platform-level provider credentials are process-wide settings.  They are
read once (environment, optional ``.env`` file, optional YAML override)
into an immutable :class:`PlatformConfig` that is passed explicitly to
the orchestrator.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from pixelforge.constants import GEMINI_KEY_PLACEHOLDER
from pixelforge.errors import ConfigError
from pixelforge.logging import get_logger

logger = get_logger("config")

# Environment variable → PlatformConfig field.
_ENV_FIELDS: dict[str, str] = {
    "REPLICATE_API_TOKEN": "replicate_api_token",
    "REPLICATE_MODEL_ID": "replicate_model_id",
    "GEMINI_API_KEY": "gemini_api_key",
    "PIXELFORGE_REPLICATE_BASE_URL": "replicate_base_url",
    "PIXELFORGE_GEMINI_BASE_URL": "gemini_base_url",
    "PIXELFORGE_POLL_INTERVAL": "poll_interval",
    "PIXELFORGE_MAX_WAIT": "max_wait",
    "PIXELFORGE_REQUEST_TIMEOUT": "request_timeout",
}


class PlatformConfig(BaseModel):
    """Immutable platform-level provider settings.

    Attributes:
        replicate_api_token: Platform token for the polling provider.
        replicate_model_id: Optional platform model override, used by the
            frame-extension flow.
        gemini_api_key: Platform key for the single-call provider.
        replicate_base_url: Base URL of the prediction API.
        gemini_base_url: Base URL of the Gemini generative language API.
        poll_interval: Seconds between prediction status polls.
        max_wait: Optional upper bound on a single prediction's polling
            time, in seconds.  ``None`` polls until the provider reports
            a terminal status.
        request_timeout: Per-request HTTP timeout in seconds.
    """

    replicate_api_token: str | None = None
    replicate_model_id: str | None = None
    gemini_api_key: str | None = None
    replicate_base_url: str = "https://api.replicate.com/v1"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    poll_interval: float = Field(default=1.0, ge=0.0)
    max_wait: float | None = Field(default=None, gt=0.0)
    request_timeout: float = Field(default=60.0, gt=0.0)

    model_config = {"frozen": True}

    @property
    def has_replicate_token(self) -> bool:
        """True when a platform polling-provider token is configured."""
        return bool(self.replicate_api_token)

    @property
    def has_gemini_key(self) -> bool:
        """True when a real (non-placeholder) platform Gemini key is configured."""
        return bool(self.gemini_api_key) and self.gemini_api_key != GEMINI_KEY_PLACEHOLDER


def _parse_yaml(path: Path) -> dict:
    """Read the ``platform`` mapping from a YAML file.

    Raises:
        ConfigError: If the file is missing, malformed, or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}"
        )
    section = data.get("platform", {})
    if not isinstance(section, dict):
        raise ConfigError(
            f"'platform' section must be a YAML mapping, got {type(section).__name__}"
        )
    return section


def _from_mapping(values: Mapping[str, str | None]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for env_name, field_name in _ENV_FIELDS.items():
        value = values.get(env_name)
        if value is not None and value.strip():
            fields[field_name] = value.strip()
    return fields


def load_platform_config(
    env_file: str | Path | None = None,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> PlatformConfig:
    """Load platform settings once at process start.

    Precedence, lowest to highest: ``.env`` file, process environment,
    YAML ``platform:`` section.

    Args:
        env_file: Optional dotenv file to read.
        config_path: Optional YAML file with a ``platform:`` mapping.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        A frozen :class:`PlatformConfig`.

    Raises:
        ConfigError: If a value fails validation or the YAML is invalid.
    """
    fields: dict[str, object] = {}
    if env_file is not None:
        fields.update(_from_mapping(dotenv_values(env_file)))
    fields.update(_from_mapping(os.environ if environ is None else environ))
    if config_path is not None:
        fields.update(_parse_yaml(Path(config_path)))

    try:
        config = PlatformConfig(**fields)
    except ValidationError as exc:
        raise ConfigError(f"Invalid platform configuration: {exc}") from exc

    logger.info(
        "Loaded platform config (replicate=%s, gemini=%s, poll_interval=%.2fs)",
        "yes" if config.has_replicate_token else "no",
        "yes" if config.has_gemini_key else "no",
        config.poll_interval,
    )
    return config
