"""Configuration loading with Pydantic validation."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

ENV_PREFIX = "FSBLOBSTORE_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


class StoreConfig(BaseModel):
    """Settings for a filesystem blob store."""

    model_config = ConfigDict(extra="forbid")

    base_dir: Path = Field(..., description="Directory holding one subdirectory per container")
    auto_detect_content_type: bool = Field(
        False, description="Guess content types from file extensions"
    )
    metadata_dir_name: str = Field(
        ".fsblobstore", description="Hidden directory under base_dir for sidecar records"
    )
    log_level: str = Field("INFO", description="Log level for the fsblobstore logger")
    json_logs: bool = Field(False, description="Emit JSON formatted logs")

    @field_validator("metadata_dir_name")
    @classmethod
    def validate_metadata_dir_name(cls, v: str) -> str:
        """Sidecar directory must be a single hidden path segment."""
        if not v.startswith(".") or v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError(
                f"metadata_dir_name must be a hidden single-segment name, got '{v}'"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(_LOG_LEVELS)}, got '{v}'")
        return level


class ConfigLoader:
    """Load and validate store configuration from YAML files or the environment."""

    def _substitute_env_vars(self, value: Any) -> Any:
        """
        Recursively substitute environment variables in configuration values.

        Supports ``${VAR}`` (required), ``${VAR:-default}`` and ``$$`` for a
        literal dollar sign.

        Raises:
            ConfigurationError: If a required environment variable is not set
        """
        if isinstance(value, str):
            result = value.replace("$$", "\x00")

            def replace_var(match: "re.Match[str]") -> str:
                expression = match.group(1)
                if ":-" in expression:
                    var_name, default_value = expression.split(":-", 1)
                    env_value = os.environ.get(var_name)
                    # Empty counts as unset
                    return env_value if env_value else default_value

                env_value = os.environ.get(expression)
                if env_value is None:
                    raise ConfigurationError(
                        f"Required environment variable '{expression}' is not set",
                        variable=expression,
                    )
                return env_value

            result = _ENV_PATTERN.sub(replace_var, result)
            return result.replace("\x00", "$")

        if isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}

        if isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]

        return value

    def _validate(self, raw: Dict[str, Any], source: str) -> StoreConfig:
        try:
            return StoreConfig(**raw)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed ({source}): {e}", source=source
            ) from e

    def load_from_file(self, file_path: str) -> StoreConfig:
        """
        Load configuration from a YAML file.

        The file holds the StoreConfig fields either at top level or under a
        ``store`` section.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If YAML is invalid or validation fails
        """
        config_path = Path(file_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(config_path, "r") as f:
            try:
                raw_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Invalid YAML in {file_path}: {e}", source=str(file_path)
                ) from e

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {file_path}", source=str(file_path)
            )
        if "store" in raw_config:
            raw_config = raw_config["store"] or {}

        return self._validate(self._substitute_env_vars(raw_config), str(file_path))

    def from_env(
        self,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> StoreConfig:
        """
        Build configuration from ``FSBLOBSTORE_*`` environment variables.

        ``FSBLOBSTORE_BASE_DIR`` maps to ``base_dir`` and so on. Values in
        ``overrides`` (e.g. command-line options) win over the environment.
        """
        environ = os.environ if environ is None else environ
        raw: Dict[str, Any] = {}
        for field_name in StoreConfig.model_fields:
            env_name = ENV_PREFIX + field_name.upper()
            if env_name in environ:
                raw[field_name] = environ[env_name]
        raw.update(overrides or {})
        return self._validate(raw, "environment")
