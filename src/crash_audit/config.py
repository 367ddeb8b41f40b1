from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from crash_audit.exceptions import ConfigError
from crash_audit.logging import get_logger
from crash_audit.parser import DEFAULT_TEST_DIR, normalize_test_dir
from crash_audit.tracker.cache import DEFAULT_CACHE_PATH
from crash_audit.tracker.client import DEFAULT_PER_PAGE, DEFAULT_TIMEOUT
from crash_audit.tracker.retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    RetryPolicy,
)

__all__ = [
    "CacheConfig",
    "CrashAuditConfig",
    "PROJECT_CONFIG_FILENAME",
    "ScanConfig",
    "TrackerConfig",
    "get_user_config_path",
    "load_config",
]

logger = get_logger(__name__)

#: Project config file looked up in the working directory
PROJECT_CONFIG_FILENAME = "crash-audit.yaml"


class TrackerConfig(BaseModel):
    """Settings for the GitHub issue tracker.

    Attributes:
        repository: ``owner/name`` whose open issues are fetched.
        token: GitHub token. ``--github-token`` and GITHUB_TOKEN take
            precedence.
        per_page: Issues per page (GitHub allows at most 100).
        timeout_seconds: Per-request timeout.
        max_retries: Attempts per page for transient failures.
        retry_base_delay: First backoff delay in seconds.
        concurrency: Pages requested at once.
        rate_limit: Requests per hour for the shared limiter (None picks
            GitHub's ceiling when concurrency > 1).
    """

    repository: str = "rust-lang/rust"
    token: str | None = None
    per_page: int = Field(default=DEFAULT_PER_PAGE, ge=1, le=100)
    timeout_seconds: int = Field(default=DEFAULT_TIMEOUT, ge=1, le=300)
    max_retries: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1, le=10)
    retry_base_delay: float = Field(default=DEFAULT_BASE_DELAY, ge=0.0, le=60.0)
    concurrency: int = Field(default=1, ge=1, le=16)
    rate_limit: int | None = Field(default=None, gt=0)

    @field_validator("repository")
    @classmethod
    def check_repository_slug(cls, v: str) -> str:
        owner, sep, name = v.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"repository must look like 'owner/name', got {v!r}")
        return f"{owner}/{name}"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_base_delay * 8,
        )


class ScanConfig(BaseModel):
    """Settings for the history scan."""

    test_dir: str = DEFAULT_TEST_DIR

    @field_validator("test_dir")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_test_dir(v)


class CacheConfig(BaseModel):
    """Settings for the open issue snapshot file."""

    path: Path = DEFAULT_CACHE_PATH


class YamlConfigSource(PydanticBaseSettingsSource):
    """Settings source that loads from a YAML file."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file = yaml_file
        self._config_data = read_yaml_config(yaml_file)

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        if field_name in self._config_data:
            return self._config_data[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._config_data


def read_yaml_config(yaml_file: Path | None) -> dict[str, Any]:
    """Read a YAML mapping, returning {} when the file is absent or empty.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    if yaml_file is None or not yaml_file.exists():
        return {}
    try:
        with open(yaml_file) as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {yaml_file}: {e}") from e
    if loaded is None:
        logger.warning("config_file_empty", path=str(yaml_file))
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(
            f"Config file {yaml_file} must contain a mapping",
            value=type(loaded).__name__,
        )
    return loaded


class CrashAuditConfig(BaseSettings):
    """Root configuration object containing all crash-audit settings."""

    model_config = SettingsConfigDict(
        env_prefix="CRASH_AUDIT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    github: TrackerConfig = Field(default_factory=TrackerConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    verbosity: Literal["error", "warning", "info", "debug"] = "warning"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize the order of settings sources.

        Priority (highest to lowest):
        1. Environment variables (CRASH_AUDIT_*)
        2. Project YAML config, passed in by load_config() as init values
        3. User YAML config (~/.config/crash-audit/config.yaml)
        4. Model defaults
        """
        return (
            env_settings,
            init_settings,
            YamlConfigSource(settings_cls, get_user_config_path()),
        )


def get_user_config_path() -> Path:
    """Get the path to the user configuration file.

    Returns:
        Path to ~/.config/crash-audit/config.yaml
    """
    return Path.home() / ".config" / "crash-audit" / "config.yaml"


def load_config(config_path: Path | None = None) -> CrashAuditConfig:
    """Load configuration with hierarchy: defaults -> user -> project -> env.

    Args:
        config_path: Project config file. Defaults to ./crash-audit.yaml.

    Returns:
        CrashAuditConfig instance with merged configuration.

    Raises:
        ConfigError: If configuration is invalid.
    """
    if config_path is None:
        config_path = Path.cwd() / PROJECT_CONFIG_FILENAME
    elif not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    if not config_path.exists():
        logger.debug("project_config_missing", path=str(config_path))

    project_data = read_yaml_config(config_path)
    try:
        return CrashAuditConfig(**project_data)
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        raise ConfigError(
            message=f"Invalid configuration: {first_error['msg']}",
            field=field,
            value=first_error.get("input"),
        ) from e
