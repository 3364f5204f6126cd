"""Preview configuration schema and loading.

Values come from, in order of precedence:
1. CLI flags
2. The ``preview:`` section of sandpreview.yaml
3. SANDPREVIEW_* environment variables (nested with ``__``)
4. Defaults
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from sandpreview.exceptions import ConfigurationError

DEFAULT_CONFIG_FILENAME = "sandpreview.yaml"

MIB = 1024 * 1024


def _default_baseline() -> dict[str, str]:
    return {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
        "lucide-react": "^0.474.0",
        "recharts": "^2.12.7",
        "@twind/core": "^1.1.3",
        "@twind/preset-tailwind": "^1.1.4",
    }


class LimitsConfig(BaseModel):
    """Dependency admission caps."""

    max_packages: int = Field(default=20, ge=0, description="Candidates examined per run")
    max_total_bytes: int = Field(
        default=50 * MIB, ge=0, description="Aggregate unpacked size of accepted packages"
    )
    max_package_bytes: int = Field(
        default=12 * MIB, ge=0, description="Unpacked size cap for a single package"
    )


class RegistryConfig(BaseModel):
    """Package registry access."""

    url: str = Field(default="https://registry.npmjs.org/", description="Registry base URL")
    client: Literal["npm", "http"] = Field(
        default="npm", description="Query via `npm view` or direct HTTP"
    )
    timeout_seconds: float = Field(default=8.0, gt=0, description="Bound per metadata query")


class ToolingConfig(BaseModel):
    """External tools used by the install and bundle stages."""

    npm_command: list[str] = Field(default_factory=lambda: ["npm"])
    esbuild_command: list[str] = Field(default_factory=lambda: ["esbuild"])
    install_timeout_seconds: float = Field(default=300.0, gt=0)
    bundle_timeout_seconds: float = Field(default=120.0, gt=0)
    npm_cache_dir: Path | None = Field(
        default=None, description="Shared npm cache passed as --cache"
    )


class LocksConfig(BaseModel):
    """Per-project lock behaviour for persistent scaffolds."""

    timeout_seconds: float = Field(default=60.0, gt=0)
    poll_interval_seconds: float = Field(default=0.25, gt=0)
    stale_after_seconds: float = Field(
        default=900.0, gt=0, description="Lock files older than this are removed"
    )


class PreviewConfig(BaseSettings):
    """Complete preview configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SANDPREVIEW_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    home: Path = Field(
        default_factory=lambda: Path.home() / ".sandpreview",
        description="Root for run directories, offline scaffolds and diagnostics",
    )
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "warning"
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    tooling: ToolingConfig = Field(default_factory=ToolingConfig)
    locks: LocksConfig = Field(default_factory=LocksConfig)
    baseline_dependencies: dict[str, str] = Field(default_factory=_default_baseline)

    @property
    def runs_dir(self) -> Path:
        """Parent of ephemeral run directories."""
        return self.home / "runs"

    @property
    def offline_dir(self) -> Path:
        """Parent of persistent, per-project scaffolds."""
        return self.home / "offline-runs"

    @property
    def diagnostics_dir(self) -> Path:
        return self.home / "diagnostics"


def load_preview_config(config_path: Path | None = None) -> PreviewConfig:
    """Load preview configuration from a YAML file.

    Args:
        config_path: YAML file to read. Defaults to ./sandpreview.yaml.

    Returns:
        PreviewConfig with values from file, environment or defaults

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

    if not config_path.exists():
        try:
            return PreviewConfig()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid preview settings in environment: {e}") from e

    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Expected a mapping in {config_path}")

    section = raw_config.get("preview") or {}

    try:
        return PreviewConfig(**section)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid preview config in {config_path}: {e}") from e


def merge_cli_overrides(
    config: PreviewConfig,
    home: Path | None = None,
    registry_url: str | None = None,
    log_level: str | None = None,
) -> PreviewConfig:
    """Merge CLI flag overrides into config.

    Returns:
        New PreviewConfig with overrides applied
    """
    updated = config.model_copy(deep=True)

    if home is not None:
        updated.home = home

    if registry_url is not None:
        updated.registry.url = registry_url

    if log_level is not None:
        updated.log_level = log_level  # type: ignore[assignment]

    return updated
