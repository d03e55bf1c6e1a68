"""
Configuration management for cost analysis.

Uses dynaconf for flexible configuration with YAML files and environment overrides.
"""

import logging
from pathlib import Path
from typing import Any

from dynaconf import Dynaconf, Validator

from ..models import DEFAULT_PERIOD, Period

logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"

# Initialize dynaconf with multiple configuration sources
settings = Dynaconf(
    envvar_prefix="COSTANALYSIS",
    settings_files=[
        str(CONFIG_DIR / "config.yaml"),        # Base configuration
        str(CONFIG_DIR / "config.local.yaml"),  # Local overrides (git-ignored)
        str(CONFIG_DIR / ".secrets.yaml"),      # Secrets file (git-ignored)
    ],
    environments=False,
    load_dotenv=True,
    merge_enabled=True,
    envvar_separator="__",  # Support nested config via COSTANALYSIS_API__BASE_URL=...
    validators=[
        Validator("api.base_url", must_exist=True, default="http://localhost:8080"),
        Validator("api.timeout", gt=0, default=30),
        Validator(
            "reporting.default_period",
            is_in=[p.value for p in Period],
            default=DEFAULT_PERIOD.value,
        ),
        Validator("reporting.filename_prefix", must_exist=True, default="costs"),
        Validator("logging.level", default="ERROR"),
    ],
)


class AnalysisConfig:
    """Configuration wrapper for cost analysis settings."""

    def __init__(self):
        self.settings = settings
        self._validate_config()

    def _validate_config(self):
        """Validate the configuration on initialization."""
        try:
            settings.validators.validate()
        except Exception as e:
            logger.warning(f"Configuration validation warning: {e}")

    @property
    def api(self) -> dict[str, Any]:
        """Cost API connection settings."""
        return self.settings.get("api", {})

    @property
    def reporting(self) -> dict[str, Any]:
        """Report and export settings."""
        return self.settings.get("reporting", {})

    @property
    def logging(self) -> dict[str, Any]:
        """Logging settings."""
        return self.settings.get("logging", {})

    @property
    def default_period(self) -> Period:
        """Configured default period, falling back to 30d if invalid."""
        value = self.reporting.get("default_period", DEFAULT_PERIOD.value)
        try:
            return Period.parse(value)
        except ValueError as e:
            logger.warning(f"{e}; using {DEFAULT_PERIOD.value}")
            return DEFAULT_PERIOD

    @property
    def filename_prefix(self) -> str:
        return self.reporting.get("filename_prefix", "costs")

    def override_from_cli(self, cli_args: dict[str, Any]):
        """Override configuration with CLI arguments."""
        cli_mapping = {
            "base_url": "api.base_url",
            "token": "api.token",
            "timeout": "api.timeout",
            "period": "reporting.default_period",
        }

        for cli_key, config_path in cli_mapping.items():
            if cli_args.get(cli_key) is not None:
                self.settings.set(config_path, cli_args[cli_key])

        self._validate_config()


# Global configuration instance
config = AnalysisConfig()


def get_config() -> AnalysisConfig:
    """Get the global configuration instance."""
    return config


def reload_config() -> AnalysisConfig:
    """Reload configuration from files."""
    global config
    settings.reload()
    config = AnalysisConfig()
    return config
