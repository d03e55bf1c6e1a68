"""Configuration for cost analysis."""

from .settings import get_config, reload_config

__all__ = ["get_config", "reload_config"]
