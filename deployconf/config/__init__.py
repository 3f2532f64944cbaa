"""
Settings management for deployconf.

Provides type-safe settings loading and validation with support for
multiple sources and priority-based merging.
"""

from .loader import DEFAULT_CONFIG_YAML, ConfigLoader, load_settings
from .models import OutputFormat, PolicySettings, Settings

__all__ = [
    "DEFAULT_CONFIG_YAML",
    "ConfigLoader",
    "OutputFormat",
    "PolicySettings",
    "Settings",
    "load_settings",
]
