"""
Configuration loading for coparrot.

Provides the loader for the user-level configuration file. See
:mod:`coparrot.config.loader` for implementation details.
"""

from .loader import AppConfig, ConfigError, load_config, save_config  # noqa: F401
