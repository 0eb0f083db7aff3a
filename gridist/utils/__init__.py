"""
Core Utilities Module
Configuration and logging shared by all components.
"""

from gridist.utils.config_loader import ConfigManager, SystemConfig, load_config, validate_config
from gridist.utils.logger import (
    SystemLogger,
    log_exceptions,
    log_run_summary,
    setup_logging,
)

__all__ = [
    # Config
    "ConfigManager",
    "SystemConfig",
    "load_config",
    "validate_config",
    # Logging
    "SystemLogger",
    "log_exceptions",
    "log_run_summary",
    "setup_logging",
]
