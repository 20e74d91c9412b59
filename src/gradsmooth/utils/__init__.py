"""
Utility Functions Module

This module provides common utility functions used across the gradsmooth project.
- Logging setup
- Typed configuration loading
- Export of evolved point clouds
"""

from .logging import setup_logger, level_from_name
from .config import (
    AppConfig,
    LoggingConfig,
    PathsConfig,
    SmoothingConfig,
    load_config,
)
from .export import save_point_cloud

__all__ = [
    "setup_logger",
    "level_from_name",
    "AppConfig",
    "LoggingConfig",
    "PathsConfig",
    "SmoothingConfig",
    "load_config",
    "save_point_cloud",
]
