"""Core."""

from .config import (
    HostwardenConfig,
    clear_config,
    flatten_config,
    get_config,
    load_config_from_file,
)

__all__ = [
    "HostwardenConfig",
    "clear_config",
    "flatten_config",
    "get_config",
    "load_config_from_file",
]
