"""Config package.

  - load_config(defaults, file_path) -> dict   (defaults < file < env)
  - providers, for callers composing their own precedence chain
"""

from __future__ import annotations

from .loader import DEFAULTS, load_config
from .providers import (
    ConfigManager,
    ConfigProvider,
    DictProvider,
    EnvProvider,
    FileProvider,
    deep_merge,
)

__all__ = [
    "DEFAULTS",
    "load_config",
    "ConfigProvider",
    "ConfigManager",
    "DictProvider",
    "EnvProvider",
    "FileProvider",
    "deep_merge",
]
