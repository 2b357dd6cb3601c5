"""Shortcut to the runtime configuration helpers.

Re-exports :mod:`vecroot.infrastructure.config` so callers can write
``from vecroot.config import get_config``.
"""

from __future__ import annotations

from vecroot.infrastructure import config as _config
from vecroot.infrastructure.config import (
    ConfigDict,
    get_config,
    get_default_config,
    init_environment,
    solver_settings,
)

__all__ = ["ConfigDict", "get_config", "get_default_config", "init_environment", "solver_settings"]


def __getattr__(name: str):
    return getattr(_config, name)


def __dir__() -> list[str]:
    return sorted(set(__all__) | set(dir(_config)))
