"""Central configuration access for vecroot."""

from __future__ import annotations

from .defaults import ConfigDict, get_config, get_default_config, init_environment, solver_settings

__all__ = ["ConfigDict", "get_config", "get_default_config", "init_environment", "solver_settings"]
