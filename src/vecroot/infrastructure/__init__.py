"""Runtime infrastructure: configuration and logging setup."""

from __future__ import annotations

from . import config  # noqa: F401

__all__ = ["config"]
