"""Market curves calibrated with the vector root finder."""

from . import credit

__all__ = ["credit"]
