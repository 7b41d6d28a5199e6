"""API Routes"""

from . import calibration, health, models

__all__ = ["models", "calibration", "health"]
