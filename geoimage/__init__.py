"""GeoImage: primitive models to CAD geometry, with scale calibration."""

__version__ = "0.1.0"
