"""Layered raster painting model: layer tree, brush dabs, colour conversion and project files."""

__version__ = "0.1.0"