"""Numeric tolerances and logging settings, overridable through environment variables."""

import os

# Geometry
EPSILON: float = float(os.getenv("RENDERING_EPSILON", "1e-6"))
WELD_TOLERANCE: float = float(os.getenv("RENDERING_WELD_TOLERANCE", "1e-5"))

# Offset used to push secondary rays away from the surface they start on
SURFACE_OFFSET: float = float(os.getenv("RENDERING_SURFACE_OFFSET", "1e-3"))

# Grid acceleration: target triangles per cell and cap on cells per axis
GRID_DENSITY: float = float(os.getenv("RENDERING_GRID_DENSITY", "2.0"))
GRID_MAX_RESOLUTION: int = int(os.getenv("RENDERING_GRID_MAX_RESOLUTION", "64"))

# Logging
LOG_LEVEL: str = os.getenv("RENDERING_LOG_LEVEL", "WARNING")
LOG_FORMAT: str = os.getenv("RENDERING_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

# Number of pixels between two progress messages of Raytracer.render
PROGRESS_INTERVAL: int = int(os.getenv("RENDERING_PROGRESS_INTERVAL", "4096"))

__all__ = [
    "EPSILON",
    "WELD_TOLERANCE",
    "SURFACE_OFFSET",
    "GRID_DENSITY",
    "GRID_MAX_RESOLUTION",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "PROGRESS_INTERVAL",
]
