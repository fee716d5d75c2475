"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from rendering.core.vertex import PositionNormal
from rendering.scene import manifold


def unit_sphere(u: float, v: float) -> tuple[float, float, float]:
    alpha = u * 2.0 * np.pi
    beta = np.pi / 2.0 - v * np.pi
    return (np.cos(alpha) * np.cos(beta), np.sin(beta), np.sin(alpha) * np.cos(beta))


EGG_CONTOUR = [
    (0.0, -0.5, 0.0),
    (0.8, -0.5, 0.0),
    (1.0, -0.2, 0.0),
    (0.6, 1.0, 0.0),
    (0.0, 1.0, 0.0),
]


@pytest.fixture
def sphere_function():
    """Parametric unit sphere, u around the y axis and v from the north to the south pole."""
    return unit_sphere


@pytest.fixture
def sphere_mesh():
    """Welded 20x20 unit sphere with computed normals."""
    return manifold.surface(20, 20, unit_sphere, PositionNormal).weld().compute_normals()


@pytest.fixture
def egg_mesh():
    """Welded surface of revolution of a Bezier contour."""
    return manifold.revolution(30, 20, manifold.bezier(EGG_CONTOUR), (0.0, 1.0, 0.0), PositionNormal).weld().compute_normals()


@pytest.fixture
def rng():
    return np.random.default_rng(seed=1234)
