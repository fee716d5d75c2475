import enum
import typing
import numpy as np
import numpy.typing as npt

type vec2i32 = tuple[
    int,
    int,
]

type vec2f64 = tuple[
    float,
    float,
]

type vec3f64 = tuple[
    float,
    float,
    float,
]

type vec4f64 = tuple[
    float,
    float,
    float,
    float,
]

type float3 = npt.NDArray[np.float64]
"""
Shape (3,) array. Positions, directions, normals and RGB colors.
"""

type float4 = npt.NDArray[np.float64]
"""
Shape (4,) array. Homogeneous positions and RGBA colors.
"""

type float4x4 = npt.NDArray[np.float64]
"""
Shape (4, 4) array, row-vector convention: p' = p @ M (same as pyrr).
"""

type ArrayLike3 = float3 | vec3f64 | typing.Sequence[float]

class Topology(enum.Enum):
    POINTS = 1
    LINES = 2
    TRIANGLES = 3

    @property
    def primitive_size(self) -> int:
        return self.value

class RaycastingMeshMode(enum.Enum):
    NAIVE = "naive"
    GRID = "grid"

class HitResult(enum.Enum):
    CONTINUE = "continue"
    STOP = "stop"
    DISCARD = "discard"

def as_float3(value: ArrayLike3) -> float3:
    return np.asarray(value, dtype=np.float64).reshape(3)

def as_float4(value: vec4f64 | float4 | typing.Sequence[float]) -> float4:
    return np.asarray(value, dtype=np.float64).reshape(4)
