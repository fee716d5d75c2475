import typing
import numpy as np
import numpy.typing as npt

from rendering.core import transforms
from rendering.core.common_types import Topology, float3, ArrayLike3, as_float3
from rendering.core.errors import ManifoldError
from rendering.core.vertex import Vertex, PositionNormal
from rendering.scene.mesh import Mesh

type SurfaceFunction = typing.Callable[[float, float], ArrayLike3]
type CurveFunction = typing.Callable[[float], ArrayLike3]
type SweepFunction = typing.Callable[[float3, float], ArrayLike3]

def _check_resolution(slices: int, stacks: int) -> None:
    if slices < 1 or stacks < 1:
        raise ManifoldError(f"Resolution must be at least 1x1, got slices={slices} stacks={stacks}")

def grid_indices(slices: int, stacks: int) -> npt.NDArray[np.int64]:
    """
    Triangle indices of a (slices + 1) x (stacks + 1) vertex grid laid out row by row along u.
    Each cell a-b-c-d (counter-clockwise in u-v) emits (a, b, c) and (a, c, d),
    so the face normal follows df/du x df/dv.
    """
    row: int = slices + 1
    i, j = np.meshgrid(np.arange(slices), np.arange(stacks), indexing="xy")
    a: npt.NDArray[np.int64] = (j * row + i).reshape(-1)
    b: npt.NDArray[np.int64] = a + 1
    c: npt.NDArray[np.int64] = a + row + 1
    d: npt.NDArray[np.int64] = a + row
    return np.stack([a, b, c, a, c, d], axis=1).reshape(-1).astype(np.int64)

def surface[V: Vertex](slices: int, stacks: int, generating: SurfaceFunction, vertex_type: type[V] = PositionNormal) -> Mesh[V]:
    """
    Samples generating(u, v) on a regular grid with u, v in [0, 1] inclusive.
    Seam vertices (u = 0 and u = 1) are generated twice; weld() merges them unless the vertex type carries coordinates.
    """
    _check_resolution(slices, stacks)

    vertices: list[V] = []
    for j in range(stacks + 1):
        v: float = j / stacks
        for i in range(slices + 1):
            u: float = i / slices
            vertices.append(vertex_type.from_position(as_float3(generating(u, v)), (u, v)))

    return Mesh(vertices=vertices, indices=grid_indices(slices, stacks), topology=Topology.TRIANGLES)

def revolution[V: Vertex](slices: int, stacks: int, profile: CurveFunction, axis: ArrayLike3, vertex_type: type[V] = PositionNormal) -> Mesh[V]:
    """
    Sweeps the profile curve profile(v) around `axis` through the origin, u being the turn fraction.
    """
    _check_resolution(slices, stacks)

    rotations: list[npt.NDArray[np.float64]] = [
        transforms.rotate_axis(axis, 2.0 * np.pi * i / slices)[:3, :3]
        for i in range(slices + 1)
    ]
    curve: list[float3] = [as_float3(profile(j / stacks)) for j in range(stacks + 1)]

    return surface(
        slices=slices,
        stacks=stacks,
        generating=lambda u, v: curve[round(v * stacks)] @ rotations[round(u * slices)],
        vertex_type=vertex_type,
    )

def generative[V: Vertex](slices: int, stacks: int, g: CurveFunction, f: SweepFunction, vertex_type: type[V] = PositionNormal) -> Mesh[V]:
    """
    Moves every point g(u) of a base curve along the family f(point, v).
    """
    return surface(
        slices=slices,
        stacks=stacks,
        generating=lambda u, v: f(as_float3(g(u)), v),
        vertex_type=vertex_type,
    )

def lofted[V: Vertex](slices: int, stacks: int, g: CurveFunction, f: CurveFunction, vertex_type: type[V] = PositionNormal) -> Mesh[V]:
    """
    Ruled surface joining g(u) (v = 0) and f(u) (v = 1) with straight segments.
    """
    return surface(
        slices=slices,
        stacks=stacks,
        generating=lambda u, v: transforms.lerp(as_float3(g(u)), as_float3(f(u)), v),
        vertex_type=vertex_type,
    )

def eval_bezier(control_points: typing.Sequence[ArrayLike3] | npt.NDArray[np.float64], t: float) -> float3:
    """
    De Casteljau: collapse adjacent pairs by linear interpolation until a single point remains.
    """
    points: npt.NDArray[np.float64] = np.asarray(control_points, dtype=np.float64)
    if len(points) == 0:
        raise ManifoldError("Bezier curve needs at least one control point")
    while len(points) > 1:
        points = points[:-1] * (1.0 - t) + points[1:] * t
    return points[0].copy()

def bezier(control_points: typing.Sequence[ArrayLike3] | npt.NDArray[np.float64]) -> CurveFunction:
    points: npt.NDArray[np.float64] = np.asarray(control_points, dtype=np.float64)
    if len(points) == 0:
        raise ManifoldError("Bezier curve needs at least one control point")
    return lambda t: eval_bezier(points, t)
