import typing
import numpy as np
import numpy.typing as npt

from rendering.core import config
from rendering.core import transforms
from rendering.core.common_types import RaycastingMeshMode, float3, float4, float4x4, ArrayLike3, as_float3
from rendering.core.vertex import Vertex, blend
from rendering.scene.grid import UniformGrid

class Ray:
    """
    origin + t * direction for t in [min_t, max_t).
    """
    def __init__(self, origin: ArrayLike3, direction: ArrayLike3, min_t: float = 0.0, max_t: float = np.inf) -> None:
        self.origin: float3 = as_float3(origin)
        self.direction: float3 = as_float3(direction)
        self.min_t: float = float(min_t)
        self.max_t: float = float(max_t)
        pass

    def at(self, t: float) -> float3:
        return self.origin + self.direction * t

    def contains(self, t: float) -> bool:
        return self.min_t <= t < self.max_t

    def transform(self, matrix: float4x4) -> "Ray":
        """
        Maps the ray with an affine matrix without renormalizing the direction, so every t keeps its meaning.
        """
        return Ray(
            origin=transforms.transform_point(self.origin, matrix),
            direction=transforms.transform_direction(self.direction, matrix),
            min_t=self.min_t,
            max_t=self.max_t,
        )

    @classmethod
    def from_screen(cls, px: float, py: float, width: int, height: int, inverse_view: float4x4, inverse_projection: float4x4, min_t: float = 0.0, max_t: float = 1000.0) -> "Ray":
        """
        Ray through pixel coordinates (px, py), y growing downwards, starting on the near plane.
        """
        ndc_x: float = 2.0 * px / width - 1.0
        ndc_y: float = 1.0 - 2.0 * py / height

        near_h: float4 = np.array([ndc_x, ndc_y, -1.0, 1.0], dtype=np.float64) @ inverse_projection
        far_h: float4 = np.array([ndc_x, ndc_y, 1.0, 1.0], dtype=np.float64) @ inverse_projection
        near_view: float3 = near_h[:3] / near_h[3]
        far_view: float3 = far_h[:3] / far_h[3]

        near_world: float3 = transforms.transform_point(near_view, inverse_view)
        far_world: float3 = transforms.transform_point(far_view, inverse_view)
        return cls(origin=near_world, direction=transforms.normalize(far_world - near_world), min_t=min_t, max_t=max_t)

    @classmethod
    def from_to(cls, start: ArrayLike3, end: ArrayLike3) -> "Ray":
        """
        Unit-speed ray from start that stops before reaching end.
        """
        a: float3 = as_float3(start)
        offset: float3 = as_float3(end) - a
        distance: float = float(np.linalg.norm(offset))
        return cls(origin=a, direction=transforms.normalize(offset), min_t=0.0, max_t=distance)

    @classmethod
    def from_direction(cls, origin: ArrayLike3, direction: ArrayLike3, min_t: float = 0.0, max_t: float = np.inf) -> "Ray":
        return cls(origin=origin, direction=transforms.normalize(direction), min_t=min_t, max_t=max_t)

    def __repr__(self) -> str:
        return f"Ray({self.origin.tolist()}, {self.direction.tolist()}, [{self.min_t}, {self.max_t}))"

class Hit(typing.NamedTuple):
    t: float
    attribute: typing.Any

class RaycastGeometry[A]:
    """
    Something a ray expressed in its local frame can hit.
    intersect returns the nearest hit with t in [ray.min_t, ray.max_t), or None.
    """
    def intersect(self, ray: Ray) -> Hit | None:
        raise NotImplementedError

    def attributes_map[B](self, mapping: typing.Callable[[A], B]) -> "MappedGeometry[A, B]":
        return MappedGeometry(geometry=self, mapping=mapping)

class MappedGeometry[A, B](RaycastGeometry[B]):
    """
    Same intersection test as the wrapped geometry, attribute replaced by mapping(attribute).
    """
    def __init__(self, geometry: RaycastGeometry[A], mapping: typing.Callable[[A], B]) -> None:
        self.geometry: RaycastGeometry[A] = geometry
        self.mapping: typing.Callable[[A], B] = mapping
        pass

    def intersect(self, ray: Ray) -> Hit | None:
        hit: Hit | None = self.geometry.intersect(ray)
        if hit is None:
            return None
        return Hit(t=hit.t, attribute=self.mapping(hit.attribute))

class UnitarySphere(RaycastGeometry[float3]):
    def intersect(self, ray: Ray) -> Hit | None:
        a: float = float(np.dot(ray.direction, ray.direction))
        b: float = 2.0 * float(np.dot(ray.origin, ray.direction))
        c: float = float(np.dot(ray.origin, ray.origin)) - 1.0
        discriminant: float = b * b - 4.0 * a * c

        # Tangent rays and null directions count as misses.
        if a <= 0.0 or discriminant <= 0.0:
            return None

        root: float = float(np.sqrt(discriminant))
        for t in ((-b - root) / (2.0 * a), (-b + root) / (2.0 * a)):
            if ray.contains(t):
                return Hit(t=t, attribute=ray.at(t))
        return None

class AxisPlane(RaycastGeometry[float3]):
    """
    Plane through the origin perpendicular to one coordinate axis.
    """
    def __init__(self, axis: int) -> None:
        self.axis: int = axis
        pass

    def intersect(self, ray: Ray) -> Hit | None:
        denominator: float = float(ray.direction[self.axis])
        # Parallel when the axis component is negligible next to the direction length.
        if abs(denominator) <= config.EPSILON * float(np.linalg.norm(ray.direction)):
            return None
        t: float = -float(ray.origin[self.axis]) / denominator
        if not ray.contains(t):
            return None
        position: float3 = ray.at(t)
        position[self.axis] = 0.0
        return Hit(t=t, attribute=position)

class PlaneXZ(AxisPlane):
    def __init__(self) -> None:
        super().__init__(axis=1)

class PlaneYZ(AxisPlane):
    def __init__(self) -> None:
        super().__init__(axis=0)

class PlaneXY(AxisPlane):
    def __init__(self) -> None:
        super().__init__(axis=2)

unitary_sphere: UnitarySphere = UnitarySphere()
plane_xz: PlaneXZ = PlaneXZ()
plane_yz: PlaneYZ = PlaneYZ()
plane_xy: PlaneXY = PlaneXY()

class MeshRaycast[V: Vertex](RaycastGeometry[V]):
    """
    Triangle mesh as raycastable geometry. The attribute of a hit is the barycentric blend of the triangle's vertices.
    NAIVE tests every triangle; GRID only those binned in the cells the ray crosses. Both give the same nearest hit,
    ties going to the lowest triangle index.
    """
    def __init__(self, vertices: typing.Sequence[V], triangles: npt.NDArray[np.int64], mode: RaycastingMeshMode = RaycastingMeshMode.GRID) -> None:
        self.vertices: list[V] = list(vertices)
        self.triangles: npt.NDArray[np.int64] = np.asarray(triangles, dtype=np.int64).reshape((-1, 3))
        self.mode: RaycastingMeshMode = mode

        positions: npt.NDArray[np.float64] = np.array([vertex.position for vertex in self.vertices], dtype=np.float64).reshape((-1, 3))
        corners: npt.NDArray[np.float64] = positions[self.triangles] if len(self.triangles) else np.zeros((0, 3, 3), dtype=np.float64)
        self.v0: npt.NDArray[np.float64] = corners[:, 0]
        self.edge1: npt.NDArray[np.float64] = corners[:, 1] - corners[:, 0]
        self.edge2: npt.NDArray[np.float64] = corners[:, 2] - corners[:, 0]
        self.doubled_areas: npt.NDArray[np.float64] = np.linalg.norm(np.cross(self.edge1, self.edge2), axis=1)
        self.grid: UniformGrid | None = UniformGrid(corners) if mode == RaycastingMeshMode.GRID else None
        pass

    def intersect_triangles(self, ray: Ray, candidates: npt.NDArray[np.int64]) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Moller-Trumbore over a batch of triangles. Returns (t, u, v) arrays, t = inf where there is no valid hit.
        """
        edge1: npt.NDArray[np.float64] = self.edge1[candidates]
        edge2: npt.NDArray[np.float64] = self.edge2[candidates]
        pvec: npt.NDArray[np.float64] = np.cross(ray.direction, edge2)
        determinant: npt.NDArray[np.float64] = np.einsum("ij,ij->i", edge1, pvec)
        # Parallel test relative to triangle size and direction length.
        valid: npt.NDArray[np.bool_] = np.abs(determinant) > 1.0e-12 * self.doubled_areas[candidates] * float(np.linalg.norm(ray.direction))
        inverse_determinant: npt.NDArray[np.float64] = np.where(valid, 1.0 / np.where(valid, determinant, 1.0), 0.0)

        tvec: npt.NDArray[np.float64] = ray.origin - self.v0[candidates]
        u: npt.NDArray[np.float64] = np.einsum("ij,ij->i", tvec, pvec) * inverse_determinant
        qvec: npt.NDArray[np.float64] = np.cross(tvec, edge1)
        v: npt.NDArray[np.float64] = (qvec @ ray.direction) * inverse_determinant
        t: npt.NDArray[np.float64] = np.einsum("ij,ij->i", edge2, qvec) * inverse_determinant

        valid &= (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0) & (t >= ray.min_t) & (t < ray.max_t)
        return np.where(valid, t, np.inf), u, v

    def intersect(self, ray: Ray) -> Hit | None:
        best_t: float = np.inf
        best_index: int = -1
        best_uv: tuple[float, float] = (0.0, 0.0)

        def consider(candidates: npt.NDArray[np.int64]) -> None:
            nonlocal best_t, best_index, best_uv
            t, u, v = self.intersect_triangles(ray, candidates)
            if len(t) == 0:
                return
            nearest: int = int(np.argmin(t))
            candidate_t: float = float(t[nearest])
            candidate_index: int = int(candidates[nearest])
            if candidate_t < best_t or (candidate_t == best_t and candidate_index < best_index):
                best_t, best_index, best_uv = candidate_t, candidate_index, (float(u[nearest]), float(v[nearest]))

        if self.grid is None:
            consider(np.arange(len(self.triangles), dtype=np.int64))
        else:
            tested: npt.NDArray[np.bool_] = np.zeros(len(self.triangles), dtype=np.bool_)
            for cell_triangles, cell_exit in self.grid.traverse(ray.origin, ray.direction, ray.min_t, ray.max_t):
                fresh: npt.NDArray[np.int64] = cell_triangles[~tested[cell_triangles]]
                tested[fresh] = True
                if len(fresh):
                    consider(fresh)
                # Any closer hit would lie in a cell already visited.
                if best_t <= cell_exit:
                    break

        if best_index < 0:
            return None

        a, b, c = self.triangles[best_index]
        u, v = best_uv
        attribute: V = blend([self.vertices[a], self.vertices[b], self.vertices[c]], [1.0 - u - v, u, v])
        return Hit(t=best_t, attribute=attribute)
