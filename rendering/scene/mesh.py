import typing
import numpy as np
import numpy.typing as npt

from rendering.core import config
from rendering.core.common_types import Topology, RaycastingMeshMode, float4x4
from rendering.core.errors import MeshTopologyError
from rendering.core.logging_config import get_logger
from rendering.core.vertex import Vertex, NormalVertex, interpolated_fields
from rendering.scene.raycasting import MeshRaycast

logger = get_logger(__name__)

NEIGHBOUR_CELLS: list[tuple[int, int, int]] = [(dx, dy, dz) for dx in (-1, 0, 1) for dy in (-1, 0, 1) for dz in (-1, 0, 1)]

class Mesh[V: Vertex]:
    """
    Indexed vertex buffer. Indices are grouped by topology: 1 per point, 2 per line, 3 per triangle.
    """
    def __init__(self, vertices: typing.Sequence[V], indices: typing.Sequence[int] | npt.NDArray[np.int64], topology: Topology = Topology.TRIANGLES) -> None:
        self.vertices: list[V] = list(vertices)
        self.indices: npt.NDArray[np.int64] = np.asarray(indices, dtype=np.int64).reshape(-1)
        self.topology: Topology = topology
        self.validate()
        pass

    def validate(self) -> None:
        if len(self.indices) % self.topology.primitive_size != 0:
            raise MeshTopologyError(f"{len(self.indices)} indices do not form whole {self.topology.name.lower()}")
        if len(self.indices) == 0:
            return
        lowest: int = int(self.indices.min())
        highest: int = int(self.indices.max())
        if lowest < 0 or highest >= len(self.vertices):
            raise MeshTopologyError(f"Index range [{lowest}, {highest}] out of bounds for {len(self.vertices)} vertices")

    @property
    def primitives(self) -> npt.NDArray[np.int64]:
        return self.indices.reshape((-1, self.topology.primitive_size))

    def positions(self) -> npt.NDArray[np.float64]:
        if not self.vertices:
            return np.zeros((0, 3), dtype=np.float64)
        return np.array([vertex.position for vertex in self.vertices], dtype=np.float64)

    def bounds(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        positions: npt.NDArray[np.float64] = self.positions()
        return positions.min(axis=0), positions.max(axis=0)

    def weld(self, tolerance: float = config.WELD_TOLERANCE) -> "Mesh[V]":
        """
        Merges vertices whose interpolated fields (position, normal, coordinates, ...) all agree within tolerance.
        Candidates are found by bucketing positions into tolerance-sized cells and scanning the 27 neighbouring cells,
        so near-equal positions are never split by a cell boundary.
        Each group is replaced by the add/scale average of its members, groups keep the order of their first member,
        and primitives that collapse onto a repeated index are dropped.
        """
        if not self.vertices:
            return Mesh(vertices=[], indices=self.indices, topology=self.topology)

        features: npt.NDArray[np.float64] = np.array([interpolated_fields(vertex) for vertex in self.vertices], dtype=np.float64)
        cells: npt.NDArray[np.int64] = np.floor(features[:, :3] / tolerance).astype(np.int64)

        # Union-find whose root is always the smallest member index.
        parent: list[int] = list(range(len(self.vertices)))

        def find(index: int) -> int:
            while parent[index] != index:
                parent[index] = parent[parent[index]]
                index = parent[index]
            return index

        buckets: dict[tuple[int, int, int], list[int]] = {}
        for index, (x, y, z) in enumerate(cells.tolist()):
            for dx, dy, dz in NEIGHBOUR_CELLS:
                for other in buckets.get((x + dx, y + dy, z + dz), ()):
                    if np.max(np.abs(features[index] - features[other])) > tolerance:
                        continue
                    root, other_root = find(index), find(other)
                    parent[max(root, other_root)] = min(root, other_root)
            buckets.setdefault((x, y, z), []).append(index)

        roots: npt.NDArray[np.int64] = np.array([find(index) for index in range(len(self.vertices))], dtype=np.int64)
        # Sorted roots are sorted first members, so welding a welded mesh is the identity.
        _, remap = np.unique(roots, return_inverse=True)
        remap = remap.reshape(-1)

        group_count: int = int(remap.max()) + 1
        counts: npt.NDArray[np.int64] = np.bincount(remap, minlength=group_count)
        sums: list[V | None] = [None] * group_count
        for vertex, group in zip(self.vertices, remap):
            accumulated: V | None = sums[group]
            sums[group] = vertex if accumulated is None else accumulated.add(vertex)
        welded_vertices: list[V] = [typing.cast(V, total).scale(1.0 / float(count)) for total, count in zip(sums, counts)]

        primitives: npt.NDArray[np.int64] = remap[self.indices].reshape((-1, self.topology.primitive_size))
        if self.topology != Topology.POINTS:
            ordered: npt.NDArray[np.int64] = np.sort(primitives, axis=1)
            distinct: npt.NDArray[np.bool_] = np.all(ordered[:, 1:] != ordered[:, :-1], axis=1)
            primitives = primitives[distinct]

        logger.debug(f"weld: {len(self.vertices)} -> {len(welded_vertices)} vertices, {len(self.indices) // self.topology.primitive_size} -> {len(primitives)} primitives")
        return Mesh(vertices=welded_vertices, indices=primitives.reshape(-1), topology=self.topology)

    def compute_normals(self) -> "Mesh[V]":
        """
        Accumulates every face normal into its three vertices, then normalizes.
        The vertices must expose a writable `normal`; unwelded meshes get per-face-isolated normals.
        """
        if self.topology != Topology.TRIANGLES:
            raise ValueError("Normals can only be computed for triangle meshes")

        positions: npt.NDArray[np.float64] = self.positions()
        triangles: npt.NDArray[np.int64] = self.primitives
        edge1: npt.NDArray[np.float64] = positions[triangles[:, 1]] - positions[triangles[:, 0]]
        edge2: npt.NDArray[np.float64] = positions[triangles[:, 2]] - positions[triangles[:, 0]]
        face_normals: npt.NDArray[np.float64] = np.cross(edge1, edge2)

        accumulated: npt.NDArray[np.float64] = np.zeros_like(positions)
        for corner in range(3):
            np.add.at(accumulated, triangles[:, corner], face_normals)

        lengths: npt.NDArray[np.float64] = np.linalg.norm(accumulated, axis=1, keepdims=True)
        valid: npt.NDArray[np.bool_] = lengths[:, 0] > config.EPSILON
        accumulated[valid] /= lengths[valid]

        for vertex, normal in zip(self.vertices, accumulated):
            typing.cast(NormalVertex, vertex).normal = normal.copy()
        return self

    def convert_to(self, topology: Topology) -> "Mesh[V]":
        if topology == self.topology:
            return Mesh(vertices=self.vertices, indices=self.indices.copy(), topology=topology)

        if topology == Topology.POINTS:
            _, first = np.unique(self.indices, return_index=True)
            return Mesh(vertices=self.vertices, indices=self.indices[np.sort(first)], topology=topology)

        if topology == Topology.LINES and self.topology == Topology.TRIANGLES:
            seen: set[tuple[int, int]] = set()
            edges: list[int] = []
            for a, b, c in self.primitives.tolist():
                for start, end in ((a, b), (b, c), (c, a)):
                    key: tuple[int, int] = (min(start, end), max(start, end))
                    if key in seen:
                        continue
                    seen.add(key)
                    edges.extend((start, end))
            return Mesh(vertices=self.vertices, indices=edges, topology=topology)

        raise ValueError(f"Cannot convert {self.topology.name} to {topology.name}")

    def transformed(self, matrix: float4x4) -> "Mesh[V]":
        return Mesh(
            vertices=[typing.cast(typing.Any, vertex).transform(matrix) for vertex in self.vertices],
            indices=self.indices.copy(),
            topology=self.topology,
        )

    def as_raycast(self, mode: RaycastingMeshMode = RaycastingMeshMode.GRID) -> MeshRaycast[V]:
        if self.topology != Topology.TRIANGLES:
            raise ValueError("Only triangle meshes can be raycast")
        return MeshRaycast(vertices=self.vertices, triangles=self.primitives, mode=mode)

    def __len__(self) -> int:
        return len(self.indices) // self.topology.primitive_size

    def __repr__(self) -> str:
        return f"Mesh({len(self.vertices)} vertices, {len(self)} {self.topology.name.lower()})"
