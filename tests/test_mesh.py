import numpy as np
import pytest

from rendering.core import transforms
from rendering.core.common_types import RaycastingMeshMode, Topology
from rendering.core.errors import MeshTopologyError
from rendering.core.vertex import Position, PositionNormal, PositionNormalCoordinate
from rendering.scene import manifold
from rendering.scene.mesh import Mesh
from rendering.scene.raycasting import MeshRaycast


def quad() -> Mesh[Position]:
    return manifold.surface(1, 1, lambda u, v: (u, v, 0.0), Position)


class TestConstruction:
    def test_rejects_partial_primitives(self) -> None:
        with pytest.raises(MeshTopologyError):
            Mesh([Position((0, 0, 0)), Position((1, 0, 0))], [0, 1], Topology.TRIANGLES)

    def test_rejects_out_of_range_indices(self) -> None:
        with pytest.raises(MeshTopologyError):
            Mesh([Position((0, 0, 0))], [0, 1, 2])

    def test_topology_error_is_an_index_error(self) -> None:
        with pytest.raises(IndexError):
            Mesh([Position((0, 0, 0))], [0, 0, 5])

    def test_primitives_are_grouped(self) -> None:
        mesh = quad()
        assert mesh.primitives.shape == (2, 3)
        assert len(mesh) == 2

    def test_bounds(self, sphere_mesh) -> None:
        lower, upper = sphere_mesh.bounds()
        assert np.allclose(lower, -1.0, atol=1e-6)
        assert np.allclose(upper, 1.0, atol=1e-6)


class TestWeld:
    def test_sphere_seam_and_poles_merge(self, sphere_function) -> None:
        mesh = manifold.surface(20, 20, sphere_function, PositionNormal)
        welded = mesh.weld()
        # 19 inner rings of 20 vertices plus both poles
        assert len(welded.vertices) == 19 * 20 + 2
        # the pole cells each lose one triangle per slice
        assert len(welded) == len(mesh) - 2 * 20

    def test_weld_is_idempotent(self, sphere_mesh, egg_mesh) -> None:
        for mesh in (sphere_mesh, egg_mesh):
            again = mesh.weld()
            assert len(again.vertices) == len(mesh.vertices)
            assert np.array_equal(again.indices, mesh.indices)
            assert np.allclose(again.positions(), mesh.positions())

    def test_weld_averages_members(self) -> None:
        mesh = Mesh(
            [Position((0.0, 0.0, 0.0)), Position((1.0, 0.0, 0.0)), Position((0.0, 1.0, 0.0)), Position((1.0, 2e-6, 0.0))],
            [0, 1, 2, 0, 3, 2],
        )
        welded = mesh.weld()
        assert len(welded.vertices) == 3
        assert np.allclose(welded.vertices[1].position, (1.0, 1e-6, 0.0))
        assert np.array_equal(welded.indices, [0, 1, 2, 0, 1, 2])

    def test_weld_keeps_texture_seam(self) -> None:
        cylinder = lambda u, v: (np.cos(2.0 * np.pi * u), v, np.sin(2.0 * np.pi * u))
        welded = manifold.surface(8, 4, cylinder, PositionNormalCoordinate).weld()
        assert len(welded.vertices) == 9 * 5
        seam_coordinates = sorted(tuple(vertex.coordinates) for vertex in welded.vertices if np.allclose(vertex.position, (1.0, 0.5, 0.0)))
        assert seam_coordinates == [(0.0, 0.5), (1.0, 0.5)]
        # same surface without coordinates closes the seam
        assert len(manifold.surface(8, 4, cylinder, PositionNormal).weld().vertices) == 8 * 5

    def test_weld_keeps_hard_edges(self) -> None:
        mesh = Mesh([PositionNormal((0.0, 0.0, 0.0), (0.0, 1.0, 0.0)), PositionNormal((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))], [0, 1], Topology.POINTS)
        welded = mesh.weld()
        assert len(welded.vertices) == 2
        assert np.allclose(welded.vertices[1].normal, (1.0, 0.0, 0.0))

    @pytest.mark.parametrize("boundary", [0.5e-5, 1e-5, -2e-5])
    def test_weld_merges_across_cell_boundaries(self, boundary: float) -> None:
        mesh = Mesh([Position((boundary - 1e-12, 0.0, 0.0)), Position((boundary + 1e-12, 0.0, 0.0))], [0, 1], Topology.POINTS)
        welded = mesh.weld()
        assert len(welded.vertices) == 1
        assert np.array_equal(welded.indices, [0, 0])

    def test_weld_drops_collapsed_lines(self) -> None:
        mesh = Mesh([Position((0.0, 0.0, 0.0)), Position((0.0, 0.0, 0.0)), Position((1.0, 0.0, 0.0))], [0, 1, 1, 2], Topology.LINES)
        welded = mesh.weld()
        assert len(welded) == 1
        assert np.array_equal(welded.indices, [0, 1])

    def test_weld_keeps_points(self) -> None:
        mesh = Mesh([Position((0.0, 0.0, 0.0)), Position((0.0, 0.0, 0.0))], [0, 1], Topology.POINTS)
        welded = mesh.weld()
        assert len(welded.vertices) == 1
        assert np.array_equal(welded.indices, [0, 0])


class TestNormals:
    def test_sphere_normals_are_unit_and_outward(self, sphere_mesh) -> None:
        for vertex in sphere_mesh.vertices:
            assert np.linalg.norm(vertex.normal) == pytest.approx(1.0, abs=1e-9)
            assert np.dot(vertex.normal, vertex.position) > 0.0

    def test_sphere_normals_match_positions(self, sphere_mesh) -> None:
        for vertex in sphere_mesh.vertices:
            assert np.dot(vertex.normal, transforms.normalize(vertex.position)) > 0.95

    def test_egg_normals_are_unit(self, egg_mesh) -> None:
        lengths = np.linalg.norm([vertex.normal for vertex in egg_mesh.vertices], axis=1)
        assert np.allclose(lengths, 1.0)

    def test_lines_have_no_normals(self) -> None:
        with pytest.raises(ValueError):
            quad().convert_to(Topology.LINES).compute_normals()


class TestConvert:
    def test_triangles_to_lines_shares_edges(self) -> None:
        lines = quad().convert_to(Topology.LINES)
        assert lines.topology == Topology.LINES
        edges = {tuple(sorted(edge)) for edge in lines.primitives.tolist()}
        assert len(lines) == 5
        assert edges == {(0, 1), (1, 3), (0, 3), (2, 3), (0, 2)}

    def test_to_points_lists_each_vertex_once(self) -> None:
        points = quad().convert_to(Topology.POINTS)
        assert sorted(points.indices.tolist()) == [0, 1, 2, 3]

    def test_same_topology_copies(self) -> None:
        mesh = quad()
        copy = mesh.convert_to(Topology.TRIANGLES)
        copy.indices[0] = 3
        assert mesh.indices[0] == 0

    def test_lines_to_triangles_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            quad().convert_to(Topology.LINES).convert_to(Topology.TRIANGLES)


def test_transformed_moves_positions_and_normals(sphere_mesh) -> None:
    moved = sphere_mesh.transformed(transforms.translate(0.0, 3.0, 0.0))
    lower, upper = moved.bounds()
    assert lower[1] == pytest.approx(2.0, abs=1e-6)
    assert upper[1] == pytest.approx(4.0, abs=1e-6)
    for before, after in zip(sphere_mesh.vertices, moved.vertices):
        assert np.allclose(before.normal, after.normal)


def test_as_raycast(sphere_mesh) -> None:
    raycast = sphere_mesh.as_raycast(RaycastingMeshMode.NAIVE)
    assert isinstance(raycast, MeshRaycast)
    assert raycast.grid is None
    assert len(raycast.triangles) == len(sphere_mesh)
    with pytest.raises(ValueError):
        quad().convert_to(Topology.LINES).as_raycast()
