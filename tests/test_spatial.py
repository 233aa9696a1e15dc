"""Tests for closest-point queries used by reprojection."""

from __future__ import annotations

import os
import sys

import numpy as np
import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from src.mesh_smoother import ClosestPointIndex, PolygonMesh  # noqa: E402
from tests.meshes import make_grid_mesh, make_unit_cube_mesh  # noqa: E402


def _triangle_index() -> ClosestPointIndex:
    index = ClosestPointIndex()
    index.add_triangle(0, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    return index.build()


@pytest.mark.parametrize(
    "p, expected",
    [
        ([0.2, 0.2, 3.0], [0.2, 0.2, 0.0]),    # above the face
        ([-1.0, -1.0, 0.0], [0.0, 0.0, 0.0]),  # corner A
        ([2.0, -0.5, 0.0], [1.0, 0.0, 0.0]),   # corner B
        ([-0.5, 2.0, 1.0], [0.0, 1.0, 0.0]),   # corner C
        ([0.5, -1.0, 0.0], [0.5, 0.0, 0.0]),   # edge AB
        ([-1.0, 0.5, 0.0], [0.0, 0.5, 0.0]),   # edge AC
        ([1.0, 1.0, 0.0], [0.5, 0.5, 0.0]),    # edge BC
    ],
)
def test_closest_point_on_triangle_regions(p, expected) -> None:
    q, tid, dist = _triangle_index().closest(p)
    assert np.allclose(q, expected, atol=1e-9)
    assert tid == 0
    assert np.isclose(dist, np.linalg.norm(np.asarray(p) - expected))


def test_closest_point_on_segment_clamps() -> None:
    index = ClosestPointIndex()
    index.add_segment(0, [[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    index.build()

    assert np.allclose(index.closest_point([1.0, 1.0, 0.0]), [1.0, 0.0, 0.0], atol=1e-9)
    assert np.allclose(index.closest_point([5.0, 0.0, 0.0]), [2.0, 0.0, 0.0], atol=1e-9)
    assert np.allclose(index.closest_point([-1.0, 0.0, 2.0]), [0.0, 0.0, 0.0], atol=1e-9)


def test_index_is_idempotent_on_own_vertices() -> None:
    verts, faces = make_unit_cube_mesh()
    index = ClosestPointIndex().build_from_mesh_polys(PolygonMesh(verts, faces))

    assert np.allclose(index.closest_points(verts), verts, atol=1e-9)


def test_grid_queries_land_on_the_plane() -> None:
    rng = np.random.default_rng(3)
    verts, faces = make_grid_mesh(6)
    index = ClosestPointIndex().build_from_mesh_polys(PolygonMesh(verts, faces))

    # queries above the grid project straight down
    queries = np.column_stack([rng.uniform(0.0, 5.0, size=(40, 2)),
                               rng.uniform(-2.0, 2.0, size=40)])
    closest, ids, dists = index.query(queries)
    assert closest.shape == (40, 3)
    assert np.allclose(closest[:, :2], queries[:, :2], atol=1e-9)
    assert np.allclose(closest[:, 2], 0.0, atol=1e-9)
    assert np.allclose(dists, np.abs(queries[:, 2]), atol=1e-9)
    assert np.all((ids >= 0) & (ids < len(faces)))

    # queries outside the footprint are clamped onto the rim
    q = index.closest_point([-3.0, 2.5, 1.0])
    assert np.allclose(q, [0.0, 2.5, 0.0], atol=1e-9)


def test_closest_reports_primitive_id() -> None:
    verts, faces = make_unit_cube_mesh()
    index = ClosestPointIndex().build_from_mesh_polys(PolygonMesh(verts, faces))

    q, pid, dist = index.closest([0.5, 0.5, -2.0])
    assert np.allclose(q, [0.5, 0.5, 0.0], atol=1e-9)
    assert pid in (0, 1)  # bottom face triangles
    assert np.isclose(dist, 2.0)


def test_quads_report_polygon_ids() -> None:
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0],
                      [2.0, 0.0, 0.0], [2.0, 1.0, 0.0]])
    mesh = PolygonMesh(verts, [[0, 1, 2, 3], [1, 4, 5, 2]])
    index = ClosestPointIndex().build_from_mesh_polys(mesh)

    assert len(index) == 4  # two fan triangles per quad
    assert index.closest([0.2, 0.8, 1.0])[1] == 0
    assert index.closest([1.7, 0.3, -1.0])[1] == 1


def test_segment_index() -> None:
    index = ClosestPointIndex()
    index.add_segment(10, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    index.add_segment(11, [[1.0, 0.0, 0.0], [1.0, 1.0, 0.0]])
    index.build()

    q, sid, _ = index.closest([1.5, 0.5, 0.0])
    assert sid == 11
    assert np.allclose(q, [1.0, 0.5, 0.0], atol=1e-9)
    assert np.allclose(index.closest_point([0.25, -3.0, 0.0]), [0.25, 0.0, 0.0], atol=1e-9)


def test_mixed_segments_and_triangles_keep_their_ids() -> None:
    index = ClosestPointIndex()
    index.add_triangle(7, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    index.add_segment(3, [[5.0, 0.0, 0.0], [5.0, 0.0, 1.0]])
    index.build()

    assert index.closest([0.1, 0.1, 0.5])[1] == 7
    q, sid, _ = index.closest([6.0, 0.0, 0.5])
    assert sid == 3
    assert np.allclose(q, [5.0, 0.0, 0.5], atol=1e-9)


def test_query_before_build_or_empty_raises() -> None:
    index = ClosestPointIndex()
    with pytest.raises(RuntimeError):
        index.build()

    index.add_segment(0, [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    with pytest.raises(RuntimeError):
        index.closest_point([0.0, 0.0, 0.0])
