"""
Nearest-point queries on triangle and segment soups.

Used to snap smoothed vertices back onto a reference surface (triangles)
and onto the initial feature curves (segments). The primitives are packed
into one ``pyvista.PolyData`` (segments as line cells, triangles as faces)
and queried with ``find_closest_cell``.
"""

import numpy as np
import pyvista as pv

from .laplacian import fan_triangles


class ClosestPointIndex:
    """Spatial index answering closest-point queries on triangles and segments."""

    def __init__(self):
        self._tri_ids = []
        self._tris = []
        self._seg_ids = []
        self._segs = []
        self._poly = None

    def __len__(self):
        return len(self._tris) + len(self._segs)

    def add_triangle(self, item_id, corners):
        corners = np.asarray(corners, dtype=np.float64).reshape(3, 3)
        self._tri_ids.append(item_id)
        self._tris.append(corners)
        self._poly = None

    def add_segment(self, item_id, endpoints):
        endpoints = np.asarray(endpoints, dtype=np.float64).reshape(2, 3)
        self._seg_ids.append(item_id)
        self._segs.append(endpoints)
        self._poly = None

    def build_from_mesh_polys(self, mesh):
        """Index every polygon of ``mesh`` (fan-triangulated) and build."""
        for pid, poly in enumerate(mesh.polys):
            for tri in fan_triangles([poly]):
                self.add_triangle(pid, mesh.verts[tri])
        self.build()
        return self

    def build(self):
        if len(self) == 0:
            raise RuntimeError("cannot build an empty spatial index")

        segs = np.asarray(self._segs).reshape(-1, 2, 3)
        tris = np.asarray(self._tris).reshape(-1, 3, 3)
        n_seg, n_tri = segs.shape[0], tris.shape[0]
        points = np.vstack([segs.reshape(-1, 3), tris.reshape(-1, 3)])

        lines = None
        if n_seg:
            ids = np.arange(2 * n_seg).reshape(-1, 2)
            lines = np.column_stack([np.full(n_seg, 2), ids]).ravel()
        faces = None
        if n_tri:
            ids = 2 * n_seg + np.arange(3 * n_tri).reshape(-1, 3)
            faces = np.column_stack([np.full(n_tri, 3), ids]).ravel()

        self._poly = pv.PolyData(points, faces=faces, lines=lines)
        # VTK numbers line cells before polygon cells
        self._ids = np.asarray(self._seg_ids + self._tri_ids)
        return self

    def query(self, points):
        """
        Closest points for a batch of queries.

        Args:
            points: (K, 3) query positions

        Returns:
            closest: (K, 3) closest points on the indexed primitives
            ids: (K,) item ids of the primitives hit
            dists: (K,) distances from the queries
        """
        if self._poly is None:
            raise RuntimeError("spatial index queried before build()")
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if points.shape[0] == 0:
            return np.empty((0, 3)), np.empty(0, dtype=self._ids.dtype), np.empty(0)

        cells, closest = self._poly.find_closest_cell(points, return_closest_point=True)
        cells = np.atleast_1d(cells)
        closest = np.asarray(closest, dtype=np.float64).reshape(-1, 3)
        dists = np.linalg.norm(closest - points, axis=1)
        return closest, self._ids[cells], dists

    def closest(self, point):
        """
        Return (closest_point, primitive_id, distance) for a single query.
        """
        closest, ids, dists = self.query(point)
        return closest[0], ids[0], float(dists[0])

    def closest_point(self, point):
        return self.closest(point)[0]

    def closest_points(self, points):
        return self.query(points)[0]
