"""
Polygon mesh container used by the feature-preserving smoother.

Stores vertex positions, polygons, the unique undirected edges derived from
polygon boundaries, a per-edge "marked" (sharp crease) flag, one unit normal
per polygon and one label per vertex. Adjacency (vertex->polygons,
vertex->edges, edge->polygons) is built once at construction; topology never
changes afterwards, only vertex positions do.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .labels import VertexLabel


def newell_normal(points: np.ndarray) -> np.ndarray:
    """Unit normal of a (possibly non-planar) polygon, zero if degenerate."""
    nxt = np.roll(points, -1, axis=0)
    n = np.array([
        np.sum((points[:, 1] - nxt[:, 1]) * (points[:, 2] + nxt[:, 2])),
        np.sum((points[:, 2] - nxt[:, 2]) * (points[:, 0] + nxt[:, 0])),
        np.sum((points[:, 0] - nxt[:, 0]) * (points[:, 1] + nxt[:, 1])),
    ])
    length = np.linalg.norm(n)
    if length < 1e-300:
        return np.zeros(3)
    return n / length


class PolygonMesh:
    """
    Mutable-geometry, fixed-topology polygon mesh.

    Args:
        verts: (N, 3) vertex positions
        polys: (M, k) array or sequence of vertex-id sequences (k >= 3)
        marked_edges: optional iterable of (i, j) vertex pairs to flag as sharp
        normals: optional (M, 3) per-polygon normals; computed if omitted
    """

    def __init__(self, verts, polys, marked_edges=None, normals=None):
        verts = np.array(verts, dtype=np.float64)
        if verts.ndim != 2 or verts.shape[1] != 3:
            raise ValueError("verts must be shaped (N, 3)")
        self.verts = verts

        num_verts = verts.shape[0]
        self.polys: List[Tuple[int, ...]] = []
        for poly in polys:
            ids = tuple(int(v) for v in poly)
            if len(ids) < 3:
                raise ValueError(f"polygon {len(self.polys)} has fewer than 3 vertices")
            if min(ids) < 0 or max(ids) >= num_verts:
                raise ValueError(f"polygon {len(self.polys)} references a missing vertex")
            self.polys.append(ids)

        self._edge_ids: Dict[Tuple[int, int], int] = {}
        self.edges: List[Tuple[int, int]] = []
        self._v2p: List[List[int]] = [[] for _ in range(num_verts)]
        self._v2e: List[List[int]] = [[] for _ in range(num_verts)]
        self._e2p: List[List[int]] = []

        for pid, poly in enumerate(self.polys):
            for vid in poly:
                self._v2p[vid].append(pid)
            for a, b in zip(poly, poly[1:] + poly[:1]):
                key = (a, b) if a < b else (b, a)
                eid = self._edge_ids.get(key)
                if eid is None:
                    eid = len(self.edges)
                    self._edge_ids[key] = eid
                    self.edges.append(key)
                    self._e2p.append([])
                    self._v2e[key[0]].append(eid)
                    self._v2e[key[1]].append(eid)
                self._e2p[eid].append(pid)

        self.marked = np.zeros(len(self.edges), dtype=bool)
        if marked_edges is not None:
            self.mark_edges(marked_edges)

        if normals is None:
            self.update_normals()
        else:
            normals = np.array(normals, dtype=np.float64)
            if normals.shape != (len(self.polys), 3):
                raise ValueError("normals must be shaped (num_polys, 3)")
            self.normals = normals

        self.labels = np.full(num_verts, int(VertexLabel.REGULAR), dtype=np.int8)

    # ------------------------------------------------------------------
    # conversion

    @classmethod
    def from_pyvista(cls, polydata, marked_edges=None):
        """Build a mesh from a ``pyvista.PolyData`` surface."""
        faces = np.asarray(polydata.faces, dtype=np.int64)
        polys = []
        i = 0
        while i < faces.shape[0]:
            n = int(faces[i])
            polys.append(faces[i + 1:i + 1 + n])
            i += n + 1
        return cls(np.asarray(polydata.points), polys, marked_edges=marked_edges)

    def to_pyvista(self):
        """Return the current geometry as a ``pyvista.PolyData``."""
        import pyvista as pv

        faces_padded = np.concatenate(
            [np.asarray((len(poly),) + poly, dtype=np.int64) for poly in self.polys]
        ) if self.polys else np.empty(0, dtype=np.int64)
        return pv.PolyData(self.verts.copy(), faces_padded)

    def copy(self) -> "PolygonMesh":
        other = PolygonMesh(self.verts, self.polys, normals=self.normals)
        other.marked = self.marked.copy()
        other.labels = self.labels.copy()
        return other

    # ------------------------------------------------------------------
    # counts and element access

    def num_verts(self) -> int:
        return self.verts.shape[0]

    def num_edges(self) -> int:
        return len(self.edges)

    def num_polys(self) -> int:
        return len(self.polys)

    def vert(self, vid: int) -> np.ndarray:
        return self.verts[vid].copy()

    def set_vert(self, vid: int, pos) -> None:
        self.verts[vid] = pos

    def edge_verts(self, eid: int) -> np.ndarray:
        a, b = self.edges[eid]
        return self.verts[[a, b]].copy()

    def edge_marked(self, eid: int) -> bool:
        return bool(self.marked[eid])

    def edge_id(self, a: int, b: int) -> Optional[int]:
        key = (a, b) if a < b else (b, a)
        return self._edge_ids.get(key)

    def poly_normal(self, pid: int) -> np.ndarray:
        return self.normals[pid]

    # ------------------------------------------------------------------
    # adjacency

    def adj_v2p(self, vid: int) -> List[int]:
        return self._v2p[vid]

    def adj_v2e(self, vid: int) -> List[int]:
        return self._v2e[vid]

    def adj_e2p(self, eid: int) -> List[int]:
        return self._e2p[eid]

    def adj_v2v(self, vid: int) -> List[int]:
        return [self.vert_opposite_to(eid, vid) for eid in self._v2e[vid]]

    def vert_opposite_to(self, eid: int, vid: int) -> int:
        a, b = self.edges[eid]
        if vid == a:
            return b
        if vid == b:
            return a
        raise ValueError(f"vertex {vid} is not an endpoint of edge {eid}")

    # ------------------------------------------------------------------
    # geometry / features

    def update_normals(self) -> None:
        """Recompute per-polygon unit normals from the current positions."""
        self.normals = np.zeros((len(self.polys), 3))
        for pid, poly in enumerate(self.polys):
            self.normals[pid] = newell_normal(self.verts[list(poly)])

    def mark_edges(self, pairs: Iterable[Sequence[int]]) -> None:
        """Flag the edges joining each (i, j) vertex pair as sharp."""
        for pair in pairs:
            a, b = int(pair[0]), int(pair[1])
            eid = self.edge_id(a, b)
            if eid is None:
                raise ValueError(f"({a}, {b}) is not an edge of the mesh")
            self.marked[eid] = True

    def mark_sharp_edges(self, angle_deg: float, include_boundary: bool = False) -> int:
        """
        Flag edges whose dihedral angle exceeds ``angle_deg``.

        The angle is measured between the normals of the two incident
        polygons. Non-manifold edges are always flagged; boundary edges only
        when ``include_boundary`` is set. Returns the number of marked edges.
        """
        cos_thresh = np.cos(np.radians(angle_deg))
        for eid, pids in enumerate(self._e2p):
            if len(pids) == 1:
                if include_boundary:
                    self.marked[eid] = True
            elif len(pids) > 2:
                self.marked[eid] = True
            else:
                n0 = self.normals[pids[0]]
                n1 = self.normals[pids[1]]
                if np.dot(n0, n1) < cos_thresh:
                    self.marked[eid] = True
        return int(self.marked.sum())

    def marked_edge_ids(self) -> np.ndarray:
        return np.flatnonzero(self.marked)
