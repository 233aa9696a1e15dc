"""
Per-iteration assembly of the feature-preserving smoothing system.

Assembly runs in two passes. ``plan_constraints`` walks the vertices in id
order and builds one constraint object per vertex (regular / feature /
corner), allocating the auxiliary column of every feature vertex and the row
and triplet offsets of every vertex. ``assemble_system`` then writes the
Laplacian block and lets each constraint fill its own preallocated slice, so
no fill step depends on a shared running counter.

Column layout: [0, N) x-coords, [N, 2N) y-coords, [2N, 3N) z-coords, then one
column per feature vertex holding its offset t along the tangent line.
"""

from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np

from .errors import InternalConsistencyError, resolve_sink
from .labels import VertexLabel
from .laplacian import laplacian_matrix_entries
from .solver import SparseSystem


def coordinate_columns(vid, num_verts):
    return np.array([vid, num_verts + vid, 2 * num_verts + vid], dtype=np.int64)


class RegularConstraint:
    """Keep the vertex on the tangent plane of each incident polygon."""

    label = VertexLabel.REGULAR
    on_feature_curve = False

    def __init__(self, vid, pids):
        self.vid = vid
        self.pids = list(pids)

    @property
    def num_rows(self):
        return len(self.pids)

    @property
    def num_entries(self):
        return 3 * len(self.pids)

    def fill(self, mesh, system, row, entry, options, sink):
        nv = mesh.num_verts()
        cols = coordinate_columns(self.vid, nv)
        p = mesh.verts[self.vid]

        # One equation per incident face: face orientation is not assumed to
        # be globally consistent, so no vertex normal is formed. High valence
        # vertices end up more constrained than low valence ones.
        for i, pid in enumerate(self.pids):
            n = mesh.normals[pid]
            if not np.any(n):
                sink(f"zero length face normal (vertex {self.vid}, polygon {pid})")
            r = row + i
            k = entry + 3 * i
            system.rows[k:k + 3] = r
            system.cols[k:k + 3] = cols
            system.vals[k:k + 3] = n
            system.rhs[r] = np.dot(n, p)
            system.weights[r] = options.w_regular

    def reconstruct(self, mesh, x):
        return x[coordinate_columns(self.vid, mesh.num_verts())]


class FeatureConstraint:
    """Let the vertex slide along its crease: p_new = p + t * direction."""

    label = VertexLabel.FEATURE
    on_feature_curve = True
    num_rows = 4
    num_entries = 7

    def __init__(self, vid, direction, column):
        self.vid = vid
        self.direction = direction
        self.column = column

    def fill(self, mesh, system, row, entry, options, sink):
        nv = mesh.num_verts()
        cols = coordinate_columns(self.vid, nv)
        p = mesh.verts[self.vid]

        for k in range(3):
            r = row + k
            e = entry + 2 * k
            system.rows[e:e + 2] = r
            system.cols[e] = cols[k]
            system.vals[e] = 1.0
            system.cols[e + 1] = self.column
            system.vals[e + 1] = -self.direction[k]
            system.rhs[r] = p[k]
            system.weights[r] = options.w_feature

        # t -> 0 keeps the slide bounded when nothing else pins it
        r = row + 3
        e = entry + 6
        system.rows[e] = r
        system.cols[e] = self.column
        system.vals[e] = 1.0
        system.rhs[r] = 0.0
        system.weights[r] = 1.0

    def reconstruct(self, mesh, x):
        return mesh.verts[self.vid] + self.direction * x[self.column]


class CornerConstraint:
    """Softly pin the vertex to its current position."""

    label = VertexLabel.CORNER
    on_feature_curve = False
    num_rows = 3
    num_entries = 3

    def __init__(self, vid):
        self.vid = vid

    def fill(self, mesh, system, row, entry, options, sink):
        cols = coordinate_columns(self.vid, mesh.num_verts())
        rows = np.arange(row, row + 3)
        system.rows[entry:entry + 3] = rows
        system.cols[entry:entry + 3] = cols
        system.vals[entry:entry + 3] = 1.0
        system.rhs[rows] = mesh.verts[self.vid]
        system.weights[rows] = options.w_corner

    def reconstruct(self, mesh, x):
        return x[coordinate_columns(self.vid, mesh.num_verts())]


@dataclass
class ConstraintPlan:
    """Row, triplet and column layout of one iteration's constraints."""
    constraints: List = field(default_factory=list)
    row_offsets: np.ndarray = None
    entry_offsets: np.ndarray = None
    feature_columns: Dict[int, int] = field(default_factory=dict)
    n_rows: int = 0
    n_entries: int = 0
    n_cols: int = 0

    def allocate_feature_column(self, vid, col):
        if vid in self.feature_columns:
            raise InternalConsistencyError(f"feature vertex {vid} allocated twice")
        self.feature_columns[vid] = col
        return col


def tangent_direction(mesh, vid, sink=None):
    """
    Unit direction of the crease through a feature vertex.

    Taken as the normalized difference between the far endpoints of its two
    marked edges (ascending edge id order). A zero-length difference is
    reported to ``sink`` and returned as the zero vector.
    """
    sink = resolve_sink(sink)
    marked = sorted(eid for eid in mesh.adj_v2e(vid) if mesh.edge_marked(eid))
    if len(marked) != 2:
        raise InternalConsistencyError(
            f"feature vertex {vid} has {len(marked)} marked edges, expected 2"
        )
    a = mesh.verts[mesh.vert_opposite_to(marked[0], vid)]
    b = mesh.verts[mesh.vert_opposite_to(marked[1], vid)]
    direction = a - b
    length = np.linalg.norm(direction)
    if length < np.finfo(np.float64).tiny:
        sink(f"zero length tangent curve (vertex {vid})")
        return np.zeros(3)
    return direction / length


def plan_constraints(mesh, sink=None):
    """Build the constraint objects and their offsets for the current geometry."""
    sink = resolve_sink(sink)
    nv = mesh.num_verts()
    plan = ConstraintPlan(
        row_offsets=np.zeros(nv, dtype=np.int64),
        entry_offsets=np.zeros(nv, dtype=np.int64),
    )

    row = 3 * nv
    col = 3 * nv
    entry = 0
    for vid in range(nv):
        label = mesh.labels[vid]
        if label == VertexLabel.REGULAR:
            constraint = RegularConstraint(vid, mesh.adj_v2p(vid))
        elif label == VertexLabel.FEATURE:
            column = plan.allocate_feature_column(vid, col)
            constraint = FeatureConstraint(vid, tangent_direction(mesh, vid, sink), column)
            col += 1
        elif label == VertexLabel.CORNER:
            constraint = CornerConstraint(vid)
        else:
            raise InternalConsistencyError(f"vertex {vid} has unknown label {label}")

        plan.constraints.append(constraint)
        plan.row_offsets[vid] = row
        plan.entry_offsets[vid] = entry
        row += constraint.num_rows
        entry += constraint.num_entries

    plan.n_rows = row
    plan.n_entries = entry
    plan.n_cols = col
    return plan


def assemble_system(mesh, plan, options, sink=None):
    """
    Write the Laplacian block and every vertex constraint into one system.

    Args:
        mesh: PolygonMesh with labels assigned
        plan: ConstraintPlan from ``plan_constraints`` on the same geometry
        options: SmootherOptions (mode and weights)
        sink: diagnostics callable for degenerate geometry

    Returns:
        SparseSystem with plan.n_rows rows and plan.n_cols columns
    """
    sink = resolve_sink(sink)
    nv = mesh.num_verts()

    lap_rows, lap_cols, lap_vals = laplacian_matrix_entries(mesh, options.laplacian_mode, 3)
    n_lap = lap_rows.shape[0]
    n_total = n_lap + plan.n_entries

    system = SparseSystem(
        rows=np.empty(n_total, dtype=np.int64),
        cols=np.empty(n_total, dtype=np.int64),
        vals=np.empty(n_total, dtype=np.float64),
        weights=np.empty(plan.n_rows, dtype=np.float64),
        rhs=np.empty(plan.n_rows, dtype=np.float64),
        n_cols=plan.n_cols,
    )

    system.rows[:n_lap] = lap_rows
    system.cols[:n_lap] = lap_cols
    system.vals[:n_lap] = lap_vals
    system.weights[:3 * nv] = options.w_laplace
    system.rhs[:3 * nv] = 0.0

    for constraint in plan.constraints:
        constraint.fill(
            mesh,
            system,
            int(plan.row_offsets[constraint.vid]),
            n_lap + int(plan.entry_offsets[constraint.vid]),
            options,
            sink,
        )
    return system
