"""
Feature-Preserving Mesh Smoothing

Smooths a polygon mesh toward a locally planar shape while keeping marked
sharp edges sharp and their junctions in place. Every iteration solves one
sparse weighted least-squares problem that combines:

    w_laplace * |L p_new|^2                      (all vertices)
  + w_regular * sum_f (n_f . p_new - n_f . p)^2  (regular vertices)
  + w_feature * |p_new - (p + t d)|^2 + t^2      (feature vertices)
  + w_corner  * |p_new - p|^2                    (corner vertices)

and optionally snaps the result back onto a reference surface and onto the
initial feature curves.

Reference: Livesu, CinoLib mesh_smoother
"""

import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .assembly import assemble_system, plan_constraints
from .errors import resolve_sink
from .labels import VertexLabel, label_features
from .laplacian import LaplacianMode
from .mesh import PolygonMesh
from .solver import solve_system
from .spatial import ClosestPointIndex


@dataclass
class SmootherOptions:
    laplacian_mode: LaplacianMode = LaplacianMode.COTANGENT
    w_laplace: float = 0.01
    w_regular: float = 1.0
    w_feature: float = 1.0
    w_corner: float = 1.0
    n_iters: int = 10
    reproject_on_target: bool = True

    def __post_init__(self):
        try:
            self.laplacian_mode = LaplacianMode(self.laplacian_mode)
        except ValueError:
            raise ValueError(f"unknown laplacian mode: {self.laplacian_mode!r}") from None

        for name in ("w_laplace", "w_regular", "w_feature", "w_corner"):
            value = float(getattr(self, name))
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value}")
            setattr(self, name, value)

        if isinstance(self.n_iters, bool) or int(self.n_iters) != self.n_iters:
            raise ValueError(f"n_iters must be an integer, got {self.n_iters!r}")
        self.n_iters = int(self.n_iters)
        if self.n_iters < 0:
            raise ValueError(f"n_iters must be >= 0, got {self.n_iters}")

        self.reproject_on_target = bool(self.reproject_on_target)


def build_feature_index(mesh):
    """Index the marked edges of ``mesh`` at their current positions."""
    index = ClosestPointIndex()
    for eid in mesh.marked_edge_ids():
        index.add_segment(int(eid), mesh.edge_verts(eid))
    if len(index) == 0:
        return None
    return index.build()


def reconstruct_positions(mesh, plan, x, surface_index=None, feature_index=None):
    """
    Turn the solution vector into new vertex positions, in place.

    Feature vertices move along their tangent line by the solved offset;
    every other vertex reads its coordinates from the x/y/z blocks. When an
    index is given, the point is snapped to it (feature vertices to the
    feature curves, the rest to the target surface).
    """
    new_verts = np.empty_like(mesh.verts)
    on_curve = np.zeros(mesh.num_verts(), dtype=bool)
    for constraint in plan.constraints:
        new_verts[constraint.vid] = constraint.reconstruct(mesh, x)
        on_curve[constraint.vid] = constraint.on_feature_curve

    for index, mask in ((feature_index, on_curve), (surface_index, ~on_curve)):
        if index is not None and mask.any():
            new_verts[mask] = index.closest_points(new_verts[mask])
    mesh.verts[:] = new_verts
    return mesh.verts


def mesh_smoother(mesh, target=None, options=None, diagnostics=None, verbose=False):
    """
    Smooth ``mesh`` in place while preserving its marked edges.

    Args:
        mesh: PolygonMesh with marked edges and polygon normals
        target: reference PolygonMesh for reprojection; a snapshot of ``mesh``
            is used when omitted
        options: SmootherOptions (defaults if None)
        diagnostics: callable receiving degenerate-geometry messages;
            defaults to ``warnings.warn`` with DegenerateGeometryWarning
        verbose: print one line per iteration

    Raises:
        SolverError: if an iteration's system cannot be solved; the mesh keeps
            the positions of the last completed iteration
        InternalConsistencyError: if labels and marked edges disagree
        ValueError: if reprojection is on and the target has no polygons
    """
    options = options if options is not None else SmootherOptions()
    sink = resolve_sink(diagnostics)

    surface_index = None
    feature_index = None
    if options.reproject_on_target and mesh.num_verts() > 0:
        reference = target if target is not None else mesh.copy()
        if reference.num_polys() == 0:
            raise ValueError("reprojection target has no polygons")
        surface_index = ClosestPointIndex().build_from_mesh_polys(reference)
        feature_index = build_feature_index(mesh)

    label_features(mesh)

    if mesh.num_verts() == 0:
        return

    for i in range(options.n_iters):
        if verbose:
            print(f"smooth iter #{i}")

        plan = plan_constraints(mesh, sink)
        system = assemble_system(mesh, plan, options, sink)
        x = solve_system(system)
        reconstruct_positions(mesh, plan, x, surface_index, feature_index)


def feature_preserving_smoothing(verts: np.ndarray,
                                 faces,
                                 iterations: int = 10,
                                 feature_edges=None,
                                 sharp_angle: Optional[float] = None,
                                 include_boundary: bool = False,
                                 laplacian_mode='cotangent',
                                 w_laplace: float = 0.01,
                                 w_regular: float = 1.0,
                                 w_feature: float = 1.0,
                                 w_corner: float = 1.0,
                                 reproject: bool = False,
                                 target=None,
                                 diagnostics=None) -> Tuple[np.ndarray, Dict]:
    """
    Array-level entry point for feature-preserving smoothing.

    Args:
        verts: (N, 3) vertex positions
        faces: (M, k) polygon indices or a list of index sequences
        iterations: number of smoothing passes
        feature_edges: optional (E, 2) vertex pairs to preserve as creases
        sharp_angle: optionally also mark edges with a dihedral angle above
            this value (degrees)
        include_boundary: mark open boundary edges as creases too
        laplacian_mode: 'uniform' or 'cotangent'
        w_laplace, w_regular, w_feature, w_corner: term weights
        reproject: snap results onto ``target`` (or the input surface)
        target: optional (verts, faces) tuple of the reference surface
        diagnostics: optional callable receiving warning messages

    Returns:
        smoothed_verts: (N, 3) smoothed positions
        info: dict with label counts and timing
    """
    start = time.time()
    options = SmootherOptions(
        laplacian_mode=laplacian_mode,
        w_laplace=w_laplace,
        w_regular=w_regular,
        w_feature=w_feature,
        w_corner=w_corner,
        n_iters=iterations,
        reproject_on_target=reproject,
    )

    mesh = PolygonMesh(verts, faces, marked_edges=feature_edges)
    if sharp_angle is not None or include_boundary:
        mesh.mark_sharp_edges(180.0 if sharp_angle is None else sharp_angle,
                              include_boundary=include_boundary)

    target_mesh = None
    if target is not None:
        target_mesh = PolygonMesh(target[0], target[1])

    mesh_smoother(mesh, target_mesh, options, diagnostics=diagnostics)

    elapsed = time.time() - start
    return mesh.verts.copy(), {
        'method': 'Feature-Preserving',
        'iterations': options.n_iters,
        'marked_edges': int(mesh.marked.sum()),
        'regular': int(np.sum(mesh.labels == VertexLabel.REGULAR)),
        'feature': int(np.sum(mesh.labels == VertexLabel.FEATURE)),
        'corner': int(np.sum(mesh.labels == VertexLabel.CORNER)),
        'time': elapsed
    }
