"""
Feature-preserving smoothing for polygon meshes.
"""

from .errors import (
    SmootherError,
    InternalConsistencyError,
    SolverError,
    DegenerateGeometryWarning,
)
from .labels import VertexLabel, label_features
from .laplacian import LaplacianMode, laplacian_matrix, laplacian_matrix_entries
from .mesh import PolygonMesh
from .assembly import plan_constraints, assemble_system, tangent_direction
from .solver import SparseSystem, solve_weighted_least_squares, solve_system
from .spatial import ClosestPointIndex
from .smoother import (
    SmootherOptions,
    mesh_smoother,
    reconstruct_positions,
    feature_preserving_smoothing,
)

__all__ = [
    # Mesh and classification
    'PolygonMesh',
    'VertexLabel',
    'label_features',
    # System assembly and solve
    'LaplacianMode',
    'laplacian_matrix',
    'laplacian_matrix_entries',
    'plan_constraints',
    'assemble_system',
    'tangent_direction',
    'SparseSystem',
    'solve_weighted_least_squares',
    'solve_system',
    # Reprojection
    'ClosestPointIndex',
    'reconstruct_positions',
    # Smoothing
    'SmootherOptions',
    'mesh_smoother',
    'feature_preserving_smoothing',
    # Errors
    'SmootherError',
    'InternalConsistencyError',
    'SolverError',
    'DegenerateGeometryWarning',
]
