"""
Discrete Laplacian operators for polygon meshes.

Both operators are returned as sparse (N, N) matrices whose rows express a
vertex minus a weighted average of its neighbours, so that ``L @ verts`` is
zero on a perfectly smooth (uniform) or planar (cotangent) neighbourhood.
"""

from enum import Enum

import numpy as np
from scipy import sparse


class LaplacianMode(Enum):
    UNIFORM = "uniform"
    COTANGENT = "cotangent"


def fan_triangles(polys):
    """Split each polygon into a triangle fan around its first vertex."""
    tris = []
    for poly in polys:
        for i in range(1, len(poly) - 1):
            tris.append((poly[0], poly[i], poly[i + 1]))
    if not tris:
        return np.empty((0, 3), dtype=np.int64)
    return np.asarray(tris, dtype=np.int64)


def uniform_laplacian(mesh):
    """
    Build the row-normalized graph Laplacian L = I - D^-1 * A.

    A is the edge adjacency of the mesh; isolated vertices get an empty row.
    """
    num_verts = mesh.num_verts()
    edges = np.asarray(mesh.edges, dtype=np.int64).reshape(-1, 2)

    rows = np.concatenate([edges[:, 0], edges[:, 1]])
    cols = np.concatenate([edges[:, 1], edges[:, 0]])
    A = sparse.coo_matrix((np.ones(len(rows)), (rows, cols)), shape=(num_verts, num_verts))
    A = A.tocsr()

    degrees = np.array(A.sum(axis=1)).flatten()
    connected = degrees > 0
    inv_deg = np.zeros(num_verts)
    inv_deg[connected] = 1.0 / degrees[connected]

    W = sparse.diags(inv_deg) @ A
    return sparse.diags(connected.astype(np.float64)) - W


def cotangent_laplacian(mesh):
    """
    Build the cotangent Laplacian with weights (cot a + cot b) / 2 per edge.

    Non-triangular polygons are fan-triangulated first. The diagonal holds the
    sum of incident weights, the off-diagonals their negation.
    """
    num_verts = mesh.num_verts()
    faces = fan_triangles(mesh.polys)
    verts = mesh.verts

    v0 = verts[faces[:, 0]]
    v1 = verts[faces[:, 1]]
    v2 = verts[faces[:, 2]]

    e01 = v1 - v0
    e02 = v2 - v0
    e12 = v2 - v1
    e10 = -e01
    e20 = -e02
    e21 = -e12

    eps = 1e-12

    # cot(angle) = dot / |cross|
    cot_0 = np.sum(e01 * e02, axis=1) / (np.linalg.norm(np.cross(e01, e02), axis=1) + eps)
    cot_1 = np.sum(e12 * e10, axis=1) / (np.linalg.norm(np.cross(e12, e10), axis=1) + eps)
    cot_2 = np.sum(e20 * e21, axis=1) / (np.linalg.norm(np.cross(e20, e21), axis=1) + eps)

    cot_0 = np.clip(cot_0, -1e6, 1e6)
    cot_1 = np.clip(cot_1, -1e6, 1e6)
    cot_2 = np.clip(cot_2, -1e6, 1e6)

    # Edge (1,2) is opposite vertex 0, (2,0) opposite 1, (0,1) opposite 2
    rows = np.concatenate([
        faces[:, 1], faces[:, 2],
        faces[:, 2], faces[:, 0],
        faces[:, 0], faces[:, 1],
    ])
    cols = np.concatenate([
        faces[:, 2], faces[:, 1],
        faces[:, 0], faces[:, 2],
        faces[:, 1], faces[:, 0],
    ])
    data = np.concatenate([
        cot_0 / 2, cot_0 / 2,
        cot_1 / 2, cot_1 / 2,
        cot_2 / 2, cot_2 / 2,
    ])

    W = sparse.coo_matrix((data, (rows, cols)), shape=(num_verts, num_verts)).tocsr()
    W.sum_duplicates()

    diag = np.array(W.sum(axis=1)).flatten()
    return sparse.diags(diag) - W


def laplacian_matrix(mesh, mode=LaplacianMode.COTANGENT):
    mode = LaplacianMode(mode)
    if mode is LaplacianMode.UNIFORM:
        return uniform_laplacian(mesh).tocsr()
    return cotangent_laplacian(mesh).tocsr()


def laplacian_matrix_entries(mesh, mode=LaplacianMode.COTANGENT, n_blocks=3):
    """
    Return (rows, cols, vals) triplets of a block-diagonal Laplacian.

    Block k covers rows and columns [k*N, (k+1)*N), one block per coordinate.
    """
    num_verts = mesh.num_verts()
    L = laplacian_matrix(mesh, mode)
    L.eliminate_zeros()
    L = L.tocoo()

    rows = np.concatenate([L.row + k * num_verts for k in range(n_blocks)]).astype(np.int64)
    cols = np.concatenate([L.col + k * num_verts for k in range(n_blocks)]).astype(np.int64)
    vals = np.tile(L.data, n_blocks).astype(np.float64)
    return rows, cols, vals
