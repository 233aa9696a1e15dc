import numpy as np
from scipy.spatial.distance import directed_hausdorff

from .labels import VertexLabel


def hausdorff_distance(verts1, verts2, sample_size=5000, seed=0):
    """
    Compute Hausdorff distance between two point clouds.
    Uses sampling for large meshes to keep computation tractable.

    Args:
        verts1: (N, 3) array of vertices
        verts2: (M, 3) array of vertices
        sample_size: max points to use for computation
        seed: seed for the sampling generator

    Returns:
        float: symmetric Hausdorff distance
    """
    rng = np.random.default_rng(seed)
    if verts1.shape[0] > sample_size:
        verts1 = verts1[rng.choice(verts1.shape[0], sample_size, replace=False)]
    if verts2.shape[0] > sample_size:
        verts2 = verts2[rng.choice(verts2.shape[0], sample_size, replace=False)]

    d1 = directed_hausdorff(verts1, verts2)[0]
    d2 = directed_hausdorff(verts2, verts1)[0]
    return max(d1, d2)


def displacement_stats(verts_orig, verts_new, labels=None):
    """
    Per-vertex displacement summary, optionally split by vertex label.

    Returns:
        dict with mean and max displacement overall and per label name
    """
    disp = np.linalg.norm(np.asarray(verts_new) - np.asarray(verts_orig), axis=1)
    stats = {
        "mean_displacement": float(disp.mean()) if disp.size else 0.0,
        "max_displacement": float(disp.max()) if disp.size else 0.0,
    }
    if labels is not None:
        labels = np.asarray(labels)
        for label in VertexLabel:
            mask = labels == label
            name = label.name.lower()
            stats[f"{name}_max_displacement"] = float(disp[mask].max()) if mask.any() else 0.0
    return stats
