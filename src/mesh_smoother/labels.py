"""Vertex classification from the marked-edge topology."""

from enum import IntEnum

import numpy as np


class VertexLabel(IntEnum):
    REGULAR = 0
    FEATURE = 1
    CORNER = 2


def count_marked_edges(mesh, vid):
    return sum(1 for eid in mesh.adj_v2e(vid) if mesh.edge_marked(eid))


def label_features(mesh):
    """
    Label every vertex by the number of marked edges incident to it.

    0 marked edges -> REGULAR, exactly 2 -> FEATURE, anything else
    (a dangling crease end or a junction of 3+ creases) -> CORNER.

    The labels are stored on ``mesh.labels`` and also returned.
    """
    labels = np.empty(mesh.num_verts(), dtype=np.int8)
    for vid in range(mesh.num_verts()):
        count = count_marked_edges(mesh, vid)
        if count == 0:
            labels[vid] = VertexLabel.REGULAR
        elif count == 2:
            labels[vid] = VertexLabel.FEATURE
        else:
            labels[vid] = VertexLabel.CORNER
    mesh.labels = labels
    return labels
