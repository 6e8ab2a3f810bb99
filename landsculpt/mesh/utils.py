from __future__ import annotations

"""Mesh utility helpers.

This module hosts small helper functions that are shared across mesh
sub-modules without introducing unwanted import cycles.
"""

from typing import Tuple
import numpy as np


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------

def compute_vertex_normals(vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """Compute vertex normals as area-weighted average of adjacent triangle normals."""
    if len(triangles) == 0:
        return np.zeros_like(vertices, dtype=np.float64)
    v0 = vertices[triangles[:, 0]]
    v1 = vertices[triangles[:, 1]]
    v2 = vertices[triangles[:, 2]]
    # un-normalised cross product carries the area weight
    face_normals = np.cross(v1 - v0, v2 - v0)
    vert_normals = np.zeros_like(vertices, dtype=np.float64)
    for corner in range(3):
        np.add.at(vert_normals, triangles[:, corner], face_normals)
    norms = np.linalg.norm(vert_normals, axis=1, keepdims=True) + 1e-12
    vert_normals /= norms
    return vert_normals


def subdivide_triangles(vertices: np.ndarray, triangles: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Replace every triangle with three triangles fanned around its centroid.

    Triangles are visited from last to first; the centroid of the k-th visited
    triangle becomes vertex ``len(vertices) + k``. Winding is preserved.
    """
    if len(triangles) == 0:
        return vertices.copy(), triangles.copy()

    reversed_tris = np.asarray(triangles, dtype=np.int64)[::-1]
    centroids = vertices[reversed_tris].mean(axis=1)
    centre = len(vertices) + np.arange(len(reversed_tris))

    v0, v1, v2 = reversed_tris[:, 0], reversed_tris[:, 1], reversed_tris[:, 2]
    fan = np.stack([
        np.stack([v0, v1, centre], axis=1),
        np.stack([v1, v2, centre], axis=1),
        np.stack([v2, v0, centre], axis=1),
    ], axis=1).reshape(-1, 3)

    return np.vstack([vertices, centroids]), fan
