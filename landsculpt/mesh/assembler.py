#!/usr/bin/env python3
"""
メッシュ組み立て

最終的な高度範囲を再計算し、法線を付けて完成メッシュとして公開します。
公開後の配列は読み取り専用です。
"""

import numpy as np

from landsculpt import get_logger
from landsculpt.data_types import ElevationBounds, TerrainMesh
from .utils import compute_vertex_normals

logger = get_logger(__name__)


class MeshAssembler:
    """完成メッシュの組み立て"""

    def __init__(self, compute_normals: bool = True):
        self.compute_normals = compute_normals

    def assemble(self, vertices: np.ndarray, triangles: np.ndarray) -> TerrainMesh:
        """
        頂点・三角形から TerrainMesh を作成

        Args:
            vertices: 頂点 (N, 3)
            triangles: 三角形インデックス (M, 3)

        Returns:
            読み取り専用の完成メッシュ
        """
        vertices = np.array(vertices, dtype=np.float64)
        triangles = np.array(triangles, dtype=np.int64).reshape(-1, 3)

        if len(triangles) and (triangles.min() < 0 or triangles.max() >= len(vertices)):
            raise ValueError("Triangle index out of range")

        bounds = ElevationBounds.from_vertices(vertices)
        normals = compute_vertex_normals(vertices, triangles) if self.compute_normals else None

        for array in (vertices, triangles, normals):
            if array is not None:
                array.setflags(write=False)

        logger.debug(
            "Assembled terrain: %d vertices, %d triangles, elevation %.3f..%.3f",
            len(vertices), len(triangles), bounds.minimum, bounds.maximum,
        )
        return TerrainMesh(vertices=vertices, triangles=triangles, bounds=bounds, vertex_normals=normals)
