#!/usr/bin/env python3
"""
メッシュ書き出し

完成メッシュを trimesh 経由で任意の形式 (.ply / .obj / .glb / .stl) に保存します。
"""

from pathlib import Path
from typing import Union
import numpy as np
import trimesh

from landsculpt import get_logger
from landsculpt.data_types import TerrainMesh

logger = get_logger(__name__)


def to_trimesh(mesh: TerrainMesh) -> trimesh.Trimesh:
    """TerrainMesh を trimesh.Trimesh に変換（頂点の統合・並べ替えはしない）"""
    return trimesh.Trimesh(
        vertices=np.array(mesh.vertices),
        faces=np.array(mesh.triangles),
        vertex_normals=None if mesh.vertex_normals is None else np.array(mesh.vertex_normals),
        process=False,
    )


def export_mesh(mesh: TerrainMesh, path: Union[str, Path]) -> Path:
    """
    メッシュをファイルに保存

    Args:
        mesh: 保存するメッシュ
        path: 出力先（拡張子で形式を判定）

    Returns:
        出力先パス
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    to_trimesh(mesh).export(str(path))
    logger.info("Exported %d vertices / %d triangles to %s", mesh.num_vertices, mesh.num_triangles, path)
    return path
