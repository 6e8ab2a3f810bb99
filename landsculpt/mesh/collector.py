#!/usr/bin/env python3
"""
頂点収集と隠れ頂点の除去

分類済み地面メッシュの頂点を1つの列にまとめ、水平面上でほぼ同じ位置に
重なった頂点のうち最も高いものだけを残します（上から見える面の近似）。
"""

import time
from typing import List, Optional, Tuple
import numpy as np
from scipy.spatial import cKDTree

from landsculpt import get_logger
from landsculpt.constants import DEFAULT_DEDUP_PRECISION
from landsculpt.data_types import GroundMeshSource, ELEVATION_AXIS, X_AXIS, Z_AXIS, as_vertex_array

logger = get_logger(__name__)


class NoGroundSurfaceError(Exception):
    """地面メッシュが1つも検出されていない"""


def collect_vertices(source: Optional[GroundMeshSource]) -> np.ndarray:
    """
    地面メッシュの頂点バッファを連結

    Args:
        source: 地面メッシュ供給元

    Returns:
        連結した頂点 (N, 3)

    Raises:
        NoGroundSurfaceError: 地面メッシュが空の場合
    """
    meshes: List[np.ndarray] = source.get_ground_meshes() if source is not None else []
    buffers = [as_vertex_array(mesh) for mesh in meshes if mesh is not None and len(mesh) > 0]

    if not buffers:
        raise NoGroundSurfaceError("No ground surface detected")

    vertices = np.concatenate(buffers, axis=0)
    logger.debug("Collected %d vertices from %d ground meshes", len(vertices), len(buffers))
    return vertices


def remove_hidden_vertices(
    vertices: np.ndarray,
    precision: float = DEFAULT_DEDUP_PRECISION
) -> Tuple[np.ndarray, np.ndarray]:
    """
    隠れ頂点を除去

    高度の昇順に並べ、高い方から順に走査して、より高い生存頂点と
    水平2軸の差がともに precision 未満の頂点を捨てます。

    Args:
        vertices: 入力頂点 (N, 3)
        precision: 水平面での重複許容値

    Returns:
        (残った頂点（高度昇順）, 入力に対するインデックス)
    """
    vertices = as_vertex_array(vertices)
    if len(vertices) == 0:
        return vertices.copy(), np.empty(0, dtype=np.int64)

    order = np.argsort(vertices[:, ELEVATION_AXIS], kind='stable')
    ordered = vertices[order]
    horizontal = ordered[:, [X_AXIS, Z_AXIS]]

    # Chebyshev距離で候補を絞り、厳密な判定は下で行う
    tree = cKDTree(horizontal)
    candidates = tree.query_ball_point(horizontal, r=precision, p=np.inf)

    alive = np.ones(len(ordered), dtype=bool)
    for i in range(len(ordered) - 1, -1, -1):
        for j in candidates[i]:
            if j <= i or not alive[j]:
                continue
            delta = np.abs(horizontal[i] - horizontal[j])
            if delta[0] < precision and delta[1] < precision:
                alive[i] = False
                break

    kept = order[alive]
    return vertices[kept], kept


class VertexCollector:
    """頂点収集・重複除去クラス"""

    def __init__(self, precision: float = DEFAULT_DEDUP_PRECISION):
        """
        初期化

        Args:
            precision: 水平面での重複許容値（メートル）
        """
        if precision <= 0:
            raise ValueError("precision must be positive")
        self.precision = precision

        self.stats = {
            'last_num_input': 0,
            'last_num_output': 0,
            'last_time_ms': 0.0,
        }

    def collect(self, source: Optional[GroundMeshSource]) -> np.ndarray:
        """
        地面メッシュから可視頂点を抽出

        Args:
            source: 地面メッシュ供給元

        Returns:
            重複除去済み頂点 (N, 3)

        Raises:
            NoGroundSurfaceError: 地面メッシュが空の場合
        """
        start_time = time.perf_counter()

        raw = collect_vertices(source)
        visible, _ = remove_hidden_vertices(raw, self.precision)

        self.stats['last_num_input'] = len(raw)
        self.stats['last_num_output'] = len(visible)
        self.stats['last_time_ms'] = (time.perf_counter() - start_time) * 1000

        logger.debug(
            "Removed %d hidden vertices (%d -> %d)",
            len(raw) - len(visible), len(raw), len(visible),
        )
        return visible

    def get_performance_stats(self) -> dict:
        """パフォーマンス統計取得"""
        return self.stats.copy()
