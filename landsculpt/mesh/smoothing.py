#!/usr/bin/env python3
"""
メッシュ平滑化

平均高度の高い三角形から順に、平均より低い頂点を平均まで持ち上げます。
センサーノイズによる細かな崖を山頂側から埋めていく貪欲法です。
"""

from typing import Iterable, MutableSequence, Sequence
import numpy as np

from landsculpt import get_logger
from landsculpt.constants import SMOOTHING_FLOOR
from landsculpt.data_types import ELEVATION_AXIS

logger = get_logger(__name__)


def triangle_average_heights(vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """三角形ごとの平均高度 (M,)"""
    if len(triangles) == 0:
        return np.empty(0, dtype=np.float64)
    return vertices[triangles, ELEVATION_AXIS].mean(axis=1)


def raise_triangles(heights: MutableSequence[float], triangles: Sequence[Sequence[int]], order: Iterable[int]) -> int:
    """
    指定順に三角形を処理し、平均未満の頂点を平均まで持ち上げる

    持ち上げは累積的で、後の三角形は更新後の高さで平均を計算します。

    Args:
        heights: 頂点高度（その場で更新）
        triangles: 三角形インデックス (M, 3)
        order: 処理する三角形の順序

    Returns:
        持ち上げた頂点の延べ数
    """
    raised = 0
    for t in order:
        a, b, c = triangles[t]
        average = (heights[a] + heights[b] + heights[c]) / 3.0
        for v in (a, b, c):
            if heights[v] < average:
                heights[v] = average
                raised += 1
    return raised


def smooth_mesh(
    vertices: np.ndarray,
    triangles: np.ndarray,
    floor: float = SMOOTHING_FLOOR
) -> int:
    """
    貪欲平滑化を1パス実行

    未処理の三角形のうち平均高度が最大のものを選んで処理する操作を、
    全三角形を処理するか最大平均が floor を下回るまで繰り返します。
    選択順は開始時点の平均の降順（同値は三角形番号の小さい順）です。

    Args:
        vertices: 頂点 (N, 3)（高度列をその場で更新）
        triangles: 三角形インデックス (M, 3)
        floor: これ未満の平均を持つ三角形は処理しない

    Returns:
        持ち上げた頂点の延べ数
    """
    triangles = np.asarray(triangles, dtype=np.int64)
    averages = triangle_average_heights(vertices, triangles)
    order = np.argsort(-averages, kind='stable')
    cutoff = int(np.searchsorted(-averages[order], -floor, side='right'))

    heights = vertices[:, ELEVATION_AXIS].tolist()
    raised = raise_triangles(heights, triangles.tolist(), order[:cutoff].tolist())
    vertices[:, ELEVATION_AXIS] = heights

    logger.debug("Smoothed %d/%d triangles, raised %d vertices", cutoff, len(triangles), raised)
    return raised


class MeshSmoother:
    """メッシュ平滑化クラス"""

    def __init__(self, floor: float = SMOOTHING_FLOOR):
        self.floor = floor
        self.stats = {
            'total_passes': 0,
            'last_raised_vertices': 0,
        }

    def smooth(self, vertices: np.ndarray, triangles: np.ndarray) -> int:
        """平滑化を実行（頂点はその場で更新）"""
        raised = smooth_mesh(vertices, triangles, self.floor)
        self.stats['total_passes'] += 1
        self.stats['last_raised_vertices'] = raised
        return raised
