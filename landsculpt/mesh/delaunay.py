#!/usr/bin/env python3
"""
品質付きDelaunay三角形分割

地面頂点を水平面 (x, z) に投影し、最小角度制約つきで三角形分割します。
制約を満たすために追加されたSteiner点の高度は、隣接三角形の既知高度から
重み付き平均で伝播させます。Triangle (Shewchuk) のPythonバインディングを使用します。
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import numpy as np
import triangle as tr

from landsculpt import get_logger
from landsculpt.constants import (
    DEFAULT_MIN_ANGLE, DEFAULT_ANGLE_FALLBACKS, DEFAULT_STEINER_PASSES, DEFAULT_MAX_STEINER_RATIO,
    ORIGINAL_VERTEX_WEIGHT, UNSET_STEINER_WEIGHT, VERTEX_LOOKUP_CELL_SIZE,
)
from landsculpt.data_types import ELEVATION_AXIS, X_AXIS, Z_AXIS, as_vertex_array
from .index import VertexGridIndex, build_vertex_neighbors
from .smoothing import raise_triangles

logger = get_logger(__name__)


class TriangulationError(RuntimeError):
    """どの最小角度でも三角形分割が得られなかった"""


@dataclass
class TriangulationResult:
    """三角形分割結果"""
    vertices: np.ndarray       # 頂点座標 (N, 3) - (x, y, z)
    triangles: np.ndarray      # 三角形インデックス (M, 3)
    steiner_count: int = 0     # 追加されたSteiner点数
    unresolved_count: int = 0  # 伝播で高度が決まらなかったSteiner点数
    min_angle_used: float = 0.0

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_triangles(self) -> int:
        return len(self.triangles)


# ---------------------------------------------------------------------------
# Steiner点の高度伝播
# ---------------------------------------------------------------------------

def resolve_steiner_heights(
    triangles: np.ndarray,
    heights: np.ndarray,
    is_steiner: np.ndarray,
    passes: int = DEFAULT_STEINER_PASSES
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Steiner点の高度を隣接三角形の重み付き平均で決定

    各三角形で「既知」頂点（元の点、または以前の訪問で高度が決まったSteiner点）
    の平均を取り、三角形内の全Steiner点に既知点数を重みとして累積平均します。
    パスごとに走査方向を反転（1パス目は順方向）し、隣り合うSteiner点同士が
    双方向に影響するようにします。

    Args:
        triangles: 三角形インデックス (M, 3)
        heights: 頂点高度 (N,)（Steiner点の値は無視される）
        is_steiner: Steiner点フラグ (N,)
        passes: 伝播パス数

    Returns:
        (高度, 重み)。元の点の重みは -1、未解決のSteiner点は 0
    """
    heights = np.where(is_steiner, 0.0, heights).astype(np.float64).tolist()
    weights = np.where(is_steiner, UNSET_STEINER_WEIGHT, ORIGINAL_VERTEX_WEIGHT).tolist()
    tri_list = np.asarray(triangles, dtype=np.int64).tolist()

    for n in range(passes):
        sweep = tri_list if n % 2 == 0 else reversed(tri_list)
        for tri in sweep:
            known_sum = 0.0
            known_count = 0
            steiners: List[int] = []
            for v in tri:
                w = weights[v]
                if w == ORIGINAL_VERTEX_WEIGHT:
                    known_sum += heights[v]
                    known_count += 1
                elif w == UNSET_STEINER_WEIGHT:
                    steiners.append(v)
                else:
                    steiners.append(v)
                    known_sum += heights[v]
                    known_count += 1

            if known_count == 0 or not steiners:
                continue

            average = known_sum / known_count
            for v in steiners:
                heights[v] = (heights[v] * weights[v] + average * known_count) / (weights[v] + known_count)
                weights[v] += known_count

    return np.asarray(heights, dtype=np.float64), np.asarray(weights, dtype=np.float64)


def fill_unresolved_heights(
    triangles: np.ndarray,
    heights: np.ndarray,
    unresolved: np.ndarray,
    fallback: float
) -> np.ndarray:
    """
    伝播で決まらなかった頂点に代替高度を与える

    高度が定まった隣接頂点の平均を、進展がなくなるまで繰り返し適用します。
    それでも孤立している頂点には fallback を使います。
    """
    heights = heights.copy()
    pending = set(np.flatnonzero(unresolved).tolist())
    if not pending:
        return heights

    neighbors = build_vertex_neighbors(triangles, len(heights))
    while pending:
        resolved_now = {}
        for v in pending:
            defined = [u for u in neighbors[v].tolist() if u not in pending]
            if defined:
                resolved_now[v] = float(np.mean(heights[defined]))
        if not resolved_now:
            break
        for v, value in resolved_now.items():
            heights[v] = value
        pending.difference_update(resolved_now)

    for v in pending:
        heights[v] = fallback
    return heights


# ---------------------------------------------------------------------------
# 三角形分割器
# ---------------------------------------------------------------------------

class SurfaceTriangulator:
    """地表三角形分割クラス"""

    def __init__(
        self,
        min_angle: float = DEFAULT_MIN_ANGLE,
        angle_fallbacks: Sequence[float] = DEFAULT_ANGLE_FALLBACKS,
        steiner_passes: int = DEFAULT_STEINER_PASSES,
        max_steiner_ratio: float = DEFAULT_MAX_STEINER_RATIO,
        lookup_cell_size: float = VERTEX_LOOKUP_CELL_SIZE
    ):
        """
        初期化

        Args:
            min_angle: 最小角度制約（度）
            angle_fallbacks: 収束しない場合に順に試す最小角度
            steiner_passes: Steiner点高度の伝播パス数
            max_steiner_ratio: 入力点数あたりのSteiner点上限（0以下で無制限）
            lookup_cell_size: 頂点再利用ルックアップのセル幅
        """
        self.min_angle = min_angle
        self.angle_fallbacks = tuple(angle_fallbacks)
        self.steiner_passes = steiner_passes
        self.max_steiner_ratio = max_steiner_ratio
        self.lookup_cell_size = lookup_cell_size

        self.stats = {
            'total_triangulations': 0,
            'last_num_points': 0,
            'last_num_triangles': 0,
            'last_steiner_points': 0,
            'last_unresolved_points': 0,
            'last_min_angle': 0.0,
            'last_time_ms': 0.0,
        }

    def triangulate(self, vertices: np.ndarray) -> TriangulationResult:
        """
        頂点から地表メッシュを生成

        Args:
            vertices: 重複除去済み頂点 (N, 3)

        Returns:
            三角形分割結果（頂点・三角形は再構築済み）

        Raises:
            TriangulationError: 三角形分割できない場合
        """
        start_time = time.perf_counter()
        vertices = as_vertex_array(vertices)

        if len(vertices) < 3:
            raise TriangulationError("At least 3 points required for triangulation")

        points_2d, raw_triangles, angle = self._triangulate_with_retry(vertices[:, [X_AXIS, Z_AXIS]])

        num_input = len(vertices)
        is_steiner = np.arange(len(points_2d)) >= num_input
        heights = np.zeros(len(points_2d), dtype=np.float64)
        heights[:num_input] = vertices[:, ELEVATION_AXIS]

        heights, weights = resolve_steiner_heights(raw_triangles, heights, is_steiner, self.steiner_passes)

        unresolved = is_steiner & (weights == UNSET_STEINER_WEIGHT)
        unresolved_count = int(np.count_nonzero(unresolved))
        if unresolved_count:
            logger.warning(
                "%d Steiner points had no known neighbours after %d passes; using neighbour fallback",
                unresolved_count, self.steiner_passes,
            )
            heights = fill_unresolved_heights(
                raw_triangles, heights, unresolved, float(np.mean(vertices[:, ELEVATION_AXIS]))
            )

        out_vertices, out_triangles = self._rebuild(points_2d, raw_triangles, heights)

        steiner_count = int(np.count_nonzero(is_steiner))
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self._update_stats(elapsed_ms, num_input, len(out_triangles), steiner_count, unresolved_count, angle)

        logger.debug(
            "Triangulated %d points (+%d Steiner) -> %d triangles at %.1f deg in %.1fms",
            num_input, steiner_count, len(out_triangles), angle, elapsed_ms,
        )

        return TriangulationResult(
            vertices=out_vertices,
            triangles=out_triangles,
            steiner_count=steiner_count,
            unresolved_count=unresolved_count,
            min_angle_used=angle,
        )

    def _triangulate_with_retry(self, points_2d: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        最小角度を段階的に緩和しながら三角形分割

        品質制約なしの分割で三角形が得られない点群（全点が同一直線上など）には
        品質制約付きの分割を試みない（Triangle がプロセスごと停止するため）。
        """
        if len(points_2d) < 3 or np.linalg.matrix_rank(points_2d - points_2d.mean(axis=0)) < 2:
            raise TriangulationError("Degenerate point set: all points lie on a line")

        base = self._run_triangle(points_2d, "Q")
        if base is None:
            raise TriangulationError("Degenerate point set: unconstrained triangulation produced no triangles")

        angles = [self.min_angle] + [a for a in self.angle_fallbacks if a < self.min_angle]
        budget = int(self.max_steiner_ratio * len(points_2d))

        for angle in angles:
            if angle <= 0:
                return base[0], base[1], 0.0

            switches = f"Qq{angle:g}"
            if budget > 0:
                switches += f"S{budget}"
            output = self._run_triangle(points_2d, switches)
            if output is None:
                continue

            steiner_count = len(output[0]) - len(points_2d)
            if budget > 0 and steiner_count >= budget:
                logger.warning(
                    "Quality constraint %.1f deg did not converge within %d Steiner points; relaxing",
                    angle, budget,
                )
                continue

            return output[0], output[1], float(angle)

        raise TriangulationError(f"Triangulation did not converge for any minimum angle {angles}")

    @staticmethod
    def _run_triangle(points_2d: np.ndarray, switches: str) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Triangle を1回実行。失敗・三角形なしは None"""
        try:
            output = tr.triangulate({'vertices': points_2d}, switches)
        except (RuntimeError, ValueError) as e:
            logger.warning("Triangulation with switches %r failed: %s", switches, e)
            return None

        if 'triangles' not in output or len(output['triangles']) == 0:
            logger.warning("Triangulation with switches %r produced no triangles", switches)
            return None

        return (
            np.asarray(output['vertices'], dtype=np.float64),
            np.asarray(output['triangles'], dtype=np.int64),
        )

    def _rebuild(
        self,
        points_2d: np.ndarray,
        triangles: np.ndarray,
        heights: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        平均高度の降順で予備平滑化し、頂点・三角形列を作り直す

        巻き順を反転して上向き法線にし、頂点は水平座標で再利用します。
        """
        # (v2, v1, v0) の順で出力
        flipped = triangles[:, ::-1]
        averages = heights[flipped].mean(axis=1)
        order = np.argsort(-averages, kind='stable')

        height_list = heights.tolist()
        raise_triangles(height_list, flipped.tolist(), order.tolist())

        lookup = VertexGridIndex(self.lookup_cell_size)
        out_vertices: List[Tuple[float, float, float]] = []
        out_triangles = np.empty((len(flipped), 3), dtype=np.int64)

        for row, t in enumerate(order.tolist()):
            for k, v in enumerate(flipped[t].tolist()):
                x, z = float(points_2d[v, 0]), float(points_2d[v, 1])
                index, created = lookup.get_or_insert(x, z)
                if created:
                    out_vertices.append((x, height_list[v], z))
                out_triangles[row, k] = index

        return np.asarray(out_vertices, dtype=np.float64).reshape(-1, 3), out_triangles

    def _update_stats(
        self,
        elapsed_ms: float,
        num_points: int,
        num_triangles: int,
        steiner_count: int,
        unresolved_count: int,
        angle: float
    ):
        """パフォーマンス統計更新"""
        self.stats['total_triangulations'] += 1
        self.stats['last_num_points'] = num_points
        self.stats['last_num_triangles'] = num_triangles
        self.stats['last_steiner_points'] = steiner_count
        self.stats['last_unresolved_points'] = unresolved_count
        self.stats['last_min_angle'] = angle
        self.stats['last_time_ms'] = elapsed_ms

    def get_performance_stats(self) -> dict:
        """パフォーマンス統計取得"""
        return self.stats.copy()


def triangulate_surface(
    vertices: np.ndarray,
    min_angle: float = DEFAULT_MIN_ANGLE
) -> TriangulationResult:
    """
    頂点から地表メッシュを生成（簡単なインターフェース）

    Args:
        vertices: 重複除去済み頂点 (N, 3)
        min_angle: 最小角度制約（度）

    Returns:
        三角形分割結果
    """
    return SurfaceTriangulator(min_angle=min_angle).triangulate(vertices)
