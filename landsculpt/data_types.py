#!/usr/bin/env python3
"""
共通型定義

パイプライン全体で使用される型定義を一元管理し、
モジュール間の循環依存を解消します。

座標系: 頂点は (x, y, z) の行。x, z が水平面、y が高度。
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple, Union, runtime_checkable
import numpy as np

# 型エイリアス
ArrayLike = Union[np.ndarray, List, Tuple]

# 列インデックス
X_AXIS = 0
ELEVATION_AXIS = 1
Z_AXIS = 2


# =============================================================================
# プロトコル定義（インターフェース）
# =============================================================================

@runtime_checkable
class GroundMeshSource(Protocol):
    """地面メッシュ供給元のプロトコル

    外部のメッシュ分類処理が「地面」と判定した頂点バッファを返します。
    """

    def get_ground_meshes(self) -> List[np.ndarray]:
        """地面メッシュの頂点バッファ (N_i, 3) のリスト"""
        ...


# =============================================================================
# 値オブジェクト
# =============================================================================

@dataclass(frozen=True)
class ElevationBounds:
    """高度範囲 (min, max)

    ステージ間で明示的に受け渡し、実行間で状態を共有しない。
    """
    minimum: float
    maximum: float

    @property
    def range(self) -> float:
        """max - min"""
        return self.maximum - self.minimum

    def normalize(self, heights: np.ndarray) -> np.ndarray:
        """高度を [0, 1] に正規化（範囲ゼロなら全て0）"""
        heights = np.asarray(heights, dtype=np.float64)
        if self.range <= 0.0:
            return np.zeros_like(heights)
        return (heights - self.minimum) / self.range

    def level_at(self, fraction: float) -> float:
        """min + fraction * range"""
        return self.minimum + fraction * self.range

    @staticmethod
    def from_vertices(vertices: np.ndarray) -> 'ElevationBounds':
        """頂点バッファ全体から再計算"""
        if len(vertices) == 0:
            raise ValueError("Cannot compute elevation bounds of an empty vertex buffer")
        heights = vertices[:, ELEVATION_AXIS]
        return ElevationBounds(float(np.min(heights)), float(np.max(heights)))


@dataclass
class TerrainMesh:
    """完成した地形メッシュ"""
    vertices: np.ndarray       # 頂点座標 (N, 3) - (x, y, z)
    triangles: np.ndarray      # 三角形インデックス (M, 3)
    bounds: ElevationBounds
    vertex_normals: Optional[np.ndarray] = None  # 頂点法線 (N, 3)

    @property
    def num_vertices(self) -> int:
        """頂点数を取得"""
        return len(self.vertices)

    @property
    def num_triangles(self) -> int:
        """三角形数を取得"""
        return len(self.triangles)

    @property
    def index_buffer(self) -> np.ndarray:
        """3個ずつ並んだフラットなインデックスバッファ"""
        return self.triangles.reshape(-1)


def as_vertex_array(vertices: ArrayLike) -> np.ndarray:
    """入力を (N, 3) float64 配列に変換"""
    array = np.asarray(vertices, dtype=np.float64)
    if array.size == 0:
        return array.reshape(0, 3)
    if array.ndim != 2 or array.shape[1] != 3:
        raise ValueError(f"Vertices must be (N, 3), got {array.shape}")
    return array
