#!/usr/bin/env python3
"""
共通定数・設定値

地形生成パイプライン全体で使用される既定値や閾値を一元管理し、
モジュール間の循環依存を解消します。
"""

from typing import Final, Tuple

# =============================================================================
# 頂点収集・重複除去
# =============================================================================

# 水平面での重複判定許容値（メートル）
DEFAULT_DEDUP_PRECISION: Final[float] = 0.011

# =============================================================================
# 三角形分割
# =============================================================================

DEFAULT_MIN_ANGLE: Final[float] = 8.0                 # 度
DEFAULT_ANGLE_FALLBACKS: Final[Tuple[float, ...]] = (5.0, 0.0)
DEFAULT_STEINER_PASSES: Final[int] = 2
DEFAULT_MAX_STEINER_RATIO: Final[float] = 4.0         # 入力点数あたりのSteiner点上限

# 頂点重み（Steiner点の高度伝播）
ORIGINAL_VERTEX_WEIGHT: Final[float] = -1.0
UNSET_STEINER_WEIGHT: Final[float] = 0.0

# 水平座標ルックアップのグリッドセル幅
VERTEX_LOOKUP_CELL_SIZE: Final[float] = 0.01

# =============================================================================
# 平滑化
# =============================================================================

# これ未満の平均高度は「処理済み」とみなす
SMOOTHING_FLOOR: Final[float] = -10000.0

# =============================================================================
# ノイズ
# =============================================================================

DEFAULT_NOISE_MODIFIER: Final[float] = 0.18
# ノイズ適用後に全体から追加で差し引く量（最低高度の低下はこの値以内）
DEFAULT_NOISE_FLOOR_MARGIN: Final[float] = 1e-3

# 高度帯ごとのノイズ倍率（中央で最大、両端で減衰）
BAND_MULTIPLIERS: Final[Tuple[float, ...]] = (
    0.02, 0.047, 0.1, 0.18, 0.3, 0.5, 0.69, 0.9, 1.0, 1.2,
    1.2, 1.0, 0.9, 0.69, 0.5, 0.3, 0.18, 0.1, 0.047, 0.02,
)

# 2周波数のコヒーレントノイズ (振幅, x周波数, z周波数)
DETAIL_NOISE_LAYER: Final[Tuple[float, float, float]] = (0.3, 150.0, 300.0)
BASE_NOISE_LAYER: Final[Tuple[float, float, float]] = (2.0, 10.0, 10.0)

# =============================================================================
# 侵食
# =============================================================================

DEFAULT_SEDIMENT_CAPACITY: Final[float] = 0.0023
DEFAULT_DROPLET_LIFESPAN: Final[int] = 20
DEFAULT_BASIN_MARGIN: Final[float] = 0.1
DEFAULT_EVAPORATION_DEPOSIT_OFFSET: Final[float] = 5.0
DEFAULT_EVAPORATION_DECAY_OFFSET: Final[float] = 1.0

# =============================================================================
# シェーディング・水面
# =============================================================================

DEFAULT_SNOW_HEIGHT_THRESHOLD: Final[float] = 0.45
DEFAULT_SAND_HEIGHT_THRESHOLD: Final[float] = 0.31
DEFAULT_WATER_LEVEL_FRACTION: Final[float] = 0.3
