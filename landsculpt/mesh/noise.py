#!/usr/bin/env python3
"""
高度帯別プロシージャルノイズ

高度範囲を20の帯に分け、中間高度ほど強くなる倍率でコヒーレントノイズを
加算します。加算後は最小変位ぶん全体を下げ、地形が元の足場から浮き上がら
ないようにします。ノイズは OpenSimplex でシード固定します。
"""

from typing import Callable, Optional, Sequence, Tuple, Union
import numpy as np
from opensimplex import OpenSimplex

from landsculpt import get_logger
from landsculpt.constants import (
    BAND_MULTIPLIERS, BASE_NOISE_LAYER, DETAIL_NOISE_LAYER,
    DEFAULT_NOISE_MODIFIER, DEFAULT_NOISE_FLOOR_MARGIN,
)
from landsculpt.data_types import ELEVATION_AXIS, X_AXIS, Z_AXIS, ElevationBounds

logger = get_logger(__name__)


class HeightCurve:
    """正規化高度 [0, 1] -> 倍率 の折れ線カーブ

    キー範囲外は端の値で一定になります。
    """

    def __init__(self, keys: Sequence[Tuple[float, float]] = ((0.0, 1.0), (1.0, 1.0))):
        if len(keys) == 0:
            raise ValueError("HeightCurve needs at least one key")
        ordered = sorted((float(t), float(v)) for t, v in keys)
        self.times = np.array([t for t, _ in ordered])
        self.values = np.array([v for _, v in ordered])

    def __call__(self, t: np.ndarray) -> np.ndarray:
        return np.interp(t, self.times, self.values)

    def __repr__(self) -> str:
        return f"HeightCurve({list(zip(self.times.tolist(), self.values.tolist()))})"


CurveLike = Union[HeightCurve, Callable[[np.ndarray], np.ndarray]]


def band_multipliers(
    heights: np.ndarray,
    bounds: ElevationBounds,
    multipliers: Sequence[float] = BAND_MULTIPLIERS
) -> np.ndarray:
    """
    高度ごとの帯倍率

    帯 i の上端は min + (i + 1) / n * range。高度以上となる最初の上端の帯を使い、
    丸め誤差で最上端を超えた場合は最後の帯とします。
    """
    multipliers = np.asarray(multipliers, dtype=np.float64)
    count = len(multipliers)
    breakpoints = bounds.minimum + (np.arange(count) + 1.0) / count * bounds.range
    band = np.searchsorted(breakpoints, heights, side='left')
    return multipliers[np.minimum(band, count - 1)]


class NoiseLayer:
    """高度帯別ノイズ層クラス"""

    def __init__(
        self,
        noise_modifier: float = DEFAULT_NOISE_MODIFIER,
        floor_margin: float = DEFAULT_NOISE_FLOOR_MARGIN,
        height_curve: Optional[CurveLike] = None,
        seed: int = 0,
        detail_layer: Tuple[float, float, float] = DETAIL_NOISE_LAYER,
        base_layer: Tuple[float, float, float] = BASE_NOISE_LAYER,
        multipliers: Sequence[float] = BAND_MULTIPLIERS
    ):
        """
        初期化

        Args:
            noise_modifier: ノイズ全体の強さ
            floor_margin: 最小変位に加えて全体から差し引く量
            height_curve: 正規化高度に対する応答カーブ
            seed: ノイズのシード
            detail_layer: 細部ノイズ (振幅, x周波数, z周波数)
            base_layer: 低周波ノイズ (振幅, x周波数, z周波数)
            multipliers: 高度帯ごとの倍率
        """
        self.noise_modifier = noise_modifier
        self.floor_margin = floor_margin
        self.height_curve: CurveLike = height_curve if height_curve is not None else HeightCurve()
        self.seed = seed
        self.detail_layer = detail_layer
        self.base_layer = base_layer
        self.multipliers = tuple(multipliers)
        self._simplex = OpenSimplex(seed=seed)

        self.stats = {
            'last_min_displacement': 0.0,
            'last_max_displacement': 0.0,
        }

    def _sample(self, x: float, z: float, layer: Tuple[float, float, float]) -> float:
        """[0, 1] に写したノイズ × 振幅"""
        amplitude, freq_x, freq_z = layer
        return amplitude * (self._simplex.noise2(x * freq_x, z * freq_z) + 1.0) * 0.5

    def coherent_noise(self, vertices: np.ndarray) -> np.ndarray:
        """2周波数ノイズの重み付き和 (N,)"""
        values = np.empty(len(vertices), dtype=np.float64)
        for i, (x, z) in enumerate(vertices[:, [X_AXIS, Z_AXIS]].tolist()):
            values[i] = self._sample(x, z, self.detail_layer) + self._sample(x, z, self.base_layer)
        return values

    def displacements(self, vertices: np.ndarray, bounds: ElevationBounds) -> np.ndarray:
        """頂点ごとの変位 (N,)"""
        heights = vertices[:, ELEVATION_AXIS]
        curve = np.asarray(self.height_curve(bounds.normalize(heights)), dtype=np.float64)
        bands = band_multipliers(heights, bounds, self.multipliers)
        return self.noise_modifier * curve * bands * self.coherent_noise(vertices)

    def apply(self, vertices: np.ndarray) -> ElevationBounds:
        """
        ノイズを加算（頂点はその場で更新）

        Args:
            vertices: 頂点 (N, 3)

        Returns:
            ノイズ適用前に再計算した高度範囲
        """
        if len(vertices) == 0:
            raise ValueError("Cannot apply noise to an empty vertex buffer")

        bounds = ElevationBounds.from_vertices(vertices)
        displacement = self.displacements(vertices, bounds)
        smallest = float(np.min(displacement))

        vertices[:, ELEVATION_AXIS] += displacement
        vertices[:, ELEVATION_AXIS] -= smallest + self.floor_margin

        self.stats['last_min_displacement'] = smallest
        self.stats['last_max_displacement'] = float(np.max(displacement))
        logger.debug(
            "Applied noise: displacement %.4f..%.4f, lowered by %.4f",
            smallest, self.stats['last_max_displacement'], smallest + self.floor_margin,
        )
        return bounds
