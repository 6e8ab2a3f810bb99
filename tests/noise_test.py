#!/usr/bin/env python3
"""
高度帯別ノイズのテスト
"""

import pytest
import numpy as np

from landsculpt.config import NoiseConfig
from landsculpt.constants import BAND_MULTIPLIERS, DEFAULT_NOISE_FLOOR_MARGIN
from landsculpt.data_types import ElevationBounds
from landsculpt.mesh.noise import HeightCurve, NoiseLayer, band_multipliers


class TestBandMultipliers:
    """高度帯倍率テスト"""

    def test_band_lookup(self):
        bounds = ElevationBounds(0.0, 1.0)
        heights = np.array([0.0, 0.5, 0.52, 1.0])
        np.testing.assert_allclose(band_multipliers(heights, bounds), [0.02, 1.2, 1.2, 0.02])

    def test_above_range_uses_last_band(self):
        bounds = ElevationBounds(0.0, 1.0)
        assert band_multipliers(np.array([1.5]), bounds)[0] == BAND_MULTIPLIERS[-1]

    def test_flat_range(self):
        bounds = ElevationBounds(2.0, 2.0)
        np.testing.assert_allclose(band_multipliers(np.array([2.0, 2.0]), bounds), [0.02, 0.02])

    def test_twenty_bands(self):
        assert len(BAND_MULTIPLIERS) == 20


class TestHeightCurve:
    """高度応答カーブテスト"""

    def test_interpolation(self):
        curve = HeightCurve([(0.0, 0.0), (1.0, 2.0)])
        np.testing.assert_allclose(curve(np.array([0.0, 0.25, 0.5, 1.0])), [0.0, 0.5, 1.0, 2.0])

    def test_clamped_outside_keys(self):
        curve = HeightCurve([(0.2, 1.0), (0.8, 3.0)])
        np.testing.assert_allclose(curve(np.array([0.0, 1.0])), [1.0, 3.0])

    def test_default_is_constant(self):
        np.testing.assert_allclose(HeightCurve()(np.linspace(0.0, 1.0, 5)), np.ones(5))

    def test_empty_keys(self):
        with pytest.raises(ValueError):
            HeightCurve([])


class TestNoiseLayer:
    """ノイズ層テスト"""

    def test_terrain_not_lifted_without_margin(self, bumpy_cloud):
        """マージン0では最低高度が下がらない（浮き上がりも吸収される）"""
        vertices = bumpy_cloud.copy()
        before_min = vertices[:, 1].min()

        NoiseLayer(floor_margin=0.0, seed=3).apply(vertices)

        assert vertices[:, 1].min() >= before_min - 1e-9

    def test_default_settings_keep_floor(self, bumpy_cloud):
        """既定設定では最低高度がほぼ下がらない"""
        vertices = bumpy_cloud.copy()
        before_min = vertices[:, 1].min()
        layer = NoiseLayer(seed=3)

        bounds = layer.apply(vertices)

        assert layer.floor_margin == DEFAULT_NOISE_FLOOR_MARGIN
        assert DEFAULT_NOISE_FLOOR_MARGIN <= 1e-3
        assert bounds.minimum == pytest.approx(before_min)
        assert vertices[:, 1].min() >= before_min - 1e-3 - 1e-9

    def test_default_config_keeps_floor(self, bumpy_cloud):
        vertices = bumpy_cloud.copy()
        before_min = vertices[:, 1].min()
        config = NoiseConfig(seed=3)

        NoiseLayer(floor_margin=config.floor_margin, seed=config.seed).apply(vertices)

        assert vertices[:, 1].min() >= before_min - 1e-3 - 1e-9

    def test_lowest_displacement_is_removed(self, bumpy_cloud):
        """全体を最小変位+マージンだけ下げる"""
        vertices = bumpy_cloud.copy()
        layer = NoiseLayer(seed=11)
        bounds = ElevationBounds.from_vertices(vertices)
        displacement = layer.displacements(vertices, bounds)

        original = vertices[:, 1].copy()
        layer.apply(vertices)

        expected = original + displacement - displacement.min() - layer.floor_margin
        np.testing.assert_allclose(vertices[:, 1], expected, atol=1e-12)
        assert layer.stats['last_min_displacement'] == pytest.approx(displacement.min())

    def test_horizontal_coordinates_unchanged(self, bumpy_cloud):
        vertices = bumpy_cloud.copy()
        NoiseLayer(seed=1).apply(vertices)
        np.testing.assert_array_equal(vertices[:, [0, 2]], bumpy_cloud[:, [0, 2]])

    def test_seed_determinism(self, bumpy_cloud):
        """同じシードなら同じ結果"""
        first, second, third = bumpy_cloud.copy(), bumpy_cloud.copy(), bumpy_cloud.copy()
        NoiseLayer(seed=5).apply(first)
        NoiseLayer(seed=5).apply(second)
        NoiseLayer(seed=6).apply(third)

        np.testing.assert_array_equal(first, second)
        assert not np.allclose(first, third)

    def test_zero_curve_only_applies_margin(self, bumpy_cloud):
        """応答0のカーブでは変位なし"""
        vertices = bumpy_cloud.copy()
        NoiseLayer(height_curve=HeightCurve([(0.0, 0.0), (1.0, 0.0)]), floor_margin=0.2).apply(vertices)
        np.testing.assert_allclose(vertices[:, 1], bumpy_cloud[:, 1] - 0.2)

    def test_displacement_shape(self, bumpy_cloud):
        bounds = ElevationBounds.from_vertices(bumpy_cloud)
        displacement = NoiseLayer(seed=2).displacements(bumpy_cloud, bounds)
        assert displacement.shape == (len(bumpy_cloud),)
        assert np.all(np.isfinite(displacement))

    def test_empty_buffer(self):
        with pytest.raises(ValueError):
            NoiseLayer().apply(np.empty((0, 3)))
