#!/usr/bin/env python3
"""
着色しきい値と水面のテスト
"""

import pytest
import numpy as np

from landsculpt.config import ShadingConfig, WaterConfig
from landsculpt.data_types import ElevationBounds
from landsculpt.landscape import WaterPlane, compute_shader_thresholds
from landsculpt.mesh.assembler import MeshAssembler


@pytest.fixture
def mesh():
    vertices = np.array([
        [0.0, 2.0, 0.0], [1.0, 4.0, 0.0], [0.0, 12.0, 1.0], [1.0, 7.0, 1.0],
    ])
    triangles = np.array([[2, 1, 0], [2, 3, 1]])
    return MeshAssembler().assemble(vertices, triangles)


class TestElevationBounds:

    def test_normalize(self):
        bounds = ElevationBounds(2.0, 12.0)
        np.testing.assert_allclose(bounds.normalize(np.array([2.0, 7.0, 12.0])), [0.0, 0.5, 1.0])
        assert bounds.level_at(0.3) == pytest.approx(5.0)

    def test_flat_range(self):
        bounds = ElevationBounds(3.0, 3.0)
        np.testing.assert_array_equal(bounds.normalize(np.array([3.0, 3.0])), [0.0, 0.0])

    def test_empty_vertices(self):
        with pytest.raises(ValueError):
            ElevationBounds.from_vertices(np.empty((0, 3)))


class TestShaderThresholds:

    def test_default_thresholds(self, mesh):
        thresholds = compute_shader_thresholds(mesh)
        assert thresholds.snow_height == pytest.approx(12.0 - 0.45 * 10.0)
        assert thresholds.sand_height == pytest.approx(2.0 + 0.31 * 10.0)

    def test_custom_thresholds(self, mesh):
        thresholds = compute_shader_thresholds(mesh, ShadingConfig(snow_height_threshold=0.1, sand_height_threshold=0.5))
        assert thresholds.snow_height == pytest.approx(11.0)
        assert thresholds.sand_height == pytest.approx(7.0)


class TestWaterPlane:

    def test_default_level(self, mesh):
        assert WaterPlane(mesh).level == pytest.approx(2.0 + 0.3 * 10.0)
        assert WaterPlane(mesh, WaterConfig(level_fraction=0.5)).level == pytest.approx(7.0)

    def test_update_level(self, mesh):
        water = WaterPlane(mesh)
        assert water.update_level('1,5')
        assert water.level == pytest.approx(3.5)

    def test_rejected_level_keeps_previous(self, mesh):
        water = WaterPlane(mesh)
        previous = water.level
        assert not water.update_level('high')
        assert water.level == previous

    def test_build(self, mesh):
        water = WaterPlane(mesh)
        plane = water.build()

        np.testing.assert_array_equal(plane.triangles, mesh.triangles)
        np.testing.assert_array_equal(plane.vertices[:, [0, 2]], mesh.vertices[:, [0, 2]])
        assert np.all(plane.vertices[:, 1] == water.level)
        assert plane.bounds.range == 0.0
        np.testing.assert_array_equal(plane.vertex_normals[:, 1], np.ones(mesh.num_vertices))
