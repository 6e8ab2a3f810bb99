#!/usr/bin/env python3
"""
地形生成パイプラインの統合テスト
"""

import pytest
import numpy as np

from landsculpt.config import LandsculptConfig
from landsculpt.input.ground import ArrayGroundSource
from landsculpt.mesh.delaunay import TriangulationError
from landsculpt.mesh.pipeline import GenerationResult, TerrainGenerator, generate_terrain
from landsculpt.performance.profiler import StageProfiler


@pytest.fixture
def smoothing_only_config() -> LandsculptConfig:
    """ノイズ・侵食を無効化した設定"""
    config = LandsculptConfig()
    config.noise.noise_modifier = 0.0
    config.noise.floor_margin = 0.0
    config.enable_erosion = False
    config.diagnostics = False
    return config


class TestTerrainGenerator:
    """TerrainGenerator テスト"""

    def test_generates_valid_mesh(self, bumpy_cloud, seeded_config):
        generator = TerrainGenerator(seeded_config)
        result = generator.generate(ArrayGroundSource([bumpy_cloud]))

        assert isinstance(result, GenerationResult)
        mesh = result.mesh
        assert mesh.num_vertices >= len(bumpy_cloud)
        assert mesh.num_triangles > 0
        assert mesh.triangles.min() >= 0
        assert mesh.triangles.max() < mesh.num_vertices
        assert np.all(np.isfinite(mesh.vertices))
        assert mesh.bounds.minimum == pytest.approx(mesh.vertices[:, 1].min())
        assert mesh.bounds.maximum == pytest.approx(mesh.vertices[:, 1].max())
        assert mesh.vertex_normals.shape == mesh.vertices.shape
        assert result.erosion is not None
        assert result.erosion.droplets == mesh.num_vertices
        assert generator.result is result

    def test_result_is_read_only(self, bumpy_cloud, seeded_config):
        result = TerrainGenerator(seeded_config).generate(ArrayGroundSource([bumpy_cloud]))
        with pytest.raises(ValueError):
            result.mesh.vertices[0, 1] = 0.0

    def test_input_not_modified(self, bumpy_cloud, seeded_config):
        original = bumpy_cloud.copy()
        generate_terrain(bumpy_cloud, seeded_config)
        np.testing.assert_array_equal(bumpy_cloud, original)

    def test_depressed_centre_is_filled(self, flat_grid, smoothing_only_config):
        """周囲より低い点は持ち上がるが周囲を超えない"""
        height, depth = 1.0, 0.6
        centre = int(np.flatnonzero((flat_grid[:, 0] == 2.0) & (flat_grid[:, 2] == 2.0))[0])
        flat_grid[centre, 1] = height - depth

        result = generate_terrain(flat_grid, smoothing_only_config)

        vertices = result.mesh.vertices
        index = int(np.flatnonzero((vertices[:, 0] == 2.0) & (vertices[:, 2] == 2.0))[0])
        assert vertices[index, 1] > height - depth
        assert vertices[index, 1] >= height - depth / 3.0 - 1e-9
        assert vertices[index, 1] <= height + 1e-9
        assert result.mesh.bounds.maximum == pytest.approx(height)

    def test_no_ground_returns_none(self, seeded_config):
        generator = TerrainGenerator(seeded_config)
        assert generator.generate(ArrayGroundSource([])) is None
        assert generator.generate(None) is None
        assert generator.result is None

    def test_generate_requires_reset(self, bumpy_cloud, seeded_config):
        """リセットまでは保持中の結果を返す"""
        generator = TerrainGenerator(seeded_config)
        source = ArrayGroundSource([bumpy_cloud])
        first = generator.generate(source)

        assert generator.generate(source) is first

        generator.reset()
        assert generator.result is None
        second = generator.generate(source)
        assert second is not first
        np.testing.assert_array_equal(second.mesh.vertices, first.mesh.vertices)

    def test_config_snapshot(self, bumpy_cloud, seeded_config):
        """生成中の設定オブジェクトは呼び出し側と共有しない"""
        generator = TerrainGenerator(seeded_config)
        generator.generate(ArrayGroundSource([bumpy_cloud]))
        assert generator.config is seeded_config
        assert seeded_config.noise.seed == 7

    def test_erosion_disabled(self, bumpy_cloud, seeded_config):
        seeded_config.enable_erosion = False
        result = generate_terrain(bumpy_cloud, seeded_config)

        assert result.erosion is None
        assert result.profile.get_stage("erosion") is None

    def test_subdivision_before_erosion(self, bumpy_cloud, seeded_config):
        plain = generate_terrain(bumpy_cloud, seeded_config)
        seeded_config.erosion.subdivide_passes = 1
        subdivided = generate_terrain(bumpy_cloud, seeded_config)

        assert subdivided.mesh.num_triangles == 3 * plain.mesh.num_triangles
        assert subdivided.mesh.num_vertices == plain.mesh.num_vertices + plain.mesh.num_triangles

    def test_stage_profile(self, bumpy_cloud, seeded_config):
        result = generate_terrain(bumpy_cloud, seeded_config)
        report = result.profile.get_report()

        assert list(report['stages']) == [
            'hidden_vertices', 'triangulation', 'smoothing', 'noise', 'erosion', 'assembly'
        ]
        assembly = result.profile.get_stage('assembly')
        assert assembly.num_vertices == result.mesh.num_vertices
        assert assembly.num_triangles == result.mesh.num_triangles
        assert report['total_ms'] >= 0.0

    def test_shader_thresholds(self, bumpy_cloud, seeded_config):
        result = generate_terrain(bumpy_cloud, seeded_config)
        bounds = result.mesh.bounds

        assert result.shader_thresholds.snow_height == pytest.approx(bounds.maximum - 0.45 * bounds.range)
        assert result.shader_thresholds.sand_height == pytest.approx(bounds.minimum + 0.31 * bounds.range)

    def test_collinear_ground_fails(self, seeded_config):
        """一直線上の地面は三角形分割エラーとして扱う"""
        collinear = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 0.0], [2.0, 2.0, 0.0], [3.0, 0.0, 0.0]])
        generator = TerrainGenerator(seeded_config)

        with pytest.raises(TriangulationError):
            generator.generate(ArrayGroundSource([collinear]))
        assert generator.result is None


class TestStageProfiler:

    def test_repeated_stage(self):
        profiler = StageProfiler()
        for count in (3, 5):
            with profiler.measure_stage("smoothing") as counts:
                counts['num_vertices'] = count

        assert profiler.phase_timers["smoothing"].call_count == 2
        assert profiler.phase_timers["smoothing"].total_time >= 0.0
        assert profiler.get_stage("smoothing").num_vertices == 5
        assert profiler.total_ms == pytest.approx(profiler.phase_timers["smoothing"].total_time)
