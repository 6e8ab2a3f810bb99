#!/usr/bin/env python3
"""
地面メッシュ供給元・書き出し・CLIのテスト
"""

import numpy as np
import trimesh

from landsculpt.cli import EXIT_FAILED, EXIT_NO_GROUND, EXIT_OK, main
from landsculpt.data_types import GroundMeshSource
from landsculpt.input.ground import ArrayGroundSource, FileGroundSource
from landsculpt.mesh.assembler import MeshAssembler
from landsculpt.mesh.export import export_mesh, to_trimesh


class TestGroundSources:
    """地面メッシュ供給元テスト"""

    def test_array_source_returns_copies(self, flat_grid):
        source = ArrayGroundSource([flat_grid])
        meshes = source.get_ground_meshes()
        meshes[0][:, 1] = -1.0

        assert isinstance(source, GroundMeshSource)
        np.testing.assert_array_equal(source.get_ground_meshes()[0], flat_grid)

    def test_numpy_files(self, tmp_path, flat_grid):
        np.save(tmp_path / "ground.npy", flat_grid)
        np.savez(tmp_path / "ground.npz", first=flat_grid, second=flat_grid[:4])

        meshes = FileGroundSource([tmp_path / "ground.npy", tmp_path / "ground.npz"]).get_ground_meshes()

        assert [len(mesh) for mesh in meshes] == [25, 25, 4]
        np.testing.assert_array_equal(meshes[0], flat_grid)

    def test_mesh_file(self, tmp_path):
        box = trimesh.creation.box(extents=(1.0, 1.0, 1.0))
        path = tmp_path / "ground.ply"
        box.export(str(path))

        meshes = FileGroundSource([path]).get_ground_meshes()

        assert len(meshes) == 1
        assert meshes[0].shape == (8, 3)

    def test_missing_file_skipped(self, tmp_path):
        assert FileGroundSource([tmp_path / "missing.npy"]).get_ground_meshes() == []


class TestExport:
    """メッシュ書き出しテスト"""

    def test_export_preserves_buffers(self, tmp_path):
        vertices = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0]])
        mesh = MeshAssembler().assemble(vertices, np.array([[0, 1, 2]]))

        converted = to_trimesh(mesh)
        np.testing.assert_array_equal(converted.vertices, vertices)
        np.testing.assert_array_equal(converted.faces, [[0, 1, 2]])

        path = export_mesh(mesh, tmp_path / "out" / "mesh.obj")
        assert path.exists()


class TestCommandLine:
    """CLIテスト"""

    def test_generate_files(self, tmp_path, bumpy_cloud):
        ground = tmp_path / "ground.npy"
        np.save(ground, bumpy_cloud)
        output = tmp_path / "terrain.ply"
        water = tmp_path / "water.ply"

        code = main([
            str(ground), '-o', str(output), '--seed', '3',
            '--water', str(water), '--water-level', '0,1',
            '--sediment-capacity', '0,003', '--quiet-stats',
        ])

        assert code == EXIT_OK
        assert output.exists()
        assert water.exists()
        loaded = trimesh.load(str(output), force='mesh', process=False)
        assert len(loaded.faces) > 0

    def test_no_ground(self, tmp_path):
        code = main([str(tmp_path / "missing.npy"), '-o', str(tmp_path / "terrain.ply")])
        assert code == EXIT_NO_GROUND
        assert not (tmp_path / "terrain.ply").exists()

    def test_collinear_ground(self, tmp_path):
        ground = tmp_path / "line.npy"
        np.save(ground, np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 0.0], [2.0, 2.0, 0.0], [3.0, 0.0, 0.0]]))

        code = main([str(ground), '-o', str(tmp_path / "terrain.ply")])

        assert code == EXIT_FAILED
        assert not (tmp_path / "terrain.ply").exists()
