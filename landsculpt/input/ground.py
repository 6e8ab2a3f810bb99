#!/usr/bin/env python3
"""
地面メッシュ供給元

外部の分類処理で「地面」と判定されたメッシュの頂点バッファを提供します。
メモリ上の配列と、ファイル（numpy / trimesh 対応形式）の2種類に対応します。
"""

from pathlib import Path
from typing import Iterable, List, Sequence, Union
import numpy as np
import trimesh

from landsculpt import get_logger
from landsculpt.data_types import ArrayLike, as_vertex_array

logger = get_logger(__name__)

PathLike = Union[str, Path]

NUMPY_SUFFIXES = ('.npy', '.npz')


class ArrayGroundSource:
    """メモリ上の頂点バッファを返す供給元"""

    def __init__(self, meshes: Iterable[ArrayLike]):
        self._meshes = [as_vertex_array(mesh) for mesh in meshes]

    def get_ground_meshes(self) -> List[np.ndarray]:
        return [mesh.copy() for mesh in self._meshes]


class FileGroundSource:
    """ファイルから地面メッシュを読み込む供給元

    .npy / .npz は (N, 3) 配列として、それ以外は trimesh で読み込みます。
    .npz の場合は含まれる全配列をそれぞれ1メッシュとして扱います。
    """

    def __init__(self, paths: Sequence[PathLike]):
        self.paths = [Path(path) for path in paths]

    def get_ground_meshes(self) -> List[np.ndarray]:
        meshes: List[np.ndarray] = []
        for path in self.paths:
            if not path.exists():
                logger.warning("Ground mesh file not found: %s", path)
                continue
            loaded = self._load(path)
            logger.debug("Loaded %d ground meshes from %s", len(loaded), path)
            meshes.extend(loaded)
        return meshes

    def _load(self, path: Path) -> List[np.ndarray]:
        suffix = path.suffix.lower()
        if suffix == '.npy':
            return [as_vertex_array(np.load(path))]
        if suffix == '.npz':
            with np.load(path) as archive:
                return [as_vertex_array(archive[key]) for key in archive.files]

        loaded = trimesh.load(str(path), force='mesh')
        return [np.asarray(loaded.vertices, dtype=np.float64)]
