#!/usr/bin/env python3
"""
空間インデックス

水平座標による頂点の再利用判定と、メッシュ隣接関係の構築を提供します。
"""

import math
from typing import Dict, List, Tuple
import numpy as np

from landsculpt.constants import VERTEX_LOOKUP_CELL_SIZE


class VertexGridIndex:
    """量子化した (x, z) をキーとする空間ハッシュ

    同じセル内では座標の完全一致で同一頂点と判定します。
    線形探索と同じ結果を O(1) で返します。
    """

    def __init__(self, cell_size: float = VERTEX_LOOKUP_CELL_SIZE):
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.cell_size = cell_size
        self._cells: Dict[Tuple[int, int], List[Tuple[float, float, int]]] = {}
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def _key(self, x: float, z: float) -> Tuple[int, int]:
        return (math.floor(x / self.cell_size), math.floor(z / self.cell_size))

    def find(self, x: float, z: float) -> int:
        """登録済みならインデックス、なければ -1"""
        for cx, cz, index in self._cells.get(self._key(x, z), ()):
            if cx == x and cz == z:
                return index
        return -1

    def insert(self, x: float, z: float) -> int:
        """新しい頂点として登録し、そのインデックスを返す"""
        index = self._count
        self._cells.setdefault(self._key(x, z), []).append((x, z, index))
        self._count += 1
        return index

    def get_or_insert(self, x: float, z: float) -> Tuple[int, bool]:
        """(インデックス, 新規かどうか)"""
        index = self.find(x, z)
        if index >= 0:
            return index, False
        return self.insert(x, z), True


def build_vertex_neighbors(triangles: np.ndarray, num_vertices: int) -> List[np.ndarray]:
    """
    各頂点の隣接頂点リストを構築

    三角形リストを先頭から走査したときに最初に現れた順で並びます。
    （同じ高さの隣接頂点が複数ある場合は先に見つかった方が優先される）

    Args:
        triangles: 三角形インデックス (M, 3)
        num_vertices: 頂点数

    Returns:
        頂点ごとの隣接インデックス配列
    """
    neighbors: List[Dict[int, None]] = [dict() for _ in range(num_vertices)]
    for tri in np.asarray(triangles, dtype=np.int64).tolist():
        for vertex in tri:
            seen = neighbors[vertex]
            for other in tri:
                if other != vertex and other not in seen:
                    seen[other] = None
    return [np.fromiter(seen.keys(), dtype=np.int64, count=len(seen)) for seen in neighbors]
