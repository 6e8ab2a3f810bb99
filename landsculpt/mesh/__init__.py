"""
landsculpt 地形メッシュ生成フェーズ

分類済み地面頂点から、様式化された1枚の地形メッシュを生成します。

処理フロー:
1. 隠れ頂点の除去 (collector.py)
2. 品質付きDelaunay三角形分割とSteiner点の高度伝播 (delaunay.py)
3. 貪欲平滑化 (smoothing.py)
4. 高度帯別ノイズ (noise.py)
5. 水滴侵食 (erosion.py)
6. 組み立て (assembler.py)
"""

# 頂点収集
from .collector import (
    NoGroundSurfaceError,
    VertexCollector,
    collect_vertices,
    remove_hidden_vertices
)

# 三角形分割
from .delaunay import (
    SurfaceTriangulator,
    TriangulationError,
    TriangulationResult,
    resolve_steiner_heights,
    triangulate_surface
)

# 平滑化
from .smoothing import (
    MeshSmoother,
    smooth_mesh,
    triangle_average_heights
)

# ノイズ
from .noise import (
    HeightCurve,
    NoiseLayer,
    band_multipliers
)

# 侵食
from .erosion import (
    Droplet,
    ErosionSimulator,
    ErosionStats,
    ErosionStep
)

# 組み立て・書き出し
from .assembler import MeshAssembler
from .export import export_mesh
from .index import VertexGridIndex, build_vertex_neighbors
from .utils import compute_vertex_normals, subdivide_triangles

# パイプライン
from .pipeline import GenerationResult, TerrainGenerator, generate_terrain

__all__ = [
    # 頂点収集
    'NoGroundSurfaceError',
    'VertexCollector',
    'collect_vertices',
    'remove_hidden_vertices',

    # 三角形分割
    'SurfaceTriangulator',
    'TriangulationError',
    'TriangulationResult',
    'resolve_steiner_heights',
    'triangulate_surface',

    # 平滑化
    'MeshSmoother',
    'smooth_mesh',
    'triangle_average_heights',

    # ノイズ
    'HeightCurve',
    'NoiseLayer',
    'band_multipliers',

    # 侵食
    'Droplet',
    'ErosionSimulator',
    'ErosionStats',
    'ErosionStep',

    # 組み立て
    'MeshAssembler',
    'export_mesh',
    'VertexGridIndex',
    'build_vertex_neighbors',
    'compute_vertex_normals',
    'subdivide_triangles',

    # パイプライン
    'GenerationResult',
    'TerrainGenerator',
    'generate_terrain'
]
