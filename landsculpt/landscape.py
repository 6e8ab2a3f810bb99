#!/usr/bin/env python3
"""
地形付随要素

完成メッシュの高度範囲から、着色しきい値（雪・砂）と水面メッシュを作ります。
"""

from dataclasses import dataclass
from typing import Optional
import numpy as np

from landsculpt import get_logger
from landsculpt.config import ShadingConfig, WaterConfig, parse_number
from landsculpt.data_types import ELEVATION_AXIS, ElevationBounds, TerrainMesh

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShaderThresholds:
    """着色しきい値（ワールド高度）"""
    snow_height: float
    sand_height: float


def compute_shader_thresholds(mesh: TerrainMesh, config: Optional[ShadingConfig] = None) -> ShaderThresholds:
    """雪: max - 割合 * range、砂: min + 割合 * range"""
    config = config or ShadingConfig()
    bounds = mesh.bounds
    return ShaderThresholds(
        snow_height=bounds.maximum - config.snow_height_threshold * bounds.range,
        sand_height=bounds.minimum + config.sand_height_threshold * bounds.range,
    )


class WaterPlane:
    """地形と同じ三角形構成を持つ水平な水面"""

    def __init__(self, mesh: TerrainMesh, config: Optional[WaterConfig] = None):
        self.mesh = mesh
        self.config = config or WaterConfig()
        self.level = mesh.bounds.level_at(self.config.level_fraction)

    def update_level(self, text: str) -> bool:
        """
        水位を min + 入力値 に変更

        解釈できない入力は無視して以前の水位を維持します。
        """
        try:
            offset = parse_number(text)
        except (TypeError, ValueError):
            logger.warning("Rejected water level %r (keeping %.3f)", text, self.level)
            return False
        self.level = self.mesh.bounds.minimum + offset
        return True

    def build(self) -> TerrainMesh:
        """水位に平坦化した頂点と地形の三角形を複製したメッシュ"""
        vertices = np.array(self.mesh.vertices, dtype=np.float64)
        vertices[:, ELEVATION_AXIS] = self.level
        triangles = np.array(self.mesh.triangles, dtype=np.int64)
        normals = np.zeros_like(vertices)
        normals[:, ELEVATION_AXIS] = 1.0
        return TerrainMesh(
            vertices=vertices,
            triangles=triangles,
            bounds=ElevationBounds(self.level, self.level),
            vertex_normals=normals,
        )
