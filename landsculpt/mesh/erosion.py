#!/usr/bin/env python3
"""
水滴による侵食シミュレーション

メッシュの隣接関係だけを使い、土砂を運ぶ水滴を下り方向へ移動させて
侵食・堆積を行います（ラスタグリッドは使わない）。
各水滴の経路はそれ以前の水滴が変えた地形に依存するため、厳密に逐次実行します。
"""

from dataclasses import dataclass, field
from typing import List, MutableSequence, Optional, Sequence
import numpy as np

from landsculpt import get_logger
from landsculpt.constants import (
    DEFAULT_SEDIMENT_CAPACITY, DEFAULT_DROPLET_LIFESPAN, DEFAULT_BASIN_MARGIN,
    DEFAULT_EVAPORATION_DEPOSIT_OFFSET, DEFAULT_EVAPORATION_DECAY_OFFSET,
)
from landsculpt.data_types import ELEVATION_AXIS
from .index import build_vertex_neighbors

logger = get_logger(__name__)


@dataclass
class Droplet:
    """水滴の状態（1軌跡の間だけ存在する）"""
    position: int
    sediment: float = 0.0
    lifespan: int = DEFAULT_DROPLET_LIFESPAN


@dataclass
class ErosionStep:
    """1ステップの記録"""
    position: int
    target: int
    height_difference: float
    sediment_before: float
    eroded: float = 0.0
    deposited: float = 0.0
    sediment_after: float = 0.0
    terminated: bool = False


@dataclass
class ErosionStats:
    droplets: int = 0
    steps: int = 0
    total_eroded: float = 0.0
    total_deposited: float = 0.0
    trace: List[ErosionStep] = field(default_factory=list)


class ErosionSimulator:
    """水滴侵食シミュレータ"""

    def __init__(
        self,
        sediment_capacity: float = DEFAULT_SEDIMENT_CAPACITY,
        initial_lifespan: int = DEFAULT_DROPLET_LIFESPAN,
        basin_margin: float = DEFAULT_BASIN_MARGIN,
        evaporation_deposit_offset: float = DEFAULT_EVAPORATION_DEPOSIT_OFFSET,
        evaporation_decay_offset: float = DEFAULT_EVAPORATION_DECAY_OFFSET,
        seed: Optional[int] = None,
        record_trace: bool = False
    ):
        """
        初期化

        Args:
            sediment_capacity: 水滴1つが運べる土砂量
            initial_lifespan: 水滴の初期寿命（ステップ数）
            basin_margin: 窪地を越えるのに必要な堆積量の余裕率
            evaporation_deposit_offset: 蒸発時の堆積率 1 / (寿命 + offset)
            evaporation_decay_offset: 蒸発時の土砂減衰 1 / (寿命 + offset)
            seed: 水滴の出発点を決める乱数シード
            record_trace: 全ステップを記録するか（診断用）
        """
        self.sediment_capacity = sediment_capacity
        self.initial_lifespan = initial_lifespan
        self.basin_margin = basin_margin
        self.evaporation_deposit_offset = evaporation_deposit_offset
        self.evaporation_decay_offset = evaporation_decay_offset
        self.record_trace = record_trace
        self._rng = np.random.default_rng(seed)
        self.stats = ErosionStats()

    @staticmethod
    def next_target(position: int, heights: Sequence[float], neighbors: Sequence[np.ndarray]) -> int:
        """最も低い隣接頂点（同値は先に見つかった方）。隣接がなければ -1"""
        target = -1
        target_height = float('inf')
        for other in neighbors[position].tolist():
            if heights[other] < target_height:
                target = other
                target_height = heights[other]
        return target

    def step(
        self,
        droplet: Droplet,
        heights: MutableSequence[float],
        neighbors: Sequence[np.ndarray]
    ) -> ErosionStep:
        """
        水滴を1ステップ進める（heights はその場で更新）

        Returns:
            ステップの記録。terminated が True なら水滴は消滅
        """
        pos = droplet.position
        target = self.next_target(pos, heights, neighbors)
        if target < 0:
            return ErosionStep(pos, target, 0.0, droplet.sediment,
                               sediment_after=droplet.sediment, terminated=True)

        difference = heights[pos] - heights[target]
        record = ErosionStep(pos, target, difference, droplet.sediment)

        # 平坦で運ぶ土砂もない
        if difference == 0 and droplet.sediment == 0:
            record.terminated = True
            return record

        # 寿命切れ: 残りを全て堆積
        if droplet.lifespan == 0:
            heights[pos] += droplet.sediment
            record.deposited = droplet.sediment
            droplet.sediment = 0.0
            record.terminated = True
            return record
        droplet.lifespan -= 1

        if difference < 0:
            # 窪地: 越えるのに必要な量を堆積
            required = -difference * (1.0 + self.basin_margin)
            if droplet.sediment < required:
                heights[pos] += droplet.sediment
                record.deposited = droplet.sediment
                droplet.sediment = 0.0
                record.terminated = True
                return record
            heights[pos] += required
            droplet.sediment -= required
            record.deposited = required
        else:
            erosion = min(difference, self.sediment_capacity - droplet.sediment)
            heights[pos] -= erosion
            droplet.sediment += erosion
            record.eroded = erosion

        record.sediment_after = droplet.sediment

        # 蒸発
        heights[pos] += droplet.sediment / (droplet.lifespan + self.evaporation_deposit_offset)
        droplet.sediment /= (droplet.lifespan + self.evaporation_decay_offset)

        droplet.position = target
        return record

    def run_droplet(
        self,
        start: int,
        heights: MutableSequence[float],
        neighbors: Sequence[np.ndarray]
    ) -> int:
        """1つの水滴を消滅まで追跡し、ステップ数を返す"""
        droplet = Droplet(position=start, lifespan=self.initial_lifespan)
        steps = 0
        while True:
            record = self.step(droplet, heights, neighbors)
            steps += 1
            self.stats.total_eroded += record.eroded
            self.stats.total_deposited += record.deposited
            if self.record_trace:
                self.stats.trace.append(record)
            if record.terminated:
                return steps

    def erode(self, vertices: np.ndarray, triangles: np.ndarray) -> ErosionStats:
        """
        頂点数と同数の水滴を流す（頂点はその場で更新）

        Args:
            vertices: 頂点 (N, 3)
            triangles: 三角形インデックス (M, 3)

        Returns:
            侵食統計
        """
        self.stats = ErosionStats()
        num_vertices = len(vertices)
        if num_vertices == 0:
            return self.stats

        neighbors = build_vertex_neighbors(triangles, num_vertices)
        heights = vertices[:, ELEVATION_AXIS].tolist()

        for _ in range(num_vertices):
            start = int(self._rng.integers(0, num_vertices))
            self.stats.steps += self.run_droplet(start, heights, neighbors)
            self.stats.droplets += 1

        vertices[:, ELEVATION_AXIS] = heights
        logger.debug(
            "Erosion: %d droplets, %d steps, eroded %.5f, deposited %.5f",
            self.stats.droplets, self.stats.steps, self.stats.total_eroded, self.stats.total_deposited,
        )
        return self.stats
