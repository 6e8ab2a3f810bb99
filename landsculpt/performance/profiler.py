#!/usr/bin/env python3
"""
ステージ別パフォーマンス測定

生成パイプラインの各ステージの実行時間と頂点数・三角形数を記録します。
診断用であり、生成結果には影響しません。
"""

import time
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from contextlib import contextmanager
import psutil

from landsculpt import get_logger

logger = get_logger(__name__)


@dataclass
class PhaseTimer:
    """フェーズ別タイマー"""
    name: str
    start_time: float = 0.0
    total_time: float = 0.0
    call_count: int = 0

    def start(self):
        """タイマー開始"""
        self.start_time = time.perf_counter()

    def stop(self) -> float:
        """タイマー停止と時間記録"""
        if self.start_time == 0.0:
            return 0.0

        elapsed = (time.perf_counter() - self.start_time) * 1000.0
        self.total_time += elapsed
        self.call_count += 1
        self.start_time = 0.0
        return elapsed


@dataclass
class StageRecord:
    """1ステージの記録"""
    name: str
    elapsed_ms: float
    num_vertices: int = 0
    num_triangles: int = 0


@dataclass
class StageProfiler:
    """生成1回分のステージ計測"""
    records: List[StageRecord] = field(default_factory=list)
    phase_timers: Dict[str, PhaseTimer] = field(default_factory=dict)
    memory_mb: float = 0.0

    def create_timer(self, phase_name: str) -> PhaseTimer:
        """フェーズタイマーを作成"""
        if phase_name not in self.phase_timers:
            self.phase_timers[phase_name] = PhaseTimer(phase_name)
        return self.phase_timers[phase_name]

    @contextmanager
    def measure_stage(self, stage_name: str):
        """ステージ実行時間を測定

        yield される dict に num_vertices / num_triangles を書き込むと記録に残る。
        """
        timer = self.create_timer(stage_name)
        counts: Dict[str, int] = {}
        timer.start()
        try:
            yield counts
        finally:
            elapsed = timer.stop()
            self.records.append(StageRecord(
                name=stage_name,
                elapsed_ms=elapsed,
                num_vertices=counts.get('num_vertices', 0),
                num_triangles=counts.get('num_triangles', 0),
            ))

    def sample_memory(self) -> float:
        """現在のRSSを記録 (MB)"""
        self.memory_mb = psutil.Process().memory_info().rss / 1024 / 1024
        return self.memory_mb

    @property
    def total_ms(self) -> float:
        return sum(record.elapsed_ms for record in self.records)

    def get_stage(self, stage_name: str) -> Optional[StageRecord]:
        for record in reversed(self.records):
            if record.name == stage_name:
                return record
        return None

    def get_report(self) -> Dict[str, Any]:
        """ステージ別レポートを生成"""
        return {
            'total_ms': self.total_ms,
            'memory_mb': self.memory_mb,
            'stages': {
                record.name: {
                    'elapsed_ms': record.elapsed_ms,
                    'num_vertices': record.num_vertices,
                    'num_triangles': record.num_triangles,
                }
                for record in self.records
            },
        }

    def log_report(self) -> None:
        """レポートをログ出力"""
        logger.info("Total generation time: %.1fms (RSS %.1fMB)", self.total_ms, self.memory_mb)
        for record in self.records:
            logger.info(
                "  %s: %.1fms (vertices=%d, triangles=%d)",
                record.name, record.elapsed_ms, record.num_vertices, record.num_triangles,
            )
