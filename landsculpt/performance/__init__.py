"""パフォーマンス測定"""

from .profiler import PhaseTimer, StageProfiler, StageRecord

__all__ = ['PhaseTimer', 'StageProfiler', 'StageRecord']
