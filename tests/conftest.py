#!/usr/bin/env python3
"""
pytest共通設定とフィクスチャ

テスト実行時の共通ロギング設定と、地面点群・メッシュのフィクスチャを提供します。
"""

import os
import sys
import pytest
import numpy as np

# landsculptモジュールのパス追加
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from landsculpt import setup_logging, get_logger
from landsculpt.config import LandsculptConfig


# =============================================================================
# テストロギング設定
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """テスト全体のロギング設定"""
    setup_logging(level="DEBUG")
    logger = get_logger("test")
    logger.info("=== テストセッション開始 ===")
    yield
    logger.info("=== テストセッション終了 ===")


@pytest.fixture
def test_logger():
    """テスト用ロガー"""
    return get_logger("test")


# =============================================================================
# テストデータフィクスチャ
# =============================================================================

def make_grid(size: int = 5, spacing: float = 1.0, height: float = 1.0) -> np.ndarray:
    """size x size の平坦な格子点 (x, y, z)"""
    coords = np.arange(size, dtype=np.float64) * spacing
    xx, zz = np.meshgrid(coords, coords, indexing='ij')
    return np.column_stack([xx.ravel(), np.full(size * size, height), zz.ravel()])


@pytest.fixture
def flat_grid() -> np.ndarray:
    """5x5 の平坦な格子（高度 1.0）"""
    return make_grid()


@pytest.fixture
def bumpy_cloud() -> np.ndarray:
    """ゆらぎを加えた 12x12 の起伏のある地面点群"""
    rng = np.random.default_rng(42)
    grid = make_grid(size=12, spacing=0.1, height=0.0)
    grid[:, 0] += rng.uniform(-0.02, 0.02, len(grid))
    grid[:, 2] += rng.uniform(-0.02, 0.02, len(grid))
    grid[:, 1] = 0.3 * np.sin(grid[:, 0] * 4.0) * np.cos(grid[:, 2] * 3.0) + rng.normal(0, 0.01, len(grid))
    return grid


@pytest.fixture
def seeded_config() -> LandsculptConfig:
    """シード固定・診断出力なしの設定"""
    config = LandsculptConfig()
    config.noise.seed = 7
    config.erosion.seed = 7
    config.diagnostics = False
    return config
