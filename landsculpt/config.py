#!/usr/bin/env python3
"""
landsculpt 設定管理システム

地形生成パイプラインで使用される設定値を統一管理し、
Magic Numberのハードコーディングを解消します。
"""

from dataclasses import dataclass, field, fields, asdict, replace
import math
from typing import Any, Callable, Dict, Optional, Tuple
from pathlib import Path
import yaml

from landsculpt import get_logger
from landsculpt.constants import (
    DEFAULT_DEDUP_PRECISION,
    DEFAULT_MIN_ANGLE, DEFAULT_ANGLE_FALLBACKS, DEFAULT_STEINER_PASSES, DEFAULT_MAX_STEINER_RATIO,
    SMOOTHING_FLOOR,
    DEFAULT_NOISE_MODIFIER, DEFAULT_NOISE_FLOOR_MARGIN, DETAIL_NOISE_LAYER, BASE_NOISE_LAYER,
    DEFAULT_SEDIMENT_CAPACITY, DEFAULT_DROPLET_LIFESPAN, DEFAULT_BASIN_MARGIN,
    DEFAULT_EVAPORATION_DEPOSIT_OFFSET, DEFAULT_EVAPORATION_DECAY_OFFSET,
    DEFAULT_SNOW_HEIGHT_THRESHOLD, DEFAULT_SAND_HEIGHT_THRESHOLD, DEFAULT_WATER_LEVEL_FRACTION,
)

logger = get_logger(__name__)


@dataclass
class CollectorConfig:
    """頂点収集・重複除去設定"""
    precision: float = DEFAULT_DEDUP_PRECISION


@dataclass
class TriangulationConfig:
    """品質付きDelaunay三角形分割設定"""
    min_angle: float = DEFAULT_MIN_ANGLE
    # 収束しなかった場合に順に緩和する最小角度
    angle_fallbacks: Tuple[float, ...] = DEFAULT_ANGLE_FALLBACKS
    steiner_passes: int = DEFAULT_STEINER_PASSES
    max_steiner_ratio: float = DEFAULT_MAX_STEINER_RATIO


@dataclass
class SmoothingConfig:
    """平滑化設定"""
    floor: float = SMOOTHING_FLOOR


@dataclass
class NoiseConfig:
    """ノイズ層設定"""
    noise_modifier: float = DEFAULT_NOISE_MODIFIER
    floor_margin: float = DEFAULT_NOISE_FLOOR_MARGIN
    seed: int = 0
    # (振幅, x周波数, z周波数)
    detail_layer: Tuple[float, float, float] = DETAIL_NOISE_LAYER
    base_layer: Tuple[float, float, float] = BASE_NOISE_LAYER
    # 正規化高度 -> 倍率 の折れ線キー
    height_curve: Tuple[Tuple[float, float], ...] = ((0.0, 1.0), (1.0, 1.0))


@dataclass
class ErosionConfig:
    """水滴侵食設定"""
    sediment_capacity: float = DEFAULT_SEDIMENT_CAPACITY
    initial_lifespan: int = DEFAULT_DROPLET_LIFESPAN
    basin_margin: float = DEFAULT_BASIN_MARGIN
    evaporation_deposit_offset: float = DEFAULT_EVAPORATION_DEPOSIT_OFFSET
    evaporation_decay_offset: float = DEFAULT_EVAPORATION_DECAY_OFFSET
    seed: Optional[int] = None
    # 侵食前に三角形を重心分割する回数
    subdivide_passes: int = 0


@dataclass
class ShadingConfig:
    """高度別着色しきい値（範囲に対する割合）"""
    snow_height_threshold: float = DEFAULT_SNOW_HEIGHT_THRESHOLD
    sand_height_threshold: float = DEFAULT_SAND_HEIGHT_THRESHOLD


@dataclass
class WaterConfig:
    """水面設定"""
    level_fraction: float = DEFAULT_WATER_LEVEL_FRACTION


@dataclass
class LandsculptConfig:
    """プロジェクト全体設定"""
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    triangulation: TriangulationConfig = field(default_factory=TriangulationConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    erosion: ErosionConfig = field(default_factory=ErosionConfig)
    shading: ShadingConfig = field(default_factory=ShadingConfig)
    water: WaterConfig = field(default_factory=WaterConfig)

    enable_erosion: bool = True
    diagnostics: bool = True

    # ログ設定
    log_level: str = "INFO"
    log_format_style: str = "detailed"


SECTION_NAMES = ('collector', 'triangulation', 'smoothing', 'noise', 'erosion', 'shading', 'water')


# =============================================================================
# パラメータ検証
# =============================================================================

def _positive(value: float) -> bool:
    return value > 0.0


def _non_negative(value: float) -> bool:
    return value >= 0.0


def _angle(value: float) -> bool:
    # Triangle は 34度を超えると停止しない場合がある
    return 0.0 <= value <= 34.0


def _fraction(value: float) -> bool:
    return 0.0 <= value <= 1.0


_VALIDATORS: Dict[Tuple[str, str], Callable[[Any], bool]] = {
    ('collector', 'precision'): _positive,
    ('triangulation', 'min_angle'): _angle,
    ('triangulation', 'steiner_passes'): _positive,
    ('triangulation', 'max_steiner_ratio'): _non_negative,
    ('noise', 'floor_margin'): _non_negative,
    ('erosion', 'sediment_capacity'): _non_negative,
    ('erosion', 'initial_lifespan'): _non_negative,
    ('erosion', 'basin_margin'): _non_negative,
    ('erosion', 'evaporation_deposit_offset'): _positive,
    ('erosion', 'evaporation_decay_offset'): _positive,
    ('erosion', 'subdivide_passes'): _non_negative,
    ('shading', 'snow_height_threshold'): _fraction,
    ('shading', 'sand_height_threshold'): _fraction,
    ('water', 'level_fraction'): _fraction,
}


def parse_number(text: str) -> float:
    """ユーザー入力の数値文字列を解釈（',' を小数点として受け付ける）"""
    return float(text.strip().replace(',', '.'))


def _finite(number: float) -> float:
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {number!r}")
    return number


def _coerce(current: Any, value: Any) -> Any:
    """現在値の型に合わせて変換"""
    if isinstance(current, bool):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ('true', 'yes', 'on', '1'):
                return True
            if lowered in ('false', 'no', 'off', '0'):
                return False
            raise ValueError(f"Not a boolean: {value!r}")
        return bool(value)
    if isinstance(current, int) or current is None:
        number = _finite(parse_number(value) if isinstance(value, str) else float(value))
        # 整数パラメータは切り捨て
        return int(number)
    if isinstance(current, float):
        return _finite(parse_number(value) if isinstance(value, str) else float(value))
    if isinstance(current, tuple):
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValueError(f"Expected a sequence, got {value!r}")
        return tuple(
            tuple(_finite(float(v)) for v in item) if isinstance(item, (list, tuple)) else _coerce(0.0, item)
            for item in value
        )
    return value


def update_parameter(config: LandsculptConfig, section: str, name: str, value: Any) -> bool:
    """
    単一パラメータを更新

    解釈・検証に失敗した場合は警告を出し、以前の値を維持します。
    実行中の生成を中断させないため例外は送出しません。

    Args:
        config: 更新対象の設定
        section: セクション名 (例: "erosion")
        name: パラメータ名 (例: "sediment_capacity")
        value: 新しい値（文字列も可）

    Returns:
        更新に成功したかどうか
    """
    target = getattr(config, section, None) if section in SECTION_NAMES else None
    if target is None or not hasattr(target, name):
        logger.warning("Unknown parameter %s.%s", section, name)
        return False

    current = getattr(target, name)
    try:
        new_value = _coerce(current, value)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning("Rejected %s.%s=%r: %s (keeping %r)", section, name, value, e, current)
        return False

    validator = _VALIDATORS.get((section, name))
    if validator is not None and new_value is not None and not validator(new_value):
        logger.warning("Rejected %s.%s=%r: out of range (keeping %r)", section, name, value, current)
        return False

    setattr(target, name, new_value)
    logger.debug("Updated config: %s.%s = %r", section, name, new_value)
    return True


class ConfigManager:
    """設定管理クラス"""

    def __init__(self):
        self._config: Optional[LandsculptConfig] = None
        self._config_file_path: Optional[Path] = None

    def load_config(self, config_file: Optional[Path] = None) -> LandsculptConfig:
        """
        設定ファイルを読み込み

        Args:
            config_file: 設定ファイルパス（Noneの場合はデフォルト位置を探索）

        Returns:
            読み込まれた設定
        """
        if config_file is None:
            project_root = Path(__file__).parent.parent
            default_paths = [
                project_root / "landsculpt.yaml",
                project_root / "config.yaml",
                Path.home() / ".landsculpt" / "config.yaml"
            ]

            for path in default_paths:
                if path.exists():
                    config_file = path
                    break

        if config_file and Path(config_file).exists():
            config_file = Path(config_file)
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    config_dict = yaml.safe_load(f) or {}

                self._config = self._dict_to_config(config_dict)
                self._config_file_path = config_file
                logger.info(f"Configuration loaded from {config_file}")

            except (OSError, yaml.YAMLError, TypeError, AttributeError) as e:
                logger.warning(f"Failed to load config from {config_file}: {e}")
                logger.info("Using default configuration")
                self._config = LandsculptConfig()
        else:
            logger.info("No config file found, using default configuration")
            self._config = LandsculptConfig()

        return self._config

    def save_config(self, config_file: Optional[Path] = None) -> bool:
        """
        設定をファイルに保存

        Args:
            config_file: 保存先ファイルパス

        Returns:
            保存成功したかどうか
        """
        if self._config is None:
            logger.error("No configuration to save")
            return False

        if config_file is None:
            config_file = self._config_file_path or Path("landsculpt.yaml")
        config_file = Path(config_file)

        try:
            config_dict = self._config_to_dict(self._config)
            config_file.parent.mkdir(parents=True, exist_ok=True)

            with open(config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_dict, f, default_flow_style=False,
                               allow_unicode=True, indent=2)

            logger.info(f"Configuration saved to {config_file}")
            return True

        except OSError as e:
            logger.error(f"Failed to save config to {config_file}: {e}")
            return False

    def get_config(self) -> LandsculptConfig:
        """現在の設定を取得"""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def set_config(self, config: LandsculptConfig) -> None:
        self._config = config

    def _dict_to_config(self, config_dict: Dict[str, Any]) -> LandsculptConfig:
        """辞書を設定オブジェクトに変換（不正な値は個別に無視）"""
        config = LandsculptConfig()

        for section in SECTION_NAMES:
            section_dict = config_dict.get(section)
            if not isinstance(section_dict, dict):
                continue
            for key, value in section_dict.items():
                update_parameter(config, section, key, value)

        for key in ('enable_erosion', 'diagnostics', 'log_level', 'log_format_style'):
            if key in config_dict:
                current = getattr(config, key)
                try:
                    setattr(config, key, _coerce(current, config_dict[key]))
                except (TypeError, ValueError, OverflowError) as e:
                    logger.warning("Rejected %s=%r: %s", key, config_dict[key], e)

        return config

    def _config_to_dict(self, config: LandsculptConfig) -> Dict[str, Any]:
        """設定オブジェクトを辞書に変換"""
        result: Dict[str, Any] = {}
        for section in SECTION_NAMES:
            section_dict = asdict(getattr(config, section))
            # YAML は tuple を扱えないため list に変換
            result[section] = {
                key: _to_plain(value) for key, value in section_dict.items()
            }
        for item in fields(config):
            if item.name not in SECTION_NAMES:
                result[item.name] = getattr(config, item.name)
        return result


def _to_plain(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    return value


def copy_config(config: LandsculptConfig) -> LandsculptConfig:
    """セクション単位のコピー（生成中の設定変更から保護するため）"""
    return replace(
        config,
        **{section: replace(getattr(config, section)) for section in SECTION_NAMES}
    )


# グローバル設定マネージャー
_config_manager: Optional[ConfigManager] = None

def get_config_manager() -> ConfigManager:
    """グローバル設定マネージャーを取得"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager

def get_config() -> LandsculptConfig:
    """現在の設定を取得"""
    return get_config_manager().get_config()

def load_config(config_file: Optional[Path] = None) -> LandsculptConfig:
    """設定を読み込み"""
    return get_config_manager().load_config(config_file)

def save_config(config_file: Optional[Path] = None) -> bool:
    """設定を保存"""
    return get_config_manager().save_config(config_file)
