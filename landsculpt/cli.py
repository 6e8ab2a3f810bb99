#!/usr/bin/env python3
"""
地形生成CLI
地面メッシュファイルから地形メッシュ（と水面）を生成して保存します。

使い方:
    landsculpt ground_0.ply ground_1.ply -o terrain.ply --water water.ply
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from landsculpt import setup_logging, get_logger
from landsculpt.config import LandsculptConfig, load_config, update_parameter
from landsculpt.input.ground import FileGroundSource
from landsculpt.landscape import WaterPlane
from landsculpt.mesh.delaunay import TriangulationError
from landsculpt.mesh.export import export_mesh
from landsculpt.mesh.pipeline import TerrainGenerator

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_NO_GROUND = 1
EXIT_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="landsculpt",
        description="Generate a stylized terrain mesh from scanned ground meshes",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('inputs', nargs='+', type=Path,
                        help='Ground mesh files (.npy/.npz/.ply/.obj/...)')
    parser.add_argument('-o', '--output', type=Path, default=Path('terrain.ply'),
                        help='Output terrain mesh file')
    parser.add_argument('--config', type=Path, default=None,
                        help='YAML configuration file')

    gen_group = parser.add_argument_group('Generation Options')
    gen_group.add_argument('--seed', type=int, default=None,
                           help='Seed for noise and droplet placement')
    gen_group.add_argument('--no-erosion', action='store_true',
                           help='Skip the erosion stage')
    gen_group.add_argument('--sediment-capacity', type=str, default=None,
                           help='Sediment capacity per droplet')
    gen_group.add_argument('--droplet-lifespan', type=str, default=None,
                           help='Initial droplet lifespan (steps)')

    water_group = parser.add_argument_group('Water Options')
    water_group.add_argument('--water', type=Path, default=None,
                             help='Also export the water plane to this file')
    water_group.add_argument('--water-level', type=str, default=None,
                             help='Water level as offset above the lowest point')

    log_group = parser.add_argument_group('Logging Options')
    log_group.add_argument('--log-level', default=None,
                           help='Log level (DEBUG, INFO, WARNING, ...)')
    log_group.add_argument('--quiet-stats', action='store_true',
                           help='Do not log per-stage timings')
    return parser


def create_configuration(args: argparse.Namespace) -> LandsculptConfig:
    """設定ファイルとコマンドライン引数から設定を作成"""
    config = load_config(args.config) if args.config else LandsculptConfig()

    if args.seed is not None:
        config.noise.seed = args.seed
        config.erosion.seed = args.seed
    if args.no_erosion:
        config.enable_erosion = False
    if args.quiet_stats:
        config.diagnostics = False
    if args.sediment_capacity is not None:
        update_parameter(config, 'erosion', 'sediment_capacity', args.sediment_capacity)
    if args.droplet_lifespan is not None:
        update_parameter(config, 'erosion', 'initial_lifespan', args.droplet_lifespan)
    if args.log_level:
        config.log_level = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """メイン関数"""
    args = build_parser().parse_args(argv)
    config = create_configuration(args)
    setup_logging(level=config.log_level, format_style=config.log_format_style)

    generator = TerrainGenerator(config)
    try:
        result = generator.generate(FileGroundSource(args.inputs))
    except TriangulationError as e:
        logger.error("Terrain generation failed: %s", e)
        return EXIT_FAILED

    if result is None:
        return EXIT_NO_GROUND

    export_mesh(result.mesh, args.output)
    logger.info(
        "Shader thresholds: snow %.3f, sand %.3f",
        result.shader_thresholds.snow_height, result.shader_thresholds.sand_height,
    )

    if args.water is not None:
        water = WaterPlane(result.mesh, config.water)
        if args.water_level is not None:
            water.update_level(args.water_level)
        export_mesh(water.build(), args.water)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
