from __future__ import annotations

"""Terrain generation pipeline

This module provides TerrainGenerator, a facade that runs the whole
terrain-mesh generation once, synchronously, over a static snapshot of the
ground surface:

    collect/deduplicate → triangulate → smooth → noise (+ smooth)
      → erosion → assemble

Every stage mutates the same vertex/triangle buffers owned by the run; elevation
bounds are recomputed from the buffers where needed and never carried over
from a previous run.
"""

from dataclasses import dataclass, field
from typing import Optional

from landsculpt import get_logger
from landsculpt.config import LandsculptConfig, copy_config
from landsculpt.data_types import ArrayLike, GroundMeshSource, TerrainMesh
from landsculpt.input.ground import ArrayGroundSource
from landsculpt.landscape import ShaderThresholds, compute_shader_thresholds
from landsculpt.performance.profiler import StageProfiler
from .assembler import MeshAssembler
from .collector import NoGroundSurfaceError, VertexCollector
from .delaunay import SurfaceTriangulator
from .erosion import ErosionSimulator, ErosionStats
from .noise import HeightCurve, NoiseLayer
from .smoothing import MeshSmoother
from .utils import subdivide_triangles

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Public result container
# ---------------------------------------------------------------------------


@dataclass
class GenerationResult:
    """Return type for TerrainGenerator.generate().

    Attributes
    ----------
    mesh : TerrainMesh
        The finished, read-only terrain mesh.
    shader_thresholds : ShaderThresholds
        Snow/sand elevations derived from the final bounds.
    steiner_count / unresolved_steiner_count : int
        Refinement points added by the triangulator, and how many of them
        needed the neighbour fallback for their elevation.
    min_angle_used : float
        Minimum angle the triangulation finally converged with.
    erosion : ErosionStats | None
        Droplet statistics, None when erosion is disabled.
    profile : StageProfiler
        Per-stage timings and counts.
    """

    mesh: TerrainMesh
    shader_thresholds: ShaderThresholds
    steiner_count: int = 0
    unresolved_steiner_count: int = 0
    min_angle_used: float = 0.0
    erosion: Optional[ErosionStats] = None
    profile: StageProfiler = field(default_factory=StageProfiler)


class TerrainGenerator:
    """Facade that runs the full generation pipeline.

    Usage
    -----
    >>> generator = TerrainGenerator()
    >>> result = generator.generate(ArrayGroundSource([points]))
    >>> generator.reset()
    """

    def __init__(self, config: Optional[LandsculptConfig] = None) -> None:
        self.config = config or LandsculptConfig()
        self._result: Optional[GenerationResult] = None

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    @property
    def result(self) -> Optional[GenerationResult]:
        return self._result

    def generate(self, source: Optional[GroundMeshSource]) -> Optional[GenerationResult]:
        """Run every stage and return the result, or ``None`` if there is no ground.

        A held result must be discarded with :meth:`reset` before the next run;
        calling ``generate`` again without a reset returns the held result.

        Raises
        ------
        TriangulationError
            The triangulation did not converge for any minimum angle.
        """
        if self._result is not None:
            logger.warning("Terrain already generated; call reset() before generating again")
            return self._result

        # snapshot so that parameter edits during the run do not leak in
        config = copy_config(self.config)
        profile = StageProfiler()

        collector = VertexCollector(config.collector.precision)
        with profile.measure_stage("hidden_vertices") as counts:
            try:
                vertices = collector.collect(source)
            except NoGroundSurfaceError:
                logger.info("No ground surface detected; nothing to generate")
                return None
            counts['num_vertices'] = len(vertices)

        triangulator = SurfaceTriangulator(
            min_angle=config.triangulation.min_angle,
            angle_fallbacks=config.triangulation.angle_fallbacks,
            steiner_passes=config.triangulation.steiner_passes,
            max_steiner_ratio=config.triangulation.max_steiner_ratio,
        )
        with profile.measure_stage("triangulation") as counts:
            triangulation = triangulator.triangulate(vertices)
            vertices, triangles = triangulation.vertices, triangulation.triangles
            counts.update(num_vertices=len(vertices), num_triangles=len(triangles))

        smoother = MeshSmoother(config.smoothing.floor)
        with profile.measure_stage("smoothing") as counts:
            smoother.smooth(vertices, triangles)
            counts.update(num_vertices=len(vertices), num_triangles=len(triangles))

        noise = NoiseLayer(
            noise_modifier=config.noise.noise_modifier,
            floor_margin=config.noise.floor_margin,
            height_curve=HeightCurve(config.noise.height_curve),
            seed=config.noise.seed,
            detail_layer=config.noise.detail_layer,
            base_layer=config.noise.base_layer,
        )
        with profile.measure_stage("noise") as counts:
            noise.apply(vertices)
            smoother.smooth(vertices, triangles)
            counts.update(num_vertices=len(vertices), num_triangles=len(triangles))

        erosion_stats: Optional[ErosionStats] = None
        if config.enable_erosion:
            for _ in range(config.erosion.subdivide_passes):
                vertices, triangles = subdivide_triangles(vertices, triangles)
            erosion = ErosionSimulator(
                sediment_capacity=config.erosion.sediment_capacity,
                initial_lifespan=config.erosion.initial_lifespan,
                basin_margin=config.erosion.basin_margin,
                evaporation_deposit_offset=config.erosion.evaporation_deposit_offset,
                evaporation_decay_offset=config.erosion.evaporation_decay_offset,
                seed=config.erosion.seed,
            )
            with profile.measure_stage("erosion") as counts:
                erosion_stats = erosion.erode(vertices, triangles)
                counts.update(num_vertices=len(vertices), num_triangles=len(triangles))

        with profile.measure_stage("assembly") as counts:
            mesh = MeshAssembler().assemble(vertices, triangles)
            counts.update(num_vertices=mesh.num_vertices, num_triangles=mesh.num_triangles)

        if config.diagnostics:
            profile.sample_memory()
            logger.info("Generated terrain: %d vertices, %d triangles", mesh.num_vertices, mesh.num_triangles)
            profile.log_report()

        self._result = GenerationResult(
            mesh=mesh,
            shader_thresholds=compute_shader_thresholds(mesh, config.shading),
            steiner_count=triangulation.steiner_count,
            unresolved_steiner_count=triangulation.unresolved_count,
            min_angle_used=triangulation.min_angle_used,
            erosion=erosion_stats,
            profile=profile,
        )
        return self._result

    def reset(self) -> None:
        """Discard the held mesh, bounds and statistics."""
        if self._result is not None:
            logger.info("Terrain reset")
        self._result = None


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def generate_terrain(
    points: ArrayLike,
    config: Optional[LandsculptConfig] = None,
) -> Optional[GenerationResult]:
    """Convenience helper: generate a terrain from a single (N, 3) point array."""
    return TerrainGenerator(config).generate(ArrayGroundSource([points]))
