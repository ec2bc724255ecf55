from __future__ import annotations

import argparse
import random
import sys

import numpy as np

from grassfield.config import (
    APP_VERSION,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DENSITY,
    DEFAULT_DOMAIN_SIZE,
    DEFAULT_MAX_VERTICES_PER_CHUNK,
    DEFAULT_PLACEMENT_NOISE,
    DEFAULT_SEED,
    DEFAULT_TYPE_POLICY,
)
from grassfield.render.frustum import box_distance
from grassfield.world.blades import PRESETS
from grassfield.world.chunk_builder import PLACEMENT_NOISE_KINDS, GenerationParams
from grassfield.world.errors import GrassFieldError
from grassfield.world.selector import POLICIES
from grassfield.world.terrain import HeightFieldTerrain
from grassfield.world.visibility import LODParams
from grassfield.world.world import GrassField


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="grassfield", description=f"Procedural grass field generator (numpy + ModernGL preview) v{APP_VERSION}")
    p.add_argument("--seed", default=str(DEFAULT_SEED), help="int seed or 'random' (default: 12345)")
    p.add_argument("--size", type=int, default=DEFAULT_DOMAIN_SIZE, help="domain size in lattice units per side (default: 128)")
    p.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE, help="chunk size in lattice units (default: 64)")
    p.add_argument("--density", type=int, default=DEFAULT_DENSITY, help="candidate blades per accepted lattice point")
    p.add_argument("--max-verts", type=int, default=DEFAULT_MAX_VERTICES_PER_CHUNK, help="vertex budget per chunk (default: 60000)")
    p.add_argument("--policy", choices=list(POLICIES), default=DEFAULT_TYPE_POLICY, help="blade type selection policy")
    p.add_argument("--placement-noise", choices=list(PLACEMENT_NOISE_KINDS), default=DEFAULT_PLACEMENT_NOISE, help="placement mask noise")
    p.add_argument("--types", default=",".join(PRESETS), help=f"comma separated blade presets ({', '.join(PRESETS)}); empty = none")
    p.add_argument("--no-ao", dest="ambient_occlusion", action="store_false", help="disable fake ambient occlusion at blade roots")
    p.add_argument("--no-yaw", dest="random_yaw", action="store_false", help="disable random blade yaw")
    p.add_argument("--no-height-variation", dest="height_variation", action="store_false", help="disable noise-driven height variation")
    p.add_argument("--camera", type=float, nargs=3, metavar=("X", "Y", "Z"), default=None, help="run one classification tick from this position")
    p.add_argument("--view", action="store_true", help="open the interactive preview window")
    p.add_argument("--debug", action="store_true", help="enable debug output (HUD + logs)")
    return p.parse_args(argv)


def _blade_types(names_csv: str):
    names = [n.strip() for n in names_csv.split(",") if n.strip()]
    unknown = [n for n in names if n not in PRESETS]
    if unknown:
        raise SystemExit(f"unknown blade preset(s): {', '.join(unknown)}")
    return tuple(PRESETS[n] for n in names)


def main(argv=None) -> None:
    args = _parse_args(argv)
    if isinstance(args.seed, str) and args.seed.lower() == "random":
        seed = random.randint(0, 2**31 - 1)
    else:
        seed = int(args.seed)

    params = GenerationParams(
        domain_width=int(args.size),
        domain_depth=int(args.size),
        chunk_size=int(args.chunk_size),
        max_vertices_per_chunk=int(args.max_verts),
        density=int(args.density),
        placement_noise=str(args.placement_noise),
        blade_types=_blade_types(args.types),
        type_policy=str(args.policy),
        ambient_occlusion=bool(args.ambient_occlusion),
        random_yaw=bool(args.random_yaw),
        height_variation=bool(args.height_variation),
        seed=seed,
    )

    try:
        params.validate()
        if args.view:
            from grassfield.app import run_app

            run_app(GrassField(params=params, debug=bool(args.debug)), debug=bool(args.debug))
            return

        terrain = HeightFieldTerrain.procedural(seed, params.domain_width, params.domain_depth)
        field = GrassField(terrain, params, debug=bool(args.debug))
        stats = field.generate()
    except GrassFieldError as e:
        print(f"[grassfield] error: {e}", file=sys.stderr)
        sys.exit(2)

    print(f"[grassfield] seed={seed} grid={stats.chunks_x}x{stats.chunks_z} policy={params.type_policy}")
    print(
        f"[grassfield] blades={stats.total_blades} vertices={stats.total_vertices} "
        f"chunks={len(field.chunks)} empty={stats.skipped_chunks} truncated={stats.truncated_chunks}"
    )
    if args.debug:
        print(
            f"[grassfield] rejected: noise={stats.rejected_noise} surface={stats.rejected_surface} "
            f"planting={stats.rejected_planting} no_type={stats.skipped_no_type}"
        )

    if args.camera is not None:
        cam = np.array(args.camera, dtype=np.float64)
        max_d = LODParams().max_render_distance
        field.classify(cam, lambda b: box_distance(cam, b) <= max_d)
        s = field.summary()
        print(
            f"[grassfield] visible={s.visible} culled={s.culled} "
            f"LOD0={s.lod0} LOD1={s.lod1} LOD2={s.lod2} culling={s.culling_efficiency:.0f}%"
        )


if __name__ == "__main__":
    main()
