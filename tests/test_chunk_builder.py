from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from grassfield.world.blades import COMMON, BladeType, Segment
from grassfield.world.chunk_builder import ChunkBuilder, GenerationParams, GenerationStats, generate_chunks
from grassfield.world.errors import ConfigurationError, MissingCollaboratorError


def _params(blade: BladeType, **kw) -> GenerationParams:
    base = dict(
        domain_width=100,
        domain_depth=100,
        chunk_size=50,
        density=1,
        min_noise_value=0.0,
        min_surface_weight=0.5,
        blade_types=(blade,),
        type_policy="discrete",
        height_variation=False,
        seed=2024,
    )
    base.update(kw)
    return GenerationParams(**base)


def test_grid_partition_tiles_domain(flat_terrain, always_blade) -> None:
    b = ChunkBuilder(_params(always_blade), flat_terrain)
    assert b.grid_shape() == (2, 2)
    assert sorted(b.chunk_keys()) == [(0, 0), (0, 1), (1, 0), (1, 1)]
    for cx, cz in b.chunk_keys():
        x0, x1, z0, z1 = b.chunk_domain(cx, cz)
        assert (x1 - x0, z1 - z0) == (50, 50)

    covered = np.zeros((100, 100), dtype=np.int32)
    for cx, cz in b.chunk_keys():
        x0, x1, z0, z1 = b.chunk_domain(cx, cz)
        covered[z0:z1, x0:x1] += 1
    assert np.all(covered == 1)


def test_whole_valued_float_sizes_still_tile(flat_terrain, always_blade) -> None:
    b = ChunkBuilder(_params(always_blade, domain_width=10.0, domain_depth=10, chunk_size=4.0), flat_terrain)
    assert b.grid_shape() == (3, 3)
    covered = np.zeros((10, 10), dtype=np.int32)
    for cx, cz in b.chunk_keys():
        x0, x1, z0, z1 = b.chunk_domain(cx, cz)
        covered[z0:z1, x0:x1] += 1
    assert np.all(covered == 1)


def test_partial_chunks_are_clipped(flat_terrain, always_blade) -> None:
    b = ChunkBuilder(_params(always_blade, domain_width=130, domain_depth=70), flat_terrain)
    assert b.grid_shape() == (3, 2)
    assert b.chunk_domain(2, 1) == (100, 130, 50, 70)


def test_one_blade_per_valid_lattice_point(flat_terrain, always_blade) -> None:
    params = _params(always_blade)
    builder = ChunkBuilder(params, flat_terrain)
    records, stats = builder.build_all()

    assert stats.total_chunks == 4
    xs = np.arange(100, dtype=np.float64)
    accepted = int(np.count_nonzero(builder.acceptance_lattice(xs, xs) > 0.0))
    assert stats.total_blades == accepted
    for rec in records:
        assert rec.vertex_count == rec.blade_count * always_blade.vertex_count
        assert rec.indices.size == rec.blade_count * always_blade.index_count
        assert rec.indices.max() < rec.vertex_count


def test_blades_stay_inside_their_chunk(flat_terrain, always_blade) -> None:
    params = _params(always_blade, dispersion=0.0, random_yaw=False)
    builder = ChunkBuilder(params, flat_terrain)
    for rec in builder.build_all()[0]:
        x0, x1, z0, z1 = builder.chunk_domain(rec.cx, rec.cz)
        c = rec.centroid
        assert x0 <= c[0] < x1 and z0 <= c[2] < z1
        assert c[1] == pytest.approx(0.0)


def test_generation_is_deterministic(flat_terrain) -> None:
    params = GenerationParams(domain_width=64, domain_depth=64, chunk_size=32, seed=77)
    a, _ = generate_chunks(params, flat_terrain)
    b, _ = generate_chunks(params, flat_terrain)
    assert [r.key for r in a] == [r.key for r in b]
    for ra, rb in zip(a, b):
        assert np.array_equal(ra.positions, rb.positions)
        assert np.array_equal(ra.colors, rb.colors)
        assert np.array_equal(ra.indices, rb.indices)


def test_chunk_content_independent_of_build_order(flat_terrain) -> None:
    params = GenerationParams(domain_width=64, domain_depth=64, chunk_size=32, seed=5)
    builder = ChunkBuilder(params, flat_terrain)
    late = builder.build_chunk(1, 1)
    records, _ = ChunkBuilder(params, flat_terrain).build_all()
    same = next(r for r in records if r.key == (1, 1))
    assert np.array_equal(late.positions, same.positions)


def test_different_seeds_differ(flat_terrain) -> None:
    p = GenerationParams(domain_width=64, domain_depth=64, chunk_size=64, min_noise_value=0.3)
    a, _ = generate_chunks(replace(p, seed=1), flat_terrain)
    b, _ = generate_chunks(replace(p, seed=2), flat_terrain)
    assert a[0].positions.shape != b[0].positions.shape or not np.array_equal(a[0].positions, b[0].positions)


@pytest.mark.parametrize("budget", [7, 100, 1000, 2003])
def test_vertex_budget_truncates(flat_terrain, always_blade, budget: int) -> None:
    params = _params(always_blade, chunk_size=100, max_vertices_per_chunk=budget)
    records, stats = ChunkBuilder(params, flat_terrain).build_all()
    assert len(records) == 1
    rec = records[0]
    assert rec.truncated
    assert stats.truncated_chunks == 1
    assert rec.vertex_count <= budget
    assert rec.vertex_count > budget - always_blade.vertex_count


def test_budget_below_one_blade_yields_empty_chunk(flat_terrain, always_blade) -> None:
    params = _params(always_blade, max_vertices_per_chunk=always_blade.vertex_count - 1)
    records, stats = ChunkBuilder(params, flat_terrain).build_all()
    assert records == []
    assert stats.skipped_chunks == 4
    assert stats.truncated_chunks == 4


def test_surface_weight_gate_skips_everything(bare_terrain, always_blade) -> None:
    records, stats = generate_chunks(_params(always_blade), bare_terrain)
    assert records == []
    assert stats.total_blades == 0
    assert stats.skipped_chunks == 4
    assert stats.rejected_surface > 0


def test_noise_threshold_of_one_rejects_everything(flat_terrain, always_blade) -> None:
    records, stats = generate_chunks(_params(always_blade, min_noise_value=1.0), flat_terrain)
    assert records == []
    assert stats.rejected_noise == 100 * 100


def test_empty_type_list_is_not_an_error(flat_terrain) -> None:
    records, stats = generate_chunks(_params(COMMON, blade_types=()), flat_terrain)
    assert records == []
    assert stats.empty_type_list
    assert stats.total_blades == 0


def test_zero_density_plants_nothing(flat_terrain, always_blade) -> None:
    records, stats = generate_chunks(_params(always_blade, density=0), flat_terrain)
    assert records == []


def test_density_multiplies_candidates(flat_terrain, always_blade) -> None:
    one = generate_chunks(_params(always_blade, density=1), flat_terrain)[1]
    three = generate_chunks(_params(always_blade, density=3), flat_terrain)[1]
    assert three.total_blades == 3 * one.total_blades


def test_planting_probability_thins_blades(flat_terrain) -> None:
    sparse = BladeType(segments=(Segment(0.03, 0.6),), range_min=0.0, range_max=1.0, density_multiplier=1.0)
    _, stats = generate_chunks(_params(sparse), flat_terrain)
    candidates = stats.total_blades + stats.rejected_planting
    assert candidates > 1000
    # density_multiplier 1 plants about one candidate in five
    assert 0.12 < stats.total_blades / candidates < 0.28


def test_clump_placement_noise(flat_terrain, always_blade) -> None:
    params = _params(always_blade, placement_noise="clumps", min_noise_value=0.5)
    builder = ChunkBuilder(params, flat_terrain)
    xs = np.arange(50, dtype=np.float64)
    lat = builder.acceptance_lattice(xs, xs)
    assert lat.shape == (50, 50)
    assert np.all((lat >= 0.0) & (lat <= 1.0))
    records, stats = builder.build_all()
    assert stats.rejected_noise > 0
    assert stats.total_blades == int(np.count_nonzero(builder.acceptance_lattice(np.arange(100.0), np.arange(100.0)) > 0.5))


def test_height_variation_modifier_range(flat_terrain, always_blade) -> None:
    builder = ChunkBuilder(_params(always_blade, height_variation=True, height_variation_amount=0.2), flat_terrain)
    m = builder.height_modifier_lattice(np.arange(100.0), np.arange(100.0))
    assert np.all((m >= 0.8 - 1e-9) & (m <= 1.2 + 1e-9))
    flat = ChunkBuilder(_params(always_blade), flat_terrain).height_modifier_lattice(np.arange(5.0), np.arange(3.0))
    assert np.array_equal(flat, np.ones((3, 5)))


def test_bounds_contain_geometry(flat_terrain) -> None:
    records, _ = generate_chunks(GenerationParams(domain_width=32, domain_depth=32, chunk_size=16, seed=3), flat_terrain)
    assert records
    for rec in records:
        assert np.all(rec.positions >= rec.bounds.lo - 1e-6)
        assert np.all(rec.positions <= rec.bounds.hi + 1e-6)


def test_missing_terrain_raises(always_blade) -> None:
    with pytest.raises(MissingCollaboratorError):
        ChunkBuilder(_params(always_blade), None)


@pytest.mark.parametrize(
    "overrides",
    [
        dict(domain_width=0),
        dict(chunk_size=0),
        dict(chunk_size=2.5),
        dict(domain_width=10.5),
        dict(max_vertices_per_chunk=0),
        dict(density=-1),
        dict(type_policy="weighted"),
        dict(placement_noise="perlin"),
        dict(min_noise_value=1.5),
        dict(ao_intensity=2.0),
    ],
)
def test_invalid_params_raise(flat_terrain, always_blade, overrides) -> None:
    with pytest.raises(ConfigurationError):
        ChunkBuilder(_params(always_blade, **overrides), flat_terrain)


def test_stats_accumulate_across_chunks(flat_terrain, always_blade) -> None:
    builder = ChunkBuilder(_params(always_blade), flat_terrain)
    stats = GenerationStats()
    total = 0
    for cx, cz in builder.chunk_keys():
        rec = builder.build_chunk(cx, cz, stats)
        total += rec.blade_count if rec is not None else 0
    assert stats.total_blades == total
