from __future__ import annotations

import colorsys

import numpy as np
import pytest

from grassfield.world.blades import CLOVER, COMMON, TALL, BladeType, Segment
from grassfield.world.errors import ConfigurationError
from grassfield.world.mesh_builder import MeshBuffers, Placement, build_blade, build_ground_mesh, draw_color_jitter


def _placement(blade: BladeType, *, position=(0.0, 0.0, 0.0), scale: float = 1.0, jitter=(0.0, 0.0, 0.0)) -> Placement:
    return Placement(
        position=np.array(position, dtype=np.float64),
        rotation=np.eye(3),
        scale=scale,
        blade=blade,
        base_color=(0.3, 0.6, 0.2),
        color_jitter=jitter,
    )


@pytest.mark.parametrize("blade", [COMMON, TALL, CLOVER])
def test_vertex_and_index_counts(blade: BladeType) -> None:
    buf = MeshBuffers()
    build_blade(buf, _placement(blade))
    pos, col, uv, idx = buf.arrays()
    assert pos.shape == (blade.vertex_count, 3)
    assert col.shape == (blade.vertex_count, 4)
    assert uv.shape == (blade.vertex_count, 2)
    assert idx.size == blade.index_count
    assert idx.max() == blade.vertex_count - 1
    assert pos.dtype == np.float32 and idx.dtype == np.uint32


def test_ribbon_tapers_to_apex() -> None:
    blade = BladeType(size=(0.1, 2.0), segments=(Segment(0.06, 0.5), Segment(0.02, 0.3)))
    buf = MeshBuffers()
    build_blade(buf, _placement(blade, position=(5.0, 1.0, -2.0)))
    pos, col, uv, _ = buf.arrays()

    # Pairs: base, after segment 1, after segment 2; then the apex
    widths = [float(pos[k + 1, 0] - pos[k, 0]) for k in (0, 2, 4)]
    assert widths == pytest.approx([0.1, 0.06, 0.02], abs=1e-5)
    heights = pos[[0, 2, 4, 6], 1] - 1.0
    assert heights == pytest.approx([0.0, 1.0, 1.6, 2.0], abs=1e-5)
    assert pos[6, 0] == pytest.approx(5.0) and pos[6, 2] == pytest.approx(-2.0)

    # Alpha carries normalized height
    assert col[:, 3] == pytest.approx([0.0, 0.0, 0.5, 0.5, 0.8, 0.8, 1.0], abs=1e-6)
    assert uv[6] == pytest.approx([0.5, 1.0])
    assert uv[0] == pytest.approx([0.0, 0.0])
    assert uv[1] == pytest.approx([1.0, 0.0])


def test_segment_fractions_are_clamped() -> None:
    blade = BladeType(size=(0.05, 1.0), segments=(Segment(0.03, 0.8), Segment(0.02, 0.8)))
    buf = MeshBuffers()
    build_blade(buf, _placement(blade))
    pos, _, _, _ = buf.arrays()
    assert float(pos[:, 1].max()) == pytest.approx(1.0)
    assert pos[4, 1] == pytest.approx(1.0)


def test_zero_height_blade_has_no_nan() -> None:
    blade = BladeType(size=(0.05, 0.0), segments=(Segment(0.03, 0.5),))
    buf = MeshBuffers()
    build_blade(buf, _placement(blade))
    pos, col, uv, _ = buf.arrays()
    assert np.all(np.isfinite(pos))
    assert np.all(np.isfinite(col))
    assert np.all(col[:, 3] == 0.0)


def test_brightness_gradient_and_ambient_occlusion() -> None:
    blade = BladeType(size=(0.05, 1.0), segments=(Segment(0.03, 0.1), Segment(0.01, 0.9)))
    no_ao = MeshBuffers()
    build_blade(no_ao, _placement(blade), ambient_occlusion=False)
    ao = MeshBuffers()
    build_blade(ao, _placement(blade), ambient_occlusion=True, ao_intensity=0.5)
    c_no, c_ao = no_ao.arrays()[1], ao.arrays()[1]

    _, _, v = colorsys.rgb_to_hsv(0.3, 0.6, 0.2)
    # Base vertex: gradient base brightness, then AO at full intensity
    assert max(c_no[0, :3]) == pytest.approx(v * blade.base_brightness, abs=1e-6)
    assert max(c_ao[0, :3]) == pytest.approx(v * blade.base_brightness * 0.5, abs=1e-6)
    # Above 20% of the height AO no longer applies
    assert c_ao[4, :3] == pytest.approx(c_no[4, :3], abs=1e-6)
    # Tip is brighter than the base
    assert max(c_no[6, :3]) > max(c_no[0, :3])


def test_color_jitter_is_applied_once_per_blade() -> None:
    blade = BladeType(size=(0.05, 1.0), segments=(Segment(0.03, 0.5),), gradient=False)
    buf = MeshBuffers()
    build_blade(buf, _placement(blade, jitter=(0.1, 0.0, 0.0)), ambient_occlusion=False)
    col = buf.arrays()[1]
    h0, s0, v0 = colorsys.rgb_to_hsv(0.3, 0.6, 0.2)
    expected = colorsys.hsv_to_rgb((h0 + 0.1) % 1.0, s0, v0)
    for row in col:
        assert row[:3] == pytest.approx(expected, abs=1e-6)


def test_draw_color_jitter_within_ranges() -> None:
    rng = np.random.default_rng(4)
    for _ in range(50):
        dh, ds, dv = draw_color_jitter(COMMON, rng)
        assert COMMON.hue_range[0] <= dh <= COMMON.hue_range[1]
        assert COMMON.saturation_range[0] <= ds <= COMMON.saturation_range[1]
        assert COMMON.value_range[0] <= dv <= COMMON.value_range[1]


def test_indices_offset_for_batched_blades() -> None:
    buf = MeshBuffers()
    build_blade(buf, _placement(COMMON))
    build_blade(buf, _placement(COMMON, position=(1.0, 0.0, 0.0)))
    _, _, _, idx = buf.arrays()
    n = COMMON.vertex_count
    second = idx[COMMON.index_count:]
    assert second.min() == n
    assert second.max() == 2 * n - 1


def test_apex_closed_from_both_sides() -> None:
    buf = MeshBuffers()
    build_blade(buf, _placement(COMMON))
    idx = buf.arrays()[3].reshape(-1, 3)
    front, back = idx[-2], idx[-1]
    assert sorted(front.tolist()) == sorted(back.tolist())
    assert front.tolist() != back.tolist()


def test_blade_type_validation() -> None:
    with pytest.raises(ConfigurationError):
        BladeType(range_min=0.6, range_max=0.4).validate()
    with pytest.raises(ConfigurationError):
        BladeType(size=(-0.1, 1.0)).validate()
    with pytest.raises(ConfigurationError):
        BladeType(segments=(Segment(0.01, -0.2),)).validate()


def test_ground_mesh(flat_terrain) -> None:
    vbo, ibo = build_ground_mesh(flat_terrain, 4, 3, step=1.0)
    assert vbo.shape == (5 * 4, 9)
    assert ibo.size == 4 * 3 * 6
    assert np.allclose(vbo[:, 4], 1.0)
    assert vbo[0, 6:] == pytest.approx([0.3, 0.6, 0.2])
