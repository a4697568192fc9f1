"""Unit tests for the glow buffer and splat primitives.

Test suites:
1. Construction & validation
2. Fade (identity, clear, linearity)
3. Dot splats (energy, clip box, boundary handling)
4. Line splats (degenerate fallback, energy, shape, clipping)
5. Stepped lines vs closed form

Fixtures:
- buf: 120×80 zero buffer
- big_buf: 200×200 zero buffer for energy checks

Run:
    pytest tests/test_glow_buffer.py -v
"""

import math

import numpy as np
import pytest

from src.scope_renderer.approx import CLIP_FACTOR, gauss_approx
from src.scope_renderer.glow import GlowBuffer


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def buf():
    """Small zero buffer."""
    return GlowBuffer(120, 80)


@pytest.fixture
def big_buf():
    """Large zero buffer so kernels are never clipped by the edges."""
    return GlowBuffer(200, 200)


# ============================================================================
# TEST SUITE 1: Construction & Validation
# ============================================================================

def test_initial_state(buf):
    assert buf.width == 120
    assert buf.height == 80
    assert buf.glow.shape == (80, 120)
    assert buf.glow.dtype == np.float32
    assert buf.glow.flags['C_CONTIGUOUS']
    assert not buf.glow.any()


def test_flat_view_is_row_major(buf):
    buf.glow[3, 7] = 1.5
    assert buf.flat.shape == (120 * 80,)
    assert buf.flat[3 * 120 + 7] == pytest.approx(1.5)
    buf.flat[0] = 2.0
    assert buf.glow[0, 0] == pytest.approx(2.0)


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10), (10.5, 10), (True, 10)])
def test_invalid_dimensions_rejected(width, height):
    with pytest.raises(ValueError):
        GlowBuffer(width, height)


def test_clear(buf):
    buf.add_dot(60.0, 40.0, 2.0, 1.0)
    buf.clear()
    assert buf.total_energy() == 0.0


# ============================================================================
# TEST SUITE 2: Fade
# ============================================================================

def test_fade_one_is_noop(buf):
    buf.add_dot(30.0, 30.0, 3.0, 1.0)
    before = buf.glow.copy()
    buf.fade(1.0)
    np.testing.assert_array_equal(buf.glow, before)


def test_fade_zero_clears(buf):
    buf.add_line(5.0, 5.0, 100.0, 70.0, 1.0, 2.0)
    buf.fade(0.0)
    assert not buf.glow.any()


def test_fade_is_linear(buf):
    """fade(a); fade(b) ≡ fade(a*b)."""
    buf.add_line(10.0, 10.0, 90.0, 60.0, 1.5, 2.0)
    other = GlowBuffer(buf.width, buf.height)
    other.glow[:] = buf.glow

    buf.fade(0.8)
    buf.fade(0.5)
    other.fade(0.4)
    np.testing.assert_allclose(buf.glow, other.glow, rtol=1e-6, atol=1e-7)


def test_fade_scales_energy(buf):
    buf.add_dot(60.0, 40.0, 2.0, 1.0)
    e0 = buf.total_energy()
    buf.fade(0.25)
    assert buf.total_energy() == pytest.approx(0.25 * e0, rel=1e-5)


# ============================================================================
# TEST SUITE 3: Dot Splats
# ============================================================================

@pytest.mark.physics
@pytest.mark.parametrize("r", [1.0, 2.0, 3.0])
@pytest.mark.parametrize("amp", [0.5, 2.0])
def test_dot_energy_matches_gaussian_integral(big_buf, r, amp):
    """Total energy converges to amp·π·r² (2D Gaussian integral)."""
    big_buf.add_dot(100.0, 100.0, r, amp)
    expected = amp * math.pi * r * r
    assert big_buf.total_energy() == pytest.approx(expected, rel=0.02)


@pytest.mark.physics
def test_dot_clip_box_captures_most_energy(big_buf):
    """Clip box at CLIP_FACTOR·r keeps > 99% of an unclipped evaluation."""
    x, y, r = 100.0, 100.0, 2.0
    big_buf.add_dot(x, y, r, 1.0)

    ii = np.arange(big_buf.width, dtype=np.float64)
    jj = np.arange(big_buf.height, dtype=np.float64)
    full = np.outer(gauss_approx((jj - y) / r), gauss_approx((ii - x) / r)).sum()
    assert big_buf.total_energy() / full > 0.99


def test_dot_touches_only_clip_box(buf):
    x, y, r = 50.2, 30.7, 2.0
    buf.add_dot(x, y, r, 1.0)
    rows, cols = np.nonzero(buf.glow)
    assert cols.min() >= math.ceil(x - CLIP_FACTOR * r)
    assert cols.max() < math.ceil(x + CLIP_FACTOR * r)
    assert rows.min() >= math.ceil(y - CLIP_FACTOR * r)
    assert rows.max() < math.ceil(y + CLIP_FACTOR * r)


def test_dot_peak_at_integer_centre(buf):
    buf.add_dot(40.0, 20.0, 1.0, 2.0)
    assert buf.glow[20, 40] == pytest.approx(2.0, rel=1e-6)
    assert buf.glow[20, 41] == pytest.approx(2.0 * gauss_approx(1.0), rel=1e-5)
    assert np.unravel_index(buf.glow.argmax(), buf.glow.shape) == (20, 40)


def test_dot_strictly_increases_energy(buf):
    buf.add_dot(10.0, 10.0, 1.0, 1.0)
    e0 = buf.total_energy()
    buf.add_dot(10.5, 11.0, 0.7, 0.3)
    assert buf.total_energy() > e0


@pytest.mark.parametrize("x,y", [
    (-50.0, 40.0),
    (500.0, 40.0),
    (60.0, -50.0),
    (60.0, 500.0),
    (-1e9, -1e9),
    (float('inf'), 10.0),
    (float('nan'), 10.0),
])
def test_dot_outside_buffer_is_noop(buf, x, y):
    buf.add_dot(x, y, 1.0, 1.0)
    assert not buf.glow.any()


def test_dot_partially_clipped_at_corner(buf):
    buf.add_dot(0.0, 0.0, 2.0, 1.0)
    # Only the quadrant inside the buffer is deposited
    expected_quadrant = sum(
        gauss_approx(i / 2.0) * gauss_approx(j / 2.0)
        for i in range(0, 5) for j in range(0, 5)
    )
    assert buf.total_energy() == pytest.approx(expected_quadrant, rel=1e-5)
    assert buf.glow[0, 0] == pytest.approx(1.0)


# ============================================================================
# TEST SUITE 4: Line Splats
# ============================================================================

def test_degenerate_line_equals_dot():
    """A zero-length line is exactly a dot at that point."""
    a = GlowBuffer(40, 30)
    b = GlowBuffer(40, 30)
    a.add_line(0.0, 0.0, 0.0, 0.0, 1.0, 2.0)
    b.add_dot(0.0, 0.0, 1.0, 2.0)
    np.testing.assert_array_equal(a.glow, b.glow)


def test_subpixel_line_uses_midpoint_dot():
    a = GlowBuffer(40, 30)
    b = GlowBuffer(40, 30)
    a.add_line(10.0, 10.0, 10.5, 10.25, 1.0, 2.0)
    b.add_dot(10.25, 10.125, 1.0, 2.0)
    np.testing.assert_array_equal(a.glow, b.glow)


@pytest.mark.physics
@pytest.mark.parametrize("p0,p1", [
    ((50.0, 100.0), (150.0, 100.0)),
    ((60.0, 40.0), (140.0, 160.0)),
    ((100.0, 95.0), (103.0, 98.0)),
    ((100.0, 30.0), (100.0, 170.0)),
])
def test_line_energy_independent_of_length(big_buf, p0, p1):
    """Any line deposits ≈ amp·π·r², the same as a single dot."""
    r, amp = 1.5, 2.0
    big_buf.add_line(p0[0], p0[1], p1[0], p1[1], r, amp)
    assert big_buf.total_energy() == pytest.approx(amp * math.pi * r * r, rel=0.03)


def test_horizontal_line_profile(big_buf):
    big_buf.add_line(40.0, 100.0, 160.0, 100.0, 1.0, 2.0)
    column = big_buf.glow[:, 100]
    # Peak on the beam row, symmetric falloff
    assert column.argmax() == 100
    assert column[99] == pytest.approx(column[101], rel=1e-4)
    assert column[99] < column[100]
    # Uniform along the interior of the segment
    row = big_buf.glow[100, 60:140]
    assert row.max() - row.min() < 1e-3 * row.max()


def test_line_is_symmetric_in_endpoints(big_buf):
    other = GlowBuffer(big_buf.width, big_buf.height)
    big_buf.add_line(30.0, 40.0, 170.0, 120.0, 1.0, 2.0)
    other.add_line(170.0, 120.0, 30.0, 40.0, 1.0, 2.0)
    np.testing.assert_allclose(big_buf.glow, other.glow, atol=1e-5)


def test_line_fades_past_endpoints(big_buf):
    big_buf.add_line(50.0, 100.0, 150.0, 100.0, 1.0, 2.0)
    mid = big_buf.glow[100, 100]
    assert big_buf.glow[100, 50] == pytest.approx(0.5 * mid, rel=0.05)
    assert big_buf.glow[100, 45] < 0.01 * mid


def test_line_clipped_at_edges_never_writes_out_of_range(buf):
    buf.add_line(-40.0, -20.0, 200.0, 150.0, 2.0, 2.0)
    assert np.isfinite(buf.glow).all()
    assert buf.glow.min() > -1e-6
    assert buf.total_energy() > 0.0


@pytest.mark.parametrize("bad", [float('inf'), float('-inf'), float('nan')])
@pytest.mark.parametrize("which", [0, 1, 2, 3])
def test_line_with_non_finite_endpoint_is_noop(buf, bad, which):
    """One bad coordinate must not poison the buffer with NaN."""
    coords = [10.0, 25.0, 11.0, 26.0]
    coords[which] = bad
    buf.add_line(*coords, 1.0, 2.0)
    assert np.isfinite(buf.glow).all()
    assert not buf.glow.any()


@pytest.mark.parametrize("bad", [float('inf'), float('-inf'), float('nan')])
def test_line_step_with_non_finite_endpoint_stays_finite(buf, bad):
    buf.add_line_step(10.0, 25.0, 11.0, bad, 1.0, 2.0)
    buf.add_line_step(bad, 25.0, 40.0, 30.0, 1.0, 2.0)
    assert np.isfinite(buf.glow).all()


def test_line_with_overflowing_length_is_noop(buf):
    buf.add_line(10.0, 25.0, 10.0, 1e200, 1.0, 2.0)
    assert np.isfinite(buf.glow).all()


def test_line_entirely_off_buffer_is_noop(buf):
    buf.add_line(-100.0, -100.0, -50.0, -60.0, 1.0, 2.0)
    buf.add_line(500.0, 10.0, 700.0, 60.0, 1.0, 2.0)
    assert not buf.glow.any()


# ============================================================================
# TEST SUITE 5: Stepped Lines
# ============================================================================

@pytest.mark.physics
def test_line_step_energy_matches_closed_form(big_buf):
    stepped = GlowBuffer(big_buf.width, big_buf.height)
    big_buf.add_line(80.0, 90.0, 110.0, 110.0, 1.0, 2.0)
    stepped.add_line_step(80.0, 90.0, 110.0, 110.0, 1.0, 2.0)
    assert stepped.total_energy() == pytest.approx(big_buf.total_energy(), rel=0.03)


def test_line_step_places_centred_dots():
    stepped = GlowBuffer(60, 20)
    manual = GlowBuffer(60, 20)
    stepped.add_line_step(10.0, 10.0, 50.0, 10.0, 1.0, 2.0, steps=4)
    for t in (0.125, 0.375, 0.625, 0.875):
        manual.add_dot(10.0 + 40.0 * t, 10.0, 1.0, 0.5)
    np.testing.assert_allclose(stepped.glow, manual.glow, rtol=1e-6)
