"""Glow accumulation buffer and splatting primitives.

The buffer is a (height, width) float32 grid of phosphor intensities, row-major
with the origin at the top-left. Splats are additive: each primitive evaluates
an analytic kernel over a clip box and adds it in place.

Architecture:
    - add_dot: separable 2D Gaussian, clip box of CLIP_FACTOR·r around centre
    - add_line: Gaussian beam swept along a segment, closed form via erf
    - add_line_step: same capsule approximated by evenly spaced dots
    - fade: uniform multiplicative decay

Invariants:
    - Clip boxes are clamped to [0, width)×[0, height) before any write
    - Pixel centres are at integer coordinates
    - A line's total energy equals a dot's (amp·π·r²), whatever its length

Usage:
    buf = GlowBuffer(640, 480)
    buf.add_line(10.0, 240.0, 300.0, 120.0, r=1.0, amp=2.0)
    buf.fade(0.9)
"""

import math
from typing import Tuple

import numpy as np

from .approx import CLIP_FACTOR, erf_approx, gauss_approx

# Scale of the along-beam coordinate relative to the across-beam one.
_USCALE = 2.0 / math.sqrt(math.pi)


def _clip_span(lo: float, hi: float, limit: int) -> Tuple[int, int]:
    """Round a float interval up to pixel indices and clamp to [0, limit].

    Non-finite bounds clamp like out-of-range ones; NaN maps to 0.
    """
    bounds = np.ceil(np.array([lo, hi], dtype=np.float64))
    bounds = np.nan_to_num(bounds, nan=0.0, posinf=float(limit), neginf=0.0)
    i0, i1 = np.clip(bounds, 0, limit).astype(np.int64)
    return int(i0), int(i1)


class GlowBuffer:
    """Phosphor intensity grid with fade and additive splats.

    Attributes
    ----------
    width : int
        Buffer width in pixels
    height : int
        Buffer height in pixels
    glow : np.ndarray
        Intensities, shape (height, width), float32, C-contiguous
    """

    def __init__(self, width: int, height: int):
        """Create an all-zero buffer.

        Parameters
        ----------
        width, height : int
            Positive buffer dimensions in pixels

        Raises
        ------
        ValueError
            If either dimension is not a positive integer
        """
        for name, value in (('width', width), ('height', height)):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        self.width = int(width)
        self.height = int(height)
        self.glow = np.zeros((self.height, self.width), dtype=np.float32)

    @property
    def flat(self) -> np.ndarray:
        """1-D view of the buffer indexed by row*width + col."""
        return self.glow.reshape(-1)

    def clear(self) -> None:
        """Reset every cell to zero."""
        self.glow.fill(0.0)

    def total_energy(self) -> float:
        """Sum of all cells, accumulated in float64."""
        return float(self.glow.sum(dtype=np.float64))

    def fade(self, factor: float) -> None:
        """Multiply every cell by factor (1.0 is a no-op, 0.0 clears)."""
        self.glow *= np.float32(factor)

    def add_dot(self, x: float, y: float, r: float, amp: float) -> None:
        """Add a Gaussian bump centred at (x, y).

        Parameters
        ----------
        x, y : float
            Centre in pixels
        r : float
            Radius, must be > 0
        amp : float
            Peak amplitude; total deposited energy is ≈ amp·π·r²

        Notes
        -----
        Only pixels within CLIP_FACTOR·r of the centre on both axes are
        evaluated. A dot entirely off the buffer is a no-op.
        """
        i0, i1 = _clip_span(x - CLIP_FACTOR * r, x + CLIP_FACTOR * r, self.width)
        j0, j1 = _clip_span(y - CLIP_FACTOR * r, y + CLIP_FACTOR * r, self.height)
        if i1 <= i0 or j1 <= j0:
            return

        r_recip = np.float32(1.0 / r)
        xs = np.arange(i0, i1, dtype=np.float32)
        ys = np.arange(j0, j1, dtype=np.float32)
        zx = gauss_approx(r_recip * (xs - np.float32(x)))
        zy_amp = gauss_approx(r_recip * (ys - np.float32(y))) * np.float32(amp)
        self.glow[j0:j1, i0:i1] += np.outer(zy_amp, zx).astype(np.float32)

    def add_line_step(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        r: float,
        amp: float,
        steps: int = 20
    ) -> None:
        """Approximate a beam segment with evenly spaced dots.

        Each of the `steps` dots sits at the centre of its sub-segment and
        carries amp/steps, so the total matches add_line for long segments.
        Cheaper but lumpier than add_line.
        """
        step = 1.0 / steps
        amp = amp / steps
        for i in range(steps):
            t = (i + 0.5) * step
            self.add_dot(x0 + (x1 - x0) * t, y0 + (y1 - y0) * t, r, amp)

    def add_line(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        r: float,
        amp: float
    ) -> None:
        """Add the glow of a Gaussian beam swept from (x0, y0) to (x1, y1).

        Parameters
        ----------
        x0, y0, x1, y1 : float
            Segment endpoints in pixels
        r : float
            Beam radius, must be > 0
        amp : float
            Energy scale; the capsule deposits ≈ amp·π·r² in total

        Notes
        -----
        Pixels are projected into a rotated frame (u along the beam, v across
        it, both in radius units). The across-beam profile is gauss_approx(v);
        the along-beam profile is its integral over the swept length,
        erf_approx(u) - erf_approx(u - ustep). Segments shorter than one pixel
        fall back to a single dot at the midpoint. A segment with a NaN or
        infinite endpoint is a no-op.
        """
        dx = x1 - x0
        dy = y1 - y0
        len2 = dx * dx + dy * dy
        # Non-finite length would zero the beam frame and write NaN into the box
        if not math.isfinite(len2):
            return
        if len2 < 1.0:
            self.add_dot((x0 + x1) * 0.5, (y0 + y1) * 0.5, r, amp)
            return

        length = math.sqrt(len2)
        uvscale = 1.0 / (r * length)
        vx = -dy * uvscale
        vy = dx * uvscale
        ux = vy * _USCALE
        uy = -vx * _USCALE
        u0 = -x0 * ux - y0 * uy
        v0 = -x0 * vx - y0 * vy
        ustep = dx * ux + dy * uy
        amp = r / _USCALE * amp / length

        i0, i1 = _clip_span(min(x0, x1) - CLIP_FACTOR * r,
                            max(x0, x1) + CLIP_FACTOR * r, self.width)
        j0, j1 = _clip_span(min(y0, y1) - CLIP_FACTOR * r,
                            max(y0, y1) + CLIP_FACTOR * r, self.height)
        if i1 <= i0 or j1 <= j0:
            return

        # TODO: for steep diagonals most of the box is empty; bound each row
        # by the capsule's horizontal extent instead of the full box.
        jj, ii = np.meshgrid(
            np.arange(j0, j1, dtype=np.float32),
            np.arange(i0, i1, dtype=np.float32),
            indexing='ij'
        )
        u = np.float32(ux) * ii + np.float32(uy) * jj + np.float32(u0)
        v = np.float32(vx) * ii + np.float32(vy) * jj + np.float32(v0)
        z = np.float32(amp) * gauss_approx(v) * (erf_approx(u) - erf_approx(u - np.float32(ustep)))
        self.glow[j0:j1, i0:i1] += z.astype(np.float32)
