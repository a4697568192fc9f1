"""Oscilloscope state and trace driver.

A Scope owns one GlowBuffer and the sweep state needed to turn an ordered
stream of samples into beam segments:

    samples → provide_samples (fade + sweep) → GlowBuffer.add_line → as_rgba

Fade model:
    Decay is applied once per batch, factor = exp(-len(batch) / tc), before
    any sample of the batch is plotted. tc is in samples, not seconds, so
    callers should keep batches small (an audio buffer's worth).

Sweep model:
    x = horiz · width, y = height/2 - (height/2 · gain) · sample.
    horiz advances by sweep per sample; when it passes 1.0 it wraps and the
    trace breaks, so the flyback is never drawn.

Concurrency:
    No internal locking. Callers must serialise every call on one instance.

Usage:
    scope = Scope(640, 480)
    scope.provide_samples(block)
    frame = scope.as_rgba()  # flat uint8, len == 640*480*4
"""

import logging
import math
from typing import Iterable, Optional, Tuple

import numpy as np

from .glow import GlowBuffer
from .tonemap import render_grid_lines, tone_map

logger = logging.getLogger(__name__)

# Beam thickness and brightness used by the trace driver.
BEAM_RADIUS = 1.0
BEAM_AMP = 2.0


class Scope:
    """Analog oscilloscope display simulation.

    Attributes
    ----------
    buffer : GlowBuffer
        Exclusively owned phosphor buffer
    tc : float
        Fade time constant in samples
    sweep : float
        Horizontal advance per sample, fraction of width
    horiz : float
        Current sweep position, fraction of width in [0, 1)
    gain : float
        Vertical scale; amplitude 1.0 spans half the height
    last_point : tuple of float or None
        Last plotted (x, y) in pixels; None means the next sample starts a
        new trace without a connecting segment
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        tc: float = 1000.0,
        sweep: float = 0.001,
        gain: float = 1.0
    ):
        """Create a blank scope with the sweep at the left edge.

        Parameters
        ----------
        width, height : int
            Positive buffer dimensions in pixels
        tc : float
            Fade time constant in samples, must be > 0. Default 1000.0
        sweep : float
            Horizontal advance per sample as a fraction of width, default
            0.001. Not validated here; with sweep <= 0 the sweep never
            passes 1.0, so it never wraps and the trace is never broken.
            ScopeConfigV1 bounds it to (0, 1].
        gain : float
            Vertical scale, not validated. Default 1.0 (amplitude 1.0
            reaches the top and bottom edges)

        Raises
        ------
        ValueError
            If width or height is not a positive integer, or tc <= 0
        """
        if not tc > 0:
            raise ValueError(f"tc must be positive, got {tc}")
        self.buffer = GlowBuffer(width, height)
        self.tc = float(tc)
        self.sweep = float(sweep)
        self.horiz = 0.0
        self.gain = float(gain)
        self.last_point: Optional[Tuple[float, float]] = None

        logger.info(
            f"Scope initialized: {self.width}×{self.height} px, "
            f"tc={self.tc:g} samples, sweep={self.sweep:g}/sample"
        )

    @classmethod
    def from_config(cls, cfg) -> 'Scope':
        """Build a scope from a validated ScopeConfigV1."""
        return cls(cfg.width, cfg.height, tc=cfg.tc, sweep=cfg.sweep, gain=cfg.gain)

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    @property
    def glow(self) -> np.ndarray:
        return self.buffer.glow

    def reset(self) -> None:
        """Clear the glow and restart the sweep at the left edge."""
        self.buffer.clear()
        self.horiz = 0.0
        self.last_point = None

    # Direct drawing, for tests and alternative front-ends

    def fade(self, factor: float) -> None:
        self.buffer.fade(factor)

    def add_dot(self, x: float, y: float, r: float, amp: float) -> None:
        self.buffer.add_dot(x, y, r, amp)

    def add_line(self, x0: float, y0: float, x1: float, y1: float, r: float, amp: float) -> None:
        self.buffer.add_line(x0, y0, x1, y1, r, amp)

    def add_line_step(self, x0: float, y0: float, x1: float, y1: float, r: float, amp: float) -> None:
        self.buffer.add_line_step(x0, y0, x1, y1, r, amp)

    def provide_samples(self, samples: Iterable[float]) -> None:
        """Fade the buffer and plot a batch of samples.

        Parameters
        ----------
        samples : iterable of float
            Ordered samples, nominally in [-1, 1]; values outside that band
            plot off-screen and are clipped by the buffer

        Notes
        -----
        The fade is applied once for the whole batch, not per sample.
        """
        if not isinstance(samples, np.ndarray):
            samples = list(samples)
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        self.buffer.fade(math.exp(-len(samples) / self.tc))

        y0 = self.height * 0.5
        yscale = y0 * self.gain
        width = float(self.width)
        for sample in samples.tolist():
            x = self.horiz * width
            y = y0 - yscale * sample
            if self.last_point is not None:
                xlast, ylast = self.last_point
                self.buffer.add_line(xlast, ylast, x, y, BEAM_RADIUS, BEAM_AMP)
            self.last_point = (x, y)
            self.horiz += self.sweep
            if self.horiz > 1.0:
                self.horiz -= 1.0
                self.last_point = None
                logger.debug(f"Sweep wrapped, trace broken (horiz={self.horiz:.6f})")

    def as_rgba_image(self) -> np.ndarray:
        """Tone-mapped frame with grid, shape (height, width, 4), uint8."""
        return render_grid_lines(tone_map(self.buffer.glow))

    def as_rgba(self) -> np.ndarray:
        """Tone-mapped frame as a flat uint8 array of length width*height*4.

        Row-major, interleaved R, G, B, A. A fresh array is returned on every
        call and the glow buffer is left untouched.
        """
        return self.as_rgba_image().reshape(-1)
