"""Oscilloscope trace renderer.

Turns sample streams into a glowing phosphor trace:
    - Analytic approximators: cheap exp(-x²) and erf for per-pixel kernels
    - Glow buffer: float32 intensity grid with fade and additive splats
    - Scope: sweep/retrace model driving line splats from samples
    - Tone map: fixed phosphor palette + measurement grid overlay
    - Sources: periodic sample generators for previews and tests

Modules:
    - approx: gauss_approx, erf_approx, CLIP_FACTOR
    - glow: GlowBuffer
    - scope: Scope
    - tonemap: tone_map, render_grid_lines
    - sources: SineSource

Invariants:
    - All splat coordinates in pixels; clipping happens inside the buffer
    - Beam radius and brightness are fixed by the trace driver
    - as_rgba() never mutates glow state

Used by:
    - scripts/preview_scope.py: offline PNG previews
"""

from .approx import CLIP_FACTOR, erf_approx, gauss_approx
from .glow import GlowBuffer
from .scope import Scope
from .sources import SineSource

__all__ = [
    'CLIP_FACTOR',
    'GlowBuffer',
    'Scope',
    'SineSource',
    'erf_approx',
    'gauss_approx',
]
