"""Phosphor Scope: analog oscilloscope trace rendering.

This package renders a stream of audio-like samples onto a persistent glow
buffer that brightens where the beam passes and fades exponentially, then
tone-maps it into an RGBA image with a measurement grid.

Architecture layers (strict one-way dependency):
    scripts/ → src/scope_renderer/ → src/utils/

Key invariants:
    - Glow buffer is float32, row-major, origin top-left
    - Fade time constant is measured in samples, not seconds
    - No segment is ever drawn across a sweep wrap (flyback is invisible)
    - YAML-only configs, validated with pydantic
"""

__version__ = "0.3.0"
