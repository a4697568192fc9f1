"""Periodic sample sources for driving the scope.

Any iterable of floats can feed Scope.provide_samples; this module only
provides a phase-continuous sine oscillator for previews and tests.
"""

from typing import Iterator

import numpy as np


class SineSource:
    """Sine oscillator with frequency in cycles per sample.

    Phase is kept in [0, 1) between calls so consecutive blocks join without
    a discontinuity.
    """

    def __init__(self, freq: float, phase: float = 0.0, amplitude: float = 1.0):
        self.freq = float(freq)
        self.phase = float(phase) % 1.0
        self.amplitude = float(amplitude)

    def process(self, n: int) -> np.ndarray:
        """Generate the next n samples as float32."""
        phases = self.phase + self.freq * np.arange(n, dtype=np.float64)
        out = (self.amplitude * np.sin(2.0 * np.pi * phases)).astype(np.float32)
        next_phase = self.phase + self.freq * n
        self.phase = float(next_phase - np.floor(next_phase))
        return out

    def blocks(self, block_size: int, total: int) -> Iterator[np.ndarray]:
        """Yield blocks of at most block_size samples, total samples overall."""
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}")
        remaining = total
        while remaining > 0:
            n = min(block_size, remaining)
            yield self.process(n)
            remaining -= n
