"""Tone mapping from glow intensity to an RGBA image, plus the grid overlay.

Tone curve (per channel, then truncated to uint8):
    R = 64  · √min(g, 1)
    G = 255 · √min(g + 0.03, 1)
    B = 224 · √min(g + 0.1, 1)
    A = 255

The green/blue offsets give zero intensity a dim cyan phosphor tint
(0, 44, 70) while red stays black.

The measurement grid darkens pixels by halving R, G and B, so the trace stays
visible underneath. Where two grid lines cross the pixel is halved twice.
"""

import numpy as np

GRID_SPACING = 60
TICK_SPACING = 12
TICK_LEN = 6

# (scale, offset) per colour channel
_TONE_CURVE = (
    (64.0, 0.0),
    (255.0, 0.03),
    (224.0, 0.1),
)


def tone_map(glow: np.ndarray) -> np.ndarray:
    """Map glow intensities to opaque RGBA.

    Parameters
    ----------
    glow : np.ndarray
        Intensities, shape (H, W), float32

    Returns
    -------
    np.ndarray
        Fresh image, shape (H, W, 4), uint8

    Notes
    -----
    Negative intensities saturate to 0, NaN maps to 0.
    """
    h, w = glow.shape
    im = np.full((h, w, 4), 255, dtype=np.uint8)
    for c, (scale, offset) in enumerate(_TONE_CURVE):
        level = np.clip(glow + np.float32(offset), 0.0, 1.0)
        value = np.float32(scale) * np.sqrt(level, dtype=np.float32)
        im[..., c] = np.nan_to_num(value, nan=0.0).astype(np.uint8)
    return im


def _darken(im: np.ndarray, rows: slice, cols: slice) -> None:
    im[rows, cols, :3] >>= 1


def render_hline(im: np.ndarray, x0: int, x1: int, y: int) -> None:
    """Darken row y over columns [x0, x1), clamped to the image."""
    h, w = im.shape[:2]
    if not 0 <= y < h:
        return
    x0, x1 = max(x0, 0), min(x1, w)
    if x1 > x0:
        _darken(im, slice(y, y + 1), slice(x0, x1))


def render_vline(im: np.ndarray, x: int, y0: int, y1: int) -> None:
    """Darken column x over rows [y0, y1), clamped to the image."""
    h, w = im.shape[:2]
    if not 0 <= x < w:
        return
    y0, y1 = max(y0, 0), min(y1, h)
    if y1 > y0:
        _darken(im, slice(y0, y1), slice(x, x + 1))


def render_grid_lines(im: np.ndarray) -> np.ndarray:
    """Overlay the measurement grid in place.

    Full-span lines through the centre and every GRID_SPACING pixels outward
    from it, plus TICK_LEN ticks every TICK_SPACING pixels along the two
    centre axes.

    Parameters
    ----------
    im : np.ndarray
        RGBA image, shape (H, W, 4), uint8; modified in place

    Returns
    -------
    np.ndarray
        The same array, for chaining
    """
    height, width = im.shape[:2]
    x2 = width // 2
    y2 = height // 2

    render_hline(im, 0, width, y2)
    render_vline(im, x2, 0, height)
    for i in range(1, (y2 + GRID_SPACING - 1) // GRID_SPACING):
        render_hline(im, 0, width, y2 + i * GRID_SPACING)
        render_hline(im, 0, width, y2 - i * GRID_SPACING)
    for i in range(1, (x2 + GRID_SPACING - 1) // GRID_SPACING):
        render_vline(im, x2 + i * GRID_SPACING, 0, height)
        render_vline(im, x2 - i * GRID_SPACING, 0, height)
    for i in range(1, (y2 + TICK_SPACING - 1) // TICK_SPACING):
        render_hline(im, x2 - TICK_LEN, x2 + TICK_LEN, y2 - i * TICK_SPACING)
        render_hline(im, x2 - TICK_LEN, x2 + TICK_LEN, y2 + i * TICK_SPACING)
    for i in range(1, (x2 + TICK_SPACING - 1) // TICK_SPACING):
        render_vline(im, x2 + i * TICK_SPACING, y2 - TICK_LEN, y2 + TICK_LEN)
        render_vline(im, x2 - i * TICK_SPACING, y2 - TICK_LEN, y2 + TICK_LEN)
    return im
