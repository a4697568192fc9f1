#!/usr/bin/env python3
"""Scope preview tool for visual validation.

CLI tool that feeds a sine test signal through the scope in audio-sized
blocks and writes the resulting frame plus diagnostics.

Usage:
    # Defaults from the bundled config
    python scripts/preview_scope.py --config configs/scope.v1.yaml --output_dir outputs/preview

    # Override individual settings
    python scripts/preview_scope.py --width 800 --height 400 --freq 0.01 \
        --total_samples 5000 --block_size 128 --output_dir outputs/preview

Outputs:
    - <prefix>_scope.png: tone-mapped RGBA frame with grid
    - <prefix>_profile.png: vertical glow cross-section at the beam position
    - <prefix>_metadata.yaml: settings, timings and buffer energy
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.scope_renderer import Scope, SineSource
from src.utils import fs, logging_config, validators


def parse_args(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Preview the oscilloscope renderer with a sine test signal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to scope.v1 YAML config (defaults used if omitted)'
    )

    # Scope overrides
    parser.add_argument('--width', type=int, help='Buffer width (px)')
    parser.add_argument('--height', type=int, help='Buffer height (px)')
    parser.add_argument('--tc', type=float, help='Fade time constant (samples)')
    parser.add_argument('--sweep', type=float, help='Width fraction per sample')
    parser.add_argument('--gain', type=float, help='Vertical gain')

    # Signal overrides
    parser.add_argument('--freq', type=float, help='Sine frequency (cycles/sample)')
    parser.add_argument('--amplitude', type=float, help='Sine amplitude')
    parser.add_argument('--block_size', type=int, help='Samples per batch')
    parser.add_argument('--total_samples', type=int, help='Samples fed in total')

    # Output settings
    parser.add_argument(
        '--output_dir',
        type=str,
        default='outputs/preview_scope',
        help='Output directory, default: outputs/preview_scope'
    )
    parser.add_argument(
        '--prefix',
        type=str,
        default='scope',
        help='Output filename prefix, default: scope'
    )
    parser.add_argument(
        '--no_profile',
        action='store_true',
        help='Skip the cross-section plot'
    )

    # Logging
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--log_file', type=str, default=None, help='Also log to this file')

    return parser.parse_args(argv)


def build_config(args) -> validators.ScopeConfigV1:
    """Merge CLI overrides into the (optional) YAML config and re-validate.

    Raises
    ------
    ValueError
        If the merged config is invalid
    """
    if args.config:
        cfg = validators.load_scope_config(args.config)
    else:
        cfg = validators.ScopeConfigV1()

    data = cfg.model_dump(by_alias=True)
    for key in ('width', 'height', 'tc', 'sweep', 'gain'):
        value = getattr(args, key)
        if value is not None:
            data[key] = value
    for key in ('freq', 'amplitude'):
        value = getattr(args, key)
        if value is not None:
            data['source'][key] = value
    for key in ('block_size', 'total_samples'):
        value = getattr(args, key)
        if value is not None:
            data['render'][key] = value

    try:
        return validators.ScopeConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Invalid preview settings: {e}") from e


def plot_cross_section(scope: Scope, column: int, output_path: Path) -> None:
    """Plot glow intensity down one column of the buffer.

    Parameters
    ----------
    scope : Scope
        Rendered scope
    column : int
        Column index (clamped to the buffer)
    output_path : Path
        Output path for the plot
    """
    column = int(np.clip(column, 0, scope.width - 1))
    profile = scope.glow[:, column]

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(np.arange(scope.height), profile, color='tab:green')
    ax.axhline(1.0, color='gray', linestyle='--', linewidth=0.8, label='tone-curve saturation')
    ax.set_xlabel('row (px)')
    ax.set_ylabel('glow')
    ax.set_title(f'Glow cross-section at column {column}')
    ax.legend(loc='upper right')
    fig.tight_layout()
    fig.savefig(output_path, dpi=120)
    plt.close(fig)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_level = "DEBUG" if args.verbose else "INFO"
    logging_config.setup_logging(
        log_level=log_level,
        log_file=args.log_file,
        quiet_libs=["matplotlib", "PIL"],
        context={"app": "preview"}
    )
    logger = logging.getLogger(__name__)

    cfg = build_config(args)
    output_dir = fs.ensure_dir(args.output_dir)
    logger.info(f"Output directory: {output_dir}")

    scope = Scope.from_config(cfg)
    source = SineSource(cfg.source.freq, phase=cfg.source.phase, amplitude=cfg.source.amplitude)

    logger.info(
        f"Feeding {cfg.render.total_samples} samples in blocks of {cfg.render.block_size} "
        f"(freq={cfg.source.freq:g} cycles/sample)"
    )
    start_time = time.time()
    n_blocks = 0
    for block in source.blocks(cfg.render.block_size, cfg.render.total_samples):
        scope.provide_samples(block)
        n_blocks += 1
    render_time = time.time() - start_time

    start_time = time.time()
    frame = scope.as_rgba_image()
    tonemap_time = time.time() - start_time
    logger.info(f"Rendered {n_blocks} blocks in {render_time:.3f}s, tone map {tonemap_time * 1000:.1f}ms")

    prefix = args.prefix
    frame_path = output_dir / f'{prefix}_scope.png'
    fs.atomic_save_image(frame, frame_path)
    logger.info(f"Saved frame: {frame_path}")

    if not args.no_profile:
        profile_path = output_dir / f'{prefix}_profile.png'
        column = int(scope.horiz * scope.width) - 1
        plot_cross_section(scope, column, profile_path)
        logger.info(f"Saved cross-section: {profile_path}")

    metadata = {
        'config': cfg.model_dump(by_alias=True),
        'num_blocks': n_blocks,
        'render_time_s': float(render_time),
        'tonemap_time_s': float(tonemap_time),
        'final_horiz': float(scope.horiz),
        'total_energy': scope.buffer.total_energy(),
        'peak_glow': float(scope.glow.max()),
    }
    metadata_path = output_dir / f'{prefix}_metadata.yaml'
    fs.atomic_yaml_dump(metadata, metadata_path)
    logger.info(f"Saved metadata: {metadata_path}")

    logger.info("Preview complete!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
