#!/usr/bin/env python3
"""
Generate tileable N-dimensional blue noise by energy minimisation.

Method (solid angle): start from histogram-equalised white noise, then keep
swapping 1-3 random element pairs whenever the swap lowers the neighbourhood
energy exp(-|dv|^C - d^2/2.1^2). Values are only permuted, so every channel
stays exactly uniform. The grid is periodic, so the result tiles.

Method (high pass): 4 rounds of a small high-pass convolution, each
followed by histogram equalisation. Faster, lower quality.

Usage:
    python -m bluenoise.generate_blue_noise --size 64 64 --iterations 100000
    python -m bluenoise.generate_blue_noise --size 32 32 --channels 2 --tri
    python -m bluenoise.generate_blue_noise --size 16 16 16 --c-array out/bn3d.h
"""

import argparse
import sys
import time
from pathlib import Path

from .analyze import pattern_to_image, plot_analysis
from .config import DEFAULT_INCREMENTAL_THRESHOLD, BlueNoiseConfig, ConfigError, Method
from .export import (format_c_array, format_mathematica, format_webgl, save_image,
                     validate_export, write_text)
from .optimizer import generate


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Generate tileable N-dimensional blue noise'
    )
    parser.add_argument('--size', type=int, nargs='+', default=[128, 128],
                        help='Extent of each dimension (default: 128 128)')
    parser.add_argument('--channels', type=int, default=1,
                        help='Values per element (default: 1)')
    parser.add_argument('--radius', type=int, default=3,
                        help='Neighbourhood radius for scoring (default: 3)')
    parser.add_argument('--iterations', type=int, default=256 * 1024,
                        help='Swap proposals to evaluate (default: 262144)')
    parser.add_argument('--threshold', type=int, default=DEFAULT_INCREMENTAL_THRESHOLD,
                        help='Element count from which incremental scoring is used '
                             f'(default: {DEFAULT_INCREMENTAL_THRESHOLD})')
    parser.add_argument('--method', choices=[m.value for m in Method],
                        default=Method.SOLID_ANGLE.value,
                        help='Generation method (default: solid-angle)')
    parser.add_argument('--passes', type=int, default=4,
                        help='High-pass rounds (default: 4)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed (default: fresh entropy)')
    parser.add_argument('-o', '--output', type=Path, default=None,
                        help='Output image, .png/.bmp/.ppm (default: auto-named, 2-D only)')
    parser.add_argument('--tri', action='store_true',
                        help='Also save a triangular-distribution remapped image')
    parser.add_argument('--save-initial', action='store_true',
                        help='Also save the equalised white noise starting point')
    parser.add_argument('--c-array', type=Path, default=None,
                        help='Write a C/C++ float array initialiser')
    parser.add_argument('--mathematica', type=Path, default=None,
                        help='Write a Mathematica nested list')
    parser.add_argument('--webgl', type=Path, default=None,
                        help='Write a GLSL lookup function body')
    parser.add_argument('--analyze', action='store_true',
                        help='Save a Fourier analysis plot next to the image')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Quiet mode')
    return parser


def _stem(config: BlueNoiseConfig) -> str:
    dims = 'x'.join(str(d) for d in config.dimensions)
    return f'blue_noise_{dims}_{config.channels}ch'


def run(args) -> int:
    config = BlueNoiseConfig.from_args(args).validate()

    want_image = args.output is not None or config.dimension_count == 2
    if want_image:
        validate_export(config, 'image')
    if args.webgl is not None:
        validate_export(config, 'webgl')
    if not want_image and args.c_array is None and args.mathematica is None and args.webgl is None:
        raise ConfigError(
            f"{config.dimension_count}-D patterns cannot be saved as images; "
            f"pass --c-array, --mathematica or --webgl")
    if args.output is None and want_image:
        args.output = Path('output') / f'{_stem(config)}.png'

    verbose = not args.quiet
    if verbose:
        dims = 'x'.join(str(d) for d in config.dimensions)
        print(f"Generating {dims} blue noise, {config.channels} channel(s), "
              f"method={config.method.value}, seed={config.seed}...")

    start = time.monotonic()
    result = generate(config, verbose=verbose)
    elapsed = time.monotonic() - start

    if verbose:
        if result.final_score is not None:
            print(f"Score: {result.initial_score:.6f} -> {result.final_score:.6f} "
                  f"({result.accepted:,} of {config.iterations:,} swaps accepted)")
        print(f"Done in {elapsed:.1f}s")

    saved = []
    if want_image:
        save_image(result.values, config.dimensions, config.channels, args.output)
        saved.append(args.output)
        if args.tri:
            tri_path = args.output.with_stem(args.output.stem + '_tri')
            save_image(result.values, config.dimensions, config.channels, tri_path,
                       use_remap_tri=True)
            saved.append(tri_path)
        if args.save_initial:
            initial_path = args.output.with_stem(args.output.stem + '_initial')
            save_image(result.initial.ravel(), config.dimensions, config.channels, initial_path)
            saved.append(initial_path)
        if args.analyze:
            analysis_path = args.output.with_stem(args.output.stem + '_analysis')
            img = pattern_to_image(result.values, config.dimensions, 0, config.channels)
            plot_analysis(img, _stem(config), analysis_path)
            saved.append(analysis_path)

    if args.c_array is not None:
        write_text(format_c_array(result.values, config.dimensions, config.channels), args.c_array)
        saved.append(args.c_array)
    if args.mathematica is not None:
        write_text(format_mathematica(result.values, config.dimensions, config.channels),
                   args.mathematica)
        saved.append(args.mathematica)
    if args.webgl is not None:
        write_text(format_webgl(result.values, config.channels), args.webgl)
        saved.append(args.webgl)

    if verbose:
        for path in saved:
            print(f"Saved: {path}")
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        status = run(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    return status


if __name__ == '__main__':
    main()
