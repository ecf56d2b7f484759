"""
Writers for finished patterns.

All writers take the flat value array (element_count * channels values,
dimension 0 varying fastest), the grid extents and the channel count.
"""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
from PIL import Image

from .config import BlueNoiseConfig, ConfigError

IMAGE_SUFFIXES = ('.png', '.bmp', '.ppm')
MAX_IMAGE_CHANNELS = 3
MAX_GLSL_CHANNELS = 4


def validate_export(config: BlueNoiseConfig, fmt: str):
    """Reject configs a writer cannot represent, before generating anything."""
    if fmt == 'image':
        if config.dimension_count != 2:
            raise ConfigError(
                f"image output needs 2 dimensions, got {config.dimension_count}")
        if config.channels > MAX_IMAGE_CHANNELS:
            raise ConfigError(
                f"image output holds at most {MAX_IMAGE_CHANNELS} channels, "
                f"got {config.channels}")
    elif fmt == 'webgl':
        if config.channels > MAX_GLSL_CHANNELS:
            raise ConfigError(
                f"GLSL output holds at most vec{MAX_GLSL_CHANNELS}, "
                f"got {config.channels} channels")
    elif fmt not in ('c', 'mathematica'):
        raise ConfigError(f"unknown export format: {fmt}")


def remap_tri(v: np.ndarray) -> np.ndarray:
    """Reshape a uniform distribution into a triangular one."""
    v = np.asarray(v, dtype=np.float64)
    r2 = 0.5 * v
    low = np.sqrt(r2)
    high = 1.0 - np.sqrt(np.maximum(0.5 - r2, 0.0))
    return np.where(v < 0.5, low, high)


def float_to_bytes(values, channels: int, use_remap_tri: bool = False) -> np.ndarray:
    """Quantise to 8-bit RGB, one row per element.

    1 channel is splatted to grey, 2 channels fill red/green with blue zero.
    """
    if not 1 <= channels <= MAX_IMAGE_CHANNELS:
        raise ConfigError(f"cannot convert {channels} channels to RGB")
    v = np.asarray(values, dtype=np.float64).reshape(-1, channels)
    if use_remap_tri:
        v = remap_tri(v)
    quantised = np.clip((v * 256.0).astype(np.int64), 0, 255).astype(np.uint8)
    if channels == 1:
        return np.repeat(quantised, 3, axis=1)
    rgb = np.zeros((len(quantised), 3), dtype=np.uint8)
    rgb[:, :channels] = quantised
    return rgb


def save_image(values, dimensions, channels: int, path: Path, use_remap_tri: bool = False):
    """Write a 2-D pattern as PNG/BMP/PPM; width is dimension 0."""
    if len(dimensions) != 2:
        raise ConfigError(f"image output needs 2 dimensions, got {len(dimensions)}")
    path = Path(path)
    if path.suffix.lower() not in IMAGE_SUFFIXES:
        raise ConfigError(f"unsupported image type {path.suffix!r}, use one of {IMAGE_SUFFIXES}")
    width, height = dimensions
    rgb = float_to_bytes(values, channels, use_remap_tri).reshape(height, width, 3)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(rgb).save(path)


def _nested_list(values, dimensions, channels: int) -> str:
    """Brace-nested list, innermost braces over dimension 0."""
    dims = list(dimensions)
    n = math.prod(dims)
    v = np.asarray(values, dtype=np.float32).reshape(n, channels)
    strides = [math.prod(dims[:d]) for d in range(len(dims))]
    out = []
    for i in range(n):
        coords = [(i // strides[d]) % dims[d] for d in range(len(dims))]
        for c in coords:
            if c != 0:
                break
            out.append('{')

        if channels == 1:
            out.append(f'{v[i, 0]:.8f}')
        else:
            out.append('{' + ', '.join(f'{x:.8f}' for x in v[i]) + '}')

        for d, c in enumerate(coords):
            if c == dims[d] - 1:
                out.append('}')
            else:
                out.append(',')
                if d > 0:
                    out.append('\n')
                break
    return ''.join(out)


def format_c_array(values, dimensions, channels: int, name: str = 'blueNoise') -> str:
    """C/C++ initialiser, indexed name[d(D-1)]...[d0][channel]."""
    decl = f'static const float {name}'
    decl += ''.join(f'[{d}]' for d in reversed(list(dimensions)))
    if channels > 1:
        decl += f'[{channels}]'
    return f'{decl} = \n{_nested_list(values, dimensions, channels)};\n\n'


def format_mathematica(values, dimensions, channels: int) -> str:
    return _nested_list(values, dimensions, channels) + '\n\n'


def _glsl_value(v: np.ndarray) -> str:
    if len(v) == 1:
        return f'{v[0]:.8f}'
    return f'vec{len(v)}(' + ', '.join(f'{x:.8f}' for x in v) + ')'


def _webgl_tree(out: list, v: np.ndarray, name: str, lo: int, high: int):
    if high - lo == 1:
        out.append(f'return {_glsl_value(v[lo])};')
        return
    mid = (lo + high) // 2
    out.append(f'if({name} < {mid}) \n{{\n')
    _webgl_tree(out, v, name, lo, mid)
    out.append('} else {\n')
    _webgl_tree(out, v, name, mid, high)
    out.append('\n}')


def format_webgl(values, channels: int, name: str = 'index') -> str:
    """GLSL binary-search lookup returning the value for flat index `name`."""
    if channels > MAX_GLSL_CHANNELS:
        raise ConfigError(f"GLSL output holds at most vec{MAX_GLSL_CHANNELS}")
    v = np.asarray(values, dtype=np.float32).reshape(-1, channels)
    out = []
    _webgl_tree(out, v, name, 0, len(v))
    return ''.join(out)


def write_text(text: str, path: Path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
