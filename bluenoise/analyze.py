#!/usr/bin/env python3
"""
Fourier analysis of generated 2-D patterns.

Blue noise should show a dark centre (little low-frequency power) in the 2D
spectrum and a radial power curve rising towards Nyquist.

Usage:
    python -m bluenoise.analyze -i output/blue_noise_128x128_1ch.png
"""

import argparse
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
from numpy.fft import fft2, fftshift
from PIL import Image


def load_image(path: Path) -> np.ndarray:
    """Load image as grayscale float array in [0, 1]."""
    img = Image.open(path).convert('L')
    return np.array(img, dtype=np.float32) / 255.0


def pattern_to_image(values, dimensions, channel: int = 0, channels: int = 1) -> np.ndarray:
    """One channel of a 2-D pattern as a (height, width) array."""
    width, height = dimensions
    return np.asarray(values, dtype=np.float32).reshape(height, width, channels)[:, :, channel]


def compute_power_spectrum(img: np.ndarray) -> np.ndarray:
    """2D power spectrum with log scaling, zero frequency centred."""
    centered = img - img.mean()
    spectrum = fftshift(fft2(centered))
    return np.log1p(np.abs(spectrum) ** 2)


def compute_radial_power(img: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Radially averaged power spectrum.

    Returns (frequencies, power): frequencies in cycles/pixel from 1/size up
    to just below Nyquist, power averaged over each one-pixel-wide ring.
    """
    h, w = img.shape
    centered = img - img.mean()
    spectrum = np.abs(fftshift(fft2(centered))) ** 2

    cy, cx = h // 2, w // 2
    max_radius = min(cx, cy)
    img_size = min(h, w)

    y_coords, x_coords = np.ogrid[:h, :w]
    distances = np.sqrt((x_coords - cx) ** 2 + (y_coords - cy) ** 2)

    power = []
    for r in range(1, max_radius):
        ring_mask = np.abs(distances - r) < 0.5
        power.append(spectrum[ring_mask].mean() if ring_mask.any() else 0)

    freqs = np.arange(1, max_radius) / img_size
    return freqs, np.array(power)


def low_frequency_ratio(img: np.ndarray, cutoff: float = 0.125) -> float:
    """Share of total (non-DC) power below `cutoff` cycles/pixel."""
    freqs, power = compute_radial_power(img)
    total = power.sum()
    if total == 0:
        return 0.0
    return float(power[freqs < cutoff].sum() / total)


def plot_analysis(img: np.ndarray, title: str, output_path: Path):
    """Generate 3-panel analysis figure."""
    fig, axes = plt.subplots(1, 3, figsize=(15, 5))

    axes[0].imshow(img, cmap='gray', vmin=0, vmax=1)
    axes[0].set_title('Pattern')
    axes[0].axis('off')

    axes[1].imshow(compute_power_spectrum(img), cmap='gray')
    axes[1].set_title('Frequency Spectrum')
    axes[1].axis('off')

    freqs, power = compute_radial_power(img)
    axes[2].plot(freqs, 10 * np.log10(power + 1e-10), 'b-', alpha=0.8)
    axes[2].set_xlabel('Spatial Frequency (cycles/pixel)')
    axes[2].set_ylabel('Power (dB)')
    axes[2].set_title('Radial Power')
    axes[2].set_xlim(0, 0.5)
    axes[2].grid(True, alpha=0.3)

    fig.suptitle(title, fontsize=14, fontweight='bold')
    plt.tight_layout()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()


def main():
    parser = argparse.ArgumentParser(description='Fourier analysis of a blue noise image')
    parser.add_argument('--input', '-i', type=Path, required=True, help='Pattern image to analyze')
    parser.add_argument('--output', '-o', type=Path, help='Output plot (default: <input>_analysis.png)')
    args = parser.parse_args()

    output = args.output or args.input.with_name(args.input.stem + '_analysis.png')
    img = load_image(args.input)
    plot_analysis(img, args.input.stem, output)
    print(f"Low-frequency power share: {low_frequency_ratio(img):.4f}")
    print(f"Saved: {output}")


if __name__ == '__main__':
    main()
