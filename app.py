#!/usr/bin/env python3
"""
Membrane Synthesiser

Synthesises the sound of a struck string (1D) or membrane (2D) with the FDTD
scheme in fdtd.py and writes it to a WAV file.

Membrane shapes can be loaded from a PNG mask (see create_membrane.py):
  - White (255,255,255): membrane, simulated
  - Black (0,0,0): clamped rim
Without a mask the membrane is a square (or a string) clamped on its edges.

Positions (--strike, --listen) are normalised to [0, 1] on each axis.

Usage:
  python app.py --dimensions 1 --size 100 --output output/string.wav
  python app.py --mask membranes/circle.png --strike 0.3 0.4 --listen 0.6 0.5

  Or with a config file:
  python app.py --config synth.json

Example config.json:
{
    "dimensions": 2,
    "size": 64,             // cells per axis when no mask is given
    "excitation": "cosine", // "cosine" (strike) or "triangle" (pluck)
    "strike": [0.4, 0.5],
    "width": 0.1,           // normalised half-width of the excitation
    "listen": [0.7, 0.6],
    "courant": 0.7,         // defaults to the stability limit 1/sqrt(dimensions)
    "decay": 1.0,
    "duration": 1.0,        // seconds
    "sample_rate": 44100
}
"""

import argparse
import json
import os
from dataclasses import dataclass, field, fields
from typing import List, Optional, Tuple

import numpy as np
import scipy.io.wavfile as wavfile

from fdtd import SimulationParams, dirichlet_mask, fdtd_waveform
from initial_conditions import raised_cosine, raised_triangle


EXCITATIONS = ('cosine', 'triangle')


@dataclass
class SynthesisConfig:
    """Merged CLI / config file settings."""
    dimensions: int = 2
    size: int = 64
    mask: Optional[str] = None  # path to a PNG mask
    excitation: str = 'cosine'
    strike: List[float] = field(default_factory=lambda: [0.5, 0.5])
    width: float = 0.1
    listen: List[float] = field(default_factory=lambda: [0.7, 0.6])
    courant: Optional[float] = None
    decay: float = 1.0
    duration: float = 1.0
    sample_rate: int = 44100
    output: str = 'output/membrane.wav'
    normalize: bool = True

    @property
    def num_samples(self) -> int:
        return max(1, int(self.duration * self.sample_rate))


def load_config(args: argparse.Namespace) -> SynthesisConfig:
    """Merge CLI arguments with an optional JSON config file.

    Explicit CLI values take precedence over the config file, which takes
    precedence over the defaults.
    """
    config = {}
    if getattr(args, 'config', None):
        with open(args.config) as f:
            config = json.load(f)

    unknown = set(config) - {f.name for f in fields(SynthesisConfig)}
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    merged = {}
    for f in fields(SynthesisConfig):
        value = getattr(args, f.name, None)
        if value is None:
            value = config.get(f.name)
        if value is not None:
            merged[f.name] = value

    cfg = SynthesisConfig(**merged)
    if cfg.excitation not in EXCITATIONS:
        raise ValueError(f"Unknown excitation '{cfg.excitation}', expected one of {EXCITATIONS}")
    if cfg.dimensions not in (1, 2):
        raise ValueError(f"Unsupported number of dimensions: {cfg.dimensions}")
    return cfg


# =============================================================================
# PNG Parsing
# =============================================================================

def load_mask_png(png_path: str, threshold: int = 128) -> np.ndarray:
    """Parse a PNG file into a boundary mask.

    Args:
        png_path: Path to PNG file
        threshold: Grey level at or above which a pixel is part of the membrane

    Returns:
        Boolean mask indexed [x, y] with the origin at the bottom-left
        (True = active, False = clamped)
    """
    from PIL import Image

    img = Image.open(png_path).convert('L')
    pixels = np.array(img)

    # image rows run top to bottom; flip so y grows upwards, then go to [x, y]
    mask = np.flipud(pixels >= threshold).T.copy()

    print(f"Parsed mask: {mask.shape[0]}x{mask.shape[1]} pixels")
    print(f"  Active cells: {np.sum(mask)}")
    print(f"  Clamped cells: {np.sum(~mask)}")

    return mask


# =============================================================================
# Synthesis
# =============================================================================

def _axis_values(values, dimensions: int):
    values = [float(v) for v in np.atleast_1d(values)]
    if dimensions == 1:
        return values[0]
    if len(values) == 1:
        return (values[0], values[0])
    return (values[0], values[1])


def build_excitation(cfg: SynthesisConfig, shape: Tuple[int, ...]) -> np.ndarray:
    """Excitation field for the configured strike."""
    center = _axis_values(cfg.strike, cfg.dimensions)
    size = shape[0] if cfg.dimensions == 1 else shape

    if cfg.excitation == 'cosine':
        return raised_cosine(center, cfg.width, size)

    extent = cfg.width if cfg.dimensions == 1 else (cfg.width, cfg.width)
    return raised_triangle(center, extent, extent, size)


def synthesise(cfg: SynthesisConfig, mask: Optional[np.ndarray] = None) -> Tuple[np.ndarray, np.ndarray]:
    """Run the simulation described by a config.

    Args:
        cfg: Synthesis settings
        mask: Optional boundary mask; defaults to a grid clamped on its edges

    Returns:
        Tuple of (waveform, excitation field)
    """
    if mask is None:
        shape = (cfg.size,) * cfg.dimensions
        mask = dirichlet_mask(shape)
    elif mask.ndim != cfg.dimensions:
        raise ValueError(f"Mask is {mask.ndim}D but the config asks for {cfg.dimensions}D")

    if not mask.any():
        raise ValueError("Mask has no active cells")

    courant = cfg.courant if cfg.courant is not None else 1.0 / np.sqrt(cfg.dimensions)
    params = SimulationParams(courant, dimensions=cfg.dimensions, decay=cfg.decay)

    # clamped cells must start at rest
    excitation = build_excitation(cfg, mask.shape) * mask
    u_prev = np.zeros(mask.shape)
    u_curr = excitation.copy()

    listen = _axis_values(cfg.listen, cfg.dimensions)

    print(f"\nSimulation setup:")
    print(f"  Grid: {' x '.join(str(n) for n in mask.shape)} cells")
    print(f"  Courant number: {params.courant:.4f}")
    print(f"  Coefficients: c0={params.c0:.4f}, c1={params.c1:.4f}, c2={params.c2:.4f}")
    print(f"  Excitation: {cfg.excitation} at {cfg.strike}, width {cfg.width}")
    print(f"  Listening at {cfg.listen}")
    print(f"  Samples: {cfg.num_samples} ({cfg.duration:.2f} s at {cfg.sample_rate} Hz)")

    waveform = fdtd_waveform(u_prev, u_curr, *params.coefficients, cfg.num_samples, listen,
                             mask=mask, normalize=cfg.normalize)

    print(f"  Simulation complete! max |w| = {np.max(np.abs(waveform)):.4f}")
    return waveform, excitation


def save_wav(waveform: np.ndarray, filename: str, sample_rate: int = 44100):
    """Save a waveform in [-1, 1] as a 16-bit WAV file."""
    output_dir = os.path.dirname(filename)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    audio = np.clip(waveform, -1.0, 1.0)
    audio_int = (audio * 32767).astype(np.int16)

    wavfile.write(filename, sample_rate, audio_int)

    duration = len(audio) / sample_rate
    print(f"Saved {duration:.3f}s of audio to {filename} ({sample_rate}Hz, 16-bit)")


def plot_result(waveform: np.ndarray, excitation: np.ndarray, sample_rate: int):
    """Show the waveform next to the excitation field."""
    import matplotlib.pyplot as plt

    fig, axes = plt.subplots(1, 2, figsize=(12, 4))

    t = np.arange(len(waveform)) / sample_rate
    axes[0].plot(t, waveform, 'b-', linewidth=0.8)
    axes[0].set_title('Waveform')
    axes[0].set_xlabel('Time (s)')
    axes[0].set_ylabel('Amplitude')
    axes[0].grid(True, alpha=0.3)

    if excitation.ndim == 1:
        axes[1].plot(np.linspace(0, 1, len(excitation)), excitation, 'g-')
        axes[1].set_xlabel('x')
    else:
        im = axes[1].imshow(excitation.T, origin='lower', extent=[0, 1, 0, 1], cmap='RdBu_r',
                            vmin=-1, vmax=1)
        fig.colorbar(im, ax=axes[1])
        axes[1].set_xlabel('x')
        axes[1].set_ylabel('y')
    axes[1].set_title('Excitation')

    plt.tight_layout()
    plt.show()


# =============================================================================
# CLI
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Synthesise a struck string or membrane with FDTD.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    # defaults live in SynthesisConfig so that a config file can fill the gaps
    parser.add_argument('-o', '--output', help='Output WAV file path')
    parser.add_argument('-c', '--config', help='JSON config file path')
    parser.add_argument('--mask', help='PNG mask of the membrane (white = membrane)')
    parser.add_argument('--dimensions', type=int, choices=(1, 2),
                        help='1 for a string, 2 for a membrane (default: 2)')
    parser.add_argument('--size', type=int,
                        help='Cells per axis when no mask is given (default: 64)')
    parser.add_argument('--excitation', choices=EXCITATIONS,
                        help='Excitation shape (default: cosine)')
    parser.add_argument('--strike', type=float, nargs='+',
                        help='Normalised excitation centre (default: 0.5 0.5)')
    parser.add_argument('--width', type=float,
                        help='Normalised excitation half-width (default: 0.1)')
    parser.add_argument('--listen', type=float, nargs='+',
                        help='Normalised listening position (default: 0.7 0.6)')
    parser.add_argument('--courant', type=float,
                        help='Courant number (default: 1/sqrt(dimensions))')
    parser.add_argument('--decay', type=float,
                        help='Weight of the previous time step (default: 1.0)')
    parser.add_argument('--duration', type=float,
                        help='Duration in seconds (default: 1.0)')
    parser.add_argument('--sample-rate', type=int,
                        help='Sample rate in Hz (default: 44100)')
    parser.add_argument('--raw', dest='normalize', action='store_const', const=False,
                        help='Skip peak normalisation')
    parser.add_argument('--visualize', action='store_true',
                        help='Plot the waveform and the excitation')
    return parser


def main():
    args = build_parser().parse_args()
    cfg = load_config(args)

    mask = None
    if cfg.mask:
        mask = load_mask_png(cfg.mask)
        if cfg.dimensions != 2:
            print("Note: a PNG mask implies a 2D membrane, ignoring --dimensions")
            cfg.dimensions = 2

    waveform, excitation = synthesise(cfg, mask=mask)

    save_wav(waveform, cfg.output, sample_rate=cfg.sample_rate)

    if args.visualize:
        plot_result(waveform, excitation, cfg.sample_rate)

    print(f"\nDone! Waveform saved to {cfg.output}")


if __name__ == '__main__':
    main()
