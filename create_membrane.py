#!/usr/bin/env python3
"""
Create example membrane masks for the synthesiser.

Usage:
    python create_membrane.py square --output membranes/square.png
    python create_membrane.py circle --output membranes/circle.png --size 81
    python create_membrane.py triangle --all
"""

import argparse
import os
from PIL import Image, ImageDraw


# Color definitions (matching app.py)
CLAMPED = (0, 0, 0)           # Rim, held at zero displacement
MEMBRANE = (255, 255, 255)    # Simulated


def create_square(size: int = 64) -> Image.Image:
    """Square membrane clamped on a one pixel rim."""
    img = Image.new('RGB', (size, size), CLAMPED)
    draw = ImageDraw.Draw(img)
    draw.rectangle([1, 1, size - 2, size - 2], fill=MEMBRANE)
    return img


def create_rectangle(size: int = 64, aspect: float = 1.5) -> Image.Image:
    """Rectangular membrane, `aspect` times wider than it is tall."""
    width = int(round(size * aspect))
    img = Image.new('RGB', (width, size), CLAMPED)
    draw = ImageDraw.Draw(img)
    draw.rectangle([1, 1, width - 2, size - 2], fill=MEMBRANE)
    return img


def create_circle(size: int = 64) -> Image.Image:
    """Circular membrane (drum head) inscribed in the image."""
    img = Image.new('RGB', (size, size), CLAMPED)
    draw = ImageDraw.Draw(img)
    draw.ellipse([1, 1, size - 2, size - 2], fill=MEMBRANE)
    return img


def create_triangle(size: int = 64) -> Image.Image:
    """Equilateral triangle resting on the bottom edge."""
    img = Image.new('RGB', (size, size), CLAMPED)
    draw = ImageDraw.Draw(img)

    base = size - 3
    height = base * 3 ** 0.5 / 2
    bottom = size - 2
    draw.polygon([
        (1, bottom),
        (1 + base, bottom),
        (1 + base / 2, bottom - height),
    ], fill=MEMBRANE)
    return img


MEMBRANE_TYPES = {
    'square': create_square,
    'rectangle': create_rectangle,
    'circle': create_circle,
    'triangle': create_triangle,
}


def main():
    parser = argparse.ArgumentParser(description='Create example membrane PNGs')
    parser.add_argument('membrane_type', choices=list(MEMBRANE_TYPES.keys()),
                        help='Shape of membrane to create')
    parser.add_argument('-o', '--output', default='membranes/membrane.png',
                        help='Output PNG path')
    parser.add_argument('--size', type=int, help='Membrane height in pixels')
    parser.add_argument('--all', action='store_true',
                        help='Create all membrane types')

    args = parser.parse_args()

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    kwargs = {}
    if args.size:
        kwargs['size'] = args.size

    if args.all:
        for membrane_type, create_func in MEMBRANE_TYPES.items():
            output_path = os.path.join(output_dir or 'membranes', f'{membrane_type}.png')
            os.makedirs(os.path.dirname(output_path), exist_ok=True)

            img = create_func(**kwargs)
            img.save(output_path)
            print(f"Created {output_path} ({img.width}x{img.height})")
    else:
        create_func = MEMBRANE_TYPES[args.membrane_type]
        img = create_func(**kwargs)
        img.save(args.output)
        print(f"Created {args.output} ({img.width}x{img.height})")

        print(f"\nMembrane configuration:")
        print(f"  White pixels: simulated membrane")
        print(f"  Black pixels: clamped rim")


if __name__ == '__main__':
    main()
