#!/usr/bin/env python3
import sys
from pathlib import Path

from PIL import UnidentifiedImageError

from kmseg.file_utils import read_png_metadata


def extract_png_metadata(filepath: Path) -> int:
    """
    Prints the kmseg metadata embedded in a PNG written by kmsegment.py.
    Returns the number of entries found.
    """
    print(f"--- kmseg Metadata for PNG: {filepath.name} ---")
    metadata = read_png_metadata(filepath)
    for key, value in metadata.items():
        print(f"  {key}: {value}")
    if not metadata:
        print("  No kmseg-specific metadata found.")
    print("-" * (30 + len(filepath.name)))
    return len(metadata)


def main():
    if len(sys.argv) < 2:
        print("Usage: python extract_kmseg_meta.py <filename.png>")
        sys.exit(1)

    filepath = Path(sys.argv[1])
    if not filepath.is_file():
        print(f"Error: File not found: {filepath}")
        sys.exit(1)
    if filepath.suffix.lower() != ".png":
        print(f"Error: Unsupported file type '{filepath.suffix.lower()}'. Please provide a .png file.")
        sys.exit(1)

    try:
        extract_png_metadata(filepath)
    except UnidentifiedImageError:
        print(f"Error: Could not read PNG file: {filepath}")
        sys.exit(1)


if __name__ == "__main__":
    main()
