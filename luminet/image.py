#image.py
import logging
import os

import matplotlib
import numpy as np
from PIL import Image

from luminet.blackhole import ConfigError

GRAYSCALE = ('gray', 'grey')


def normalize_flux(grid, flux_range=None):
    """
    Scale a flux grid to [0, 1].

    Against (0, grid max) by default, or a fixed (low, high) range shared by a
    series of images. A grid with no flux, or a zero-width range, maps to
    all zeros.
    """
    grid = np.asarray(grid, dtype=float)
    if flux_range is None:
        low, high = 0.0, (float(grid.max()) if grid.size else 0.0)
    else:
        low, high = flux_range
    span = high - low
    if not np.isfinite(span) or span <= 0:
        return np.zeros(grid.shape)
    return np.clip((grid - low) / span, 0.0, 1.0)


def check_colormap(colormap):
    if colormap in GRAYSCALE:
        return None
    try:
        return matplotlib.colormaps[colormap]
    except KeyError:
        raise ConfigError(f"unknown colormap {colormap!r}")


def colorize(normalized, colormap='inferno'):
    """
    Map normalized flux to pixels: 16-bit grayscale for 'gray', 8-bit RGB
    through a matplotlib colormap otherwise.
    """
    cmap = check_colormap(colormap)
    if cmap is None:
        return np.round(normalized * np.iinfo(np.uint16).max).astype(np.uint16)
    rgba = cmap(normalized)
    return np.round(rgba[..., :3] * 255).astype(np.uint8)


def render_image(grid, colormap='inferno', flux_range=None):
    return colorize(normalize_flux(grid, flux_range), colormap)


def check_image_path(out_path):
    """Reject an output path Pillow has no writer for, before anything is rendered."""
    extension = os.path.splitext(out_path)[1].lower()
    image_format = Image.registered_extensions().get(extension)
    if image_format not in Image.SAVE:
        raise ConfigError(f"unsupported image format {extension or '(none)'!r} for {out_path}")


def save_image(pixels, out_path):
    """Write a pixel buffer as a lossless PNG, creating parent directories."""
    directory = os.path.dirname(out_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    Image.fromarray(pixels).save(out_path)
    logging.info(f"Saved {out_path}")
