#dither.py
import numpy as np
from PIL import Image

from luminet.blackhole import ConfigError

DITHER_ALGORITHMS = ('floyd', 'atkinson', 'mask')

# (row offset, column offset, weight) of the error diffusion kernels
FLOYD_STEINBERG = ((0, 1, 7 / 16), (1, -1, 3 / 16), (1, 0, 5 / 16), (1, 1, 1 / 16))
ATKINSON = ((0, 1, 1 / 8), (0, 2, 1 / 8), (1, -1, 1 / 8), (1, 0, 1 / 8), (1, 1, 1 / 8),
            (2, 0, 1 / 8))


def _diffuse(img, kernel):
    """Error diffusion to pure black and white, scanning rows left to right."""
    work = np.asarray(img, dtype=float) / 255.0
    h, w = work.shape
    out = np.zeros((h, w), dtype=np.uint8)
    for i in range(h):
        for j in range(w):
            value = 1.0 if work[i, j] > 0.5 else 0.0
            err = work[i, j] - value
            out[i, j] = 255 if value else 0
            for di, dj, weight in kernel:
                ii, jj = i + di, j + dj
                if 0 <= ii < h and 0 <= jj < w:
                    work[ii, jj] += err * weight
    return out


def floyd(img):
    return _diffuse(img, FLOYD_STEINBERG)


def atkinson(img):
    # only 6/8 of the error is passed on
    return _diffuse(img, ATKINSON)


def threshold_mask(img, mask):
    """Threshold each pixel against a mask image (e.g. blue noise) tiled over it."""
    img = np.asarray(img)
    mask = np.asarray(mask)
    reps = (-(-img.shape[0] // mask.shape[0]), -(-img.shape[1] // mask.shape[1]))
    tiled = np.tile(mask, reps)[:img.shape[0], :img.shape[1]]
    return np.where(img > tiled, 255, 0).astype(np.uint8)


def dither(algorithm, img, mask=None):
    """Dither an 8-bit grayscale image array with the named algorithm."""
    if algorithm == 'floyd':
        return floyd(img)
    if algorithm == 'atkinson':
        return atkinson(img)
    if algorithm == 'mask':
        if mask is None:
            raise ConfigError("the 'mask' algorithm needs a mask image")
        return threshold_mask(img, mask)
    raise ConfigError(f"unknown dither algorithm {algorithm!r}, expected one of {DITHER_ALGORITHMS}")


def load_grayscale(path):
    """Load an image as 8-bit grayscale; 16-bit grayscale input is rescaled."""
    img = Image.open(path)
    if img.mode.startswith('I'):
        return np.round(np.array(img, dtype=float) / 257.0).clip(0, 255).astype(np.uint8)
    return np.array(img.convert('L'))


def dither_file(algorithm, input_path, output_path, mask_path=None):
    img = load_grayscale(input_path)
    mask = load_grayscale(mask_path) if mask_path else None
    Image.fromarray(dither(algorithm, img, mask)).save(output_path)
