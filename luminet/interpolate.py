#interpolate.py
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
from scipy.spatial import Delaunay, QhullError, cKDTree
from tqdm import tqdm

ROWS_PER_CHUNK = 64


class FluxField:
    """
    Flux known at scattered plate points, linearly interpolated over a
    Delaunay triangulation of those points.

    Built once, then only queried; safe to share between threads. When qhull
    cannot triangulate the points (too few, duplicate or collinear), queries
    fall back to the flux of the nearest sample.
    """
    def __init__(self, points, values):
        self.points = np.asarray(points, dtype=float)
        self.values = np.asarray(values, dtype=float)
        self.triangulation = None
        self.tree = None
        try:
            self.triangulation = Delaunay(self.points)
        except (QhullError, ValueError) as e:
            logging.warning(f"Triangulation of {len(self.points)} samples failed ({e}); "
                            f"using nearest-sample flux")
            self.tree = cKDTree(self.points)

    @property
    def degenerate(self):
        return self.triangulation is None

    def interpolate(self, xy):
        """
        Interpolate the flux at the points `xy`.

        Returns
        -------
        values : ndarray
            Interpolated flux, 0 outside the triangulation's convex hull.
        outside : ndarray of bool
            Which points fell outside the hull.
        """
        xy = np.asarray(xy, dtype=float)
        if self.degenerate:
            _, nearest = self.tree.query(xy)
            return self.values[nearest], np.zeros(len(xy), dtype=bool)

        tri = self.triangulation
        simplex = tri.find_simplex(xy)
        inside = simplex >= 0
        values = np.zeros(len(xy))

        transform = tri.transform[simplex[inside]]
        delta = xy[inside] - transform[:, 2]
        bary = np.einsum('ijk,ik->ij', transform[:, :2], delta)
        weights = np.column_stack([bary, 1.0 - bary.sum(axis=1)])
        vertices = tri.simplices[simplex[inside]]
        values[inside] = np.sum(self.values[vertices] * weights, axis=1)
        return values, ~inside


def interpolate_grid(field, plane, workers=1, progress=True):
    """
    Interpolate the flux field onto every pixel of the image plane.

    Blocks of rows are handed to a thread pool; each block writes only its own
    rows of the grid.

    Returns
    -------
    grid : ndarray, shape (height, width)
    outside : int
        Number of pixels that fell outside the sampled hull.
    """
    grid = np.zeros((plane.height, plane.width))
    blocks = [(start, min(start + ROWS_PER_CHUNK, plane.height))
              for start in range(0, plane.height, ROWS_PER_CHUNK)]

    def fill(block):
        start, stop = block
        values, outside = field.interpolate(plane.pixel_coordinates(start, stop))
        grid[start:stop] = values.reshape(stop - start, plane.width)
        return int(outside.sum())

    outside_total = 0
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(fill, block) for block in blocks]
        for future in tqdm(as_completed(futures), total=len(futures), desc='Rendering image',
                           unit='block', disable=not progress):
            outside_total += future.result()
    return grid, outside_total
