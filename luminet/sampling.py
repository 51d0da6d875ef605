#sampling.py
import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed

import numpy as np
import pandas as pd
from tqdm import tqdm

from luminet.blackhole import ConfigError
from luminet.equations import ellipse
from luminet.flux import observed_flux
from luminet.solvers import NOT_CONVERGED, SolverSettings, emission_radius, isoradial

# Radial factors of the refinement rings laid around each sharp image feature
REFINEMENT_FACTORS = 1.0 + np.array([-0.02, -0.01, -0.004, 0.0, 0.004, 0.01, 0.02])


class SamplingSettings:
    """
    Options of the sample-and-interpolate pass.
    samples: total number of sample points placed on the image plane
    refine_fraction: share of the samples laid on rings around the disk edges
        and the photon ring
    jitter: random offset of interior lattice points, as a fraction of the
        lattice spacing (0 disables it)
    seed: seed of the jitter generator
    workers: size of the worker pools (None = CPU count)
    margin: empty border around the apparent outer edge of the disk
    opaque_disk: hide higher-order images behind lower-order ones
    solver: SolverSettings for the photon-path solver
    """
    def __init__(self, samples=200_000, refine_fraction=0.2, jitter=0.25, seed=0,
                 workers=None, margin=0.05, opaque_disk=False, edge_angles=720,
                 progress=True, solver=None):
        if int(samples) != samples or samples < 16:
            raise ConfigError(f"sample count must be an integer >= 16, got {samples}")
        if not 0.0 <= refine_fraction < 1.0:
            raise ConfigError(f"refine fraction must be in [0, 1), got {refine_fraction}")
        if not 0.0 <= jitter <= 0.5:
            raise ConfigError(f"jitter must be in [0, 0.5], got {jitter}")
        if workers is not None and (int(workers) != workers or workers < 1):
            raise ConfigError(f"workers must be a positive integer, got {workers}")
        if margin < 0:
            raise ConfigError(f"margin must be non-negative, got {margin}")
        self.samples = int(samples)
        self.refine_fraction = float(refine_fraction)
        self.jitter = float(jitter)
        self.seed = seed
        self.workers = workers
        self.margin = float(margin)
        self.opaque_disk = bool(opaque_disk)
        self.edge_angles = int(edge_angles)
        self.progress = progress
        self.solver = solver or SolverSettings()

    @property
    def worker_count(self):
        return self.workers or os.cpu_count() or 1


class ImagePlane:
    """
    Pixel grid laid over the observer's plate.
    width, height: output resolution in pixels
    units_per_pixel: plate length (in units of M) covered by one pixel
    """
    def __init__(self, width, height, units_per_pixel):
        self.width = width
        self.height = height
        self.units_per_pixel = units_per_pixel
        self.half_width = 0.5 * width * units_per_pixel
        self.half_height = 0.5 * height * units_per_pixel

    @classmethod
    def fit(cls, blackhole, inclination, width, height, settings):
        """Fit the apparent outer edge of the disk into the frame, keeping square pixels."""
        edge = isoradial(blackhole.disk_outer_edge, inclination, 0, blackhole.mass,
                         settings.solver, num_angles=settings.edge_angles)
        x, y = edge.plate_coordinates()
        if not np.any(edge.valid):
            # flat-space estimate
            b = ellipse(blackhole.disk_outer_edge, edge.alpha, inclination)
            x, y = b * np.sin(edge.alpha), -b * np.cos(edge.alpha)
        x_extent = np.nanmax(np.abs(x))
        y_extent = np.nanmax(np.abs(y))
        x_extent = max(x_extent, blackhole.critical_impact_parameter) * (1.0 + settings.margin)
        y_extent = max(y_extent, blackhole.critical_impact_parameter) * (1.0 + settings.margin)
        units_per_pixel = max(2.0 * x_extent / width, 2.0 * y_extent / height)
        return cls(width, height, units_per_pixel)

    def bounds(self):
        return -self.half_width, self.half_width, -self.half_height, self.half_height

    def pixel_coordinates(self, row_start=0, row_stop=None):
        """Plate coordinates of the pixel centres of rows [row_start, row_stop)."""
        row_stop = self.height if row_stop is None else row_stop
        cols = np.arange(self.width)
        rows = np.arange(row_start, row_stop)
        x = (cols + 0.5 - 0.5 * self.width) * self.units_per_pixel
        y = (0.5 * self.height - rows - 0.5) * self.units_per_pixel
        xx, yy = np.meshgrid(x, y)
        return np.column_stack([xx.ravel(), yy.ravel()])

    def clamp(self, points):
        points = np.array(points, dtype=float)
        points[:, 0] = np.clip(points[:, 0], -self.half_width, self.half_width)
        points[:, 1] = np.clip(points[:, 1], -self.half_height, self.half_height)
        return points


class SampleSet:
    """
    Flux samples on the image plane.
    points: (n, 2) plate coordinates
    flux: (n,) observed flux summed over the attempted orders
    order_flux: (n, orders) flux contributed by each order
    order_radius: (n, orders) emission radius per order (NaN if none)
    """
    def __init__(self, points, flux, order_flux, order_radius):
        self.points = points
        self.flux = flux
        self.order_flux = order_flux
        self.order_radius = order_radius

    def __len__(self):
        return len(self.points)

    def to_frame(self):
        """Tabulate the samples for export."""
        x, y = self.points[:, 0], self.points[:, 1]
        data = {
            'x': x,
            'y': y,
            'impact_parameter': np.hypot(x, y),
            'alpha': np.arctan2(x, -y),
            'flux': self.flux,
        }
        for order in range(self.order_flux.shape[1]):
            data[f'radius_{order}'] = self.order_radius[:, order]
            data[f'flux_{order}'] = self.order_flux[:, order]
        return pd.DataFrame(data)


def _lattice(plane, count, jitter, rng):
    """Uniform lattice covering the frame, boundary rows and columns included."""
    aspect = plane.half_width / plane.half_height
    nx = max(2, int(round(np.sqrt(count * aspect))))
    ny = max(2, int(round(count / nx)))
    xs = np.linspace(-plane.half_width, plane.half_width, nx)
    ys = np.linspace(-plane.half_height, plane.half_height, ny)
    xx, yy = np.meshgrid(xs, ys)
    if jitter > 0:
        dx = xs[1] - xs[0]
        dy = ys[1] - ys[0]
        interior = np.zeros(xx.shape, dtype=bool)
        interior[1:-1, 1:-1] = True
        xx[interior] += rng.uniform(-jitter, jitter, interior.sum()) * dx
        yy[interior] += rng.uniform(-jitter, jitter, interior.sum()) * dy
    return np.column_stack([xx.ravel(), yy.ravel()])


def _rings(b, alpha):
    b = np.asarray(b)[:, None] * REFINEMENT_FACTORS[None, :]
    alpha = np.broadcast_to(np.asarray(alpha)[:, None], b.shape)
    return np.column_stack([(b * np.sin(alpha)).ravel(), (-b * np.cos(alpha)).ravel()])


def place_samples(plane, blackhole, inclination, settings, rng=None):
    """
    Place the sample points for one rendering pass.

    A uniform lattice spans the whole frame, so the convex hull of the samples
    is the frame itself and no pixel is ever extrapolated. The remaining
    samples are laid on thin rings around the direct and ghost images of the
    disk's inner edge, the direct image of its outer edge and the photon
    capture radius, where the flux changes abruptly.

    Returns
    -------
    points : ndarray, shape (n, 2)
    diagnostics : dict
        Counts of refinement points placed and of edge solves that did not converge.
    """
    if rng is None:
        rng = np.random.default_rng(settings.seed)
    n_refine = int(settings.samples * settings.refine_fraction)
    base = _lattice(plane, settings.samples - n_refine, settings.jitter, rng)

    features = [(blackhole.disk_inner_edge, order) for order in settings.solver.orders]
    features.append((blackhole.disk_outer_edge, 0))
    per_feature = n_refine // (len(features) + 1)
    num_angles = per_feature // len(REFINEMENT_FACTORS)

    refined = []
    not_converged = 0
    if num_angles >= 8:
        for radius, order in features:
            edge = isoradial(radius, inclination, order, blackhole.mass, settings.solver,
                             num_angles=num_angles)
            not_converged += int(np.sum(edge.status == NOT_CONVERGED))
            keep = edge.valid
            refined.append(_rings(edge.impact_parameter[keep], edge.alpha[keep]))
        alpha = np.arange(num_angles) / num_angles * 2.0 * np.pi
        refined.append(_rings(np.full(num_angles, blackhole.critical_impact_parameter), alpha))

    points = np.vstack([base] + refined)
    points = plane.clamp(points)
    points = np.unique(np.round(points, 9), axis=0)
    diagnostics = {
        'refinement_points': int(sum(len(r) for r in refined)),
        'not_converged': not_converged,
    }
    return points, diagnostics


def sample_flux(points, blackhole, inclination, solver_settings, opaque_disk=False):
    """
    Observed flux at each plate point, summed over image orders 0..max_order.

    Orders are superimposed, so a faint ghost image adds onto whatever lies in
    front of it. With `opaque_disk` an order only contributes where no lower
    order already hit the disk.
    """
    points = np.asarray(points, dtype=float)
    x, y = points[:, 0], points[:, 1]
    b = np.hypot(x, y)
    alpha = np.arctan2(x, -y)
    bounds = (blackhole.disk_inner_edge, blackhole.disk_outer_edge)

    orders = solver_settings.max_order + 1
    order_flux = np.zeros((len(points), orders))
    order_radius = np.full((len(points), orders), np.nan)
    blocked = np.zeros(len(points), dtype=bool)
    for order in solver_settings.orders:
        solution = emission_radius(b, alpha, inclination, order, blackhole.mass, bounds)
        flux = observed_flux(solution, inclination, blackhole)
        if opaque_disk:
            flux[blocked] = 0.0
            blocked |= solution.valid
        order_flux[:, order] = flux
        order_radius[:, order] = solution.radius
    return SampleSet(points, order_flux.sum(axis=1), order_flux, order_radius)


def evaluate_samples(points, blackhole, inclination, settings):
    """
    Evaluate every sample point, distributing disjoint chunks over a process pool.

    Each chunk owns a slice of the pre-sized result arrays, so results land in
    sample order no matter which worker finishes first.
    """
    workers = settings.worker_count
    if workers == 1:
        return sample_flux(points, blackhole, inclination, settings.solver, settings.opaque_disk)

    orders = settings.solver.max_order + 1
    flux = np.zeros(len(points))
    order_flux = np.zeros((len(points), orders))
    order_radius = np.full((len(points), orders), np.nan)
    chunks = [c for c in np.array_split(np.arange(len(points)), workers * 4) if c.size]

    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(sample_flux, points[chunk], blackhole, inclination,
                            settings.solver, settings.opaque_disk): chunk
            for chunk in chunks
        }
        for future in tqdm(as_completed(futures), total=len(futures), desc='Sampling flux',
                           unit='chunk', disable=not settings.progress):
            chunk = futures[future]
            result = future.result()
            flux[chunk] = result.flux
            order_flux[chunk] = result.order_flux
            order_radius[chunk] = result.order_radius
    logging.info(f"Evaluated {len(points)} samples on {workers} workers")
    return SampleSet(points, flux, order_flux, order_radius)
