#render.py
import logging

import numpy as np

from luminet.blackhole import validate_inclination, validate_resolution
from luminet.interpolate import FluxField, interpolate_grid
from luminet.sampling import ImagePlane, SamplingSettings, evaluate_samples, place_samples


class RenderResult:
    """
    Output of one rendering pass.
    grid: (height, width) observed flux per pixel
    plane: the ImagePlane the grid was rendered on
    samples: the SampleSet the grid was interpolated from
    diagnostics: end-of-run counts (non-converged solves, pixels outside the hull, ...)
    """
    def __init__(self, inclination, grid, plane, samples, diagnostics):
        self.inclination = inclination
        self.grid = grid
        self.plane = plane
        self.samples = samples
        self.diagnostics = diagnostics

    @property
    def max_flux(self):
        return float(self.grid.max()) if self.grid.size else 0.0


def generate_flux_grid(blackhole, inclination, width, height, settings=None, rng=None):
    """
    Render the observed flux of the disk onto a width x height pixel grid.

    `inclination` is in degrees from the disk normal and is validated before
    any work starts. Samples are placed on the image plane, evaluated in
    parallel, triangulated once and interpolated onto the pixels.
    """
    inclination_rad = validate_inclination(inclination)
    width, height = validate_resolution(width, height)
    settings = settings or SamplingSettings()

    plane = ImagePlane.fit(blackhole, inclination_rad, width, height, settings)
    logging.info(f"Image plane: {width}x{height} pixels, "
                 f"{plane.units_per_pixel:.4g} M per pixel")

    points, diagnostics = place_samples(plane, blackhole, inclination_rad, settings, rng)
    logging.info(f"Placed {len(points)} samples "
                 f"({diagnostics['refinement_points']} on refinement rings)")

    samples = evaluate_samples(points, blackhole, inclination_rad, settings)

    logging.info("Triangulating samples...")
    field = FluxField(samples.points, samples.flux)
    grid, outside = interpolate_grid(field, plane, settings.worker_count, settings.progress)

    diagnostics['samples'] = len(samples)
    diagnostics['outside_hull'] = outside
    diagnostics['degenerate_triangulation'] = field.degenerate
    if diagnostics['not_converged']:
        logging.warning(f"{diagnostics['not_converged']} edge solves did not converge; "
                        f"their refinement samples were skipped")
    if outside:
        logging.warning(f"{outside} pixels fell outside the sampled region and were set to zero")
    return RenderResult(inclination, grid, plane, samples, diagnostics)


def generate_flux_grids(blackhole, inclinations, width, height, settings=None):
    """Render one flux grid per inclination (degrees)."""
    for inclination in inclinations:
        validate_inclination(inclination)
    results = []
    for inclination in inclinations:
        logging.info(f"Rendering inclination {inclination:g} deg...")
        results.append(generate_flux_grid(blackhole, inclination, width, height, settings))
    return results


def series_flux_range(results):
    """Common (0, max) flux range of a series of renders, for shared normalization."""
    return 0.0, max((r.max_flux for r in results), default=0.0)


def inclination_range(start, end, step):
    """Inclinations start, start + step, ... up to and including end."""
    count = int(np.floor((end - start) / step + 1e-9)) + 1
    # rounding keeps the last value from drifting past end
    return [min(round(start + i * step, 9), end) for i in range(max(count, 0))]
