#solvers.py
"""Solvers linking a point on the disk to its apparent position on the
observer's plate, for a given image order.

Image plane -> disk (`emission_radius`) is closed form through the elliptic
evaluator. Disk -> image plane (`impact_parameter`) has no closed form and is
found by vectorized bisection over the impact parameter, using the fact that
for a fixed position angle and order the crossing radius grows monotonically
with `b`.
"""
import logging

import numpy as np

from luminet.blackhole import ConfigError
from luminet.equations import (
    crossing_inverse_radius, impact_parameter_from_periastron, sweep_angle,
)

DIRECT = 0
GHOST = 1

SOLVED = 0
NO_SOLUTION = 1
NOT_CONVERGED = 2

# Lower end of the impact parameter bracket, in units of the mass. Photons
# this close to the radial direction fall into the hole before reaching the disk.
MIN_IMPACT_PARAMETER = 1e-3


class SolverSettings:
    """
    Numerical options for the photon-path solver.
    tolerance: relative tolerance on the emission radius of a forward solve
    max_iterations: bisection budget per forward solve
    max_order: highest image order attempted (0 = direct only)
    """
    def __init__(self, tolerance=1e-6, max_iterations=100, max_order=1):
        if not np.isfinite(tolerance) or tolerance <= 0:
            raise ConfigError(f"solver tolerance must be positive, got {tolerance}")
        if int(max_iterations) != max_iterations or max_iterations < 1:
            raise ConfigError(f"max iterations must be a positive integer, got {max_iterations}")
        if int(max_order) != max_order or max_order < 0:
            raise ConfigError(f"max order must be a non-negative integer, got {max_order}")
        self.tolerance = float(tolerance)
        self.max_iterations = int(max_iterations)
        self.max_order = int(max_order)

    @property
    def orders(self):
        return range(self.max_order + 1)


class PhotonSolution:
    """
    Result of solving the photon path for a set of points at one image order.
    radius: emission radius on the disk (NaN unless solved)
    impact_parameter: apparent radial position on the plate (NaN unless solved)
    alpha: position angle on the plate
    status: SOLVED, NO_SOLUTION or NOT_CONVERGED per point
    sweep: angle the photon sweeps between the observer and the disk crossing
        (the deflection angle psi; depends only on alpha and the order)
    """
    def __init__(self, radius, impact_parameter, alpha, order, status, sweep=None):
        self.radius = radius
        self.impact_parameter = impact_parameter
        self.alpha = alpha
        self.order = order
        self.status = status
        self.sweep = sweep

    @property
    def valid(self):
        return self.status == SOLVED

    def plate_coordinates(self):
        """Position on the observer's plate, near side of the disk at -y."""
        x = self.impact_parameter * np.sin(self.alpha)
        y = -self.impact_parameter * np.cos(self.alpha)
        return x, y

    def counts(self):
        return {
            'solved': int(np.sum(self.status == SOLVED)),
            'no_solution': int(np.sum(self.status == NO_SOLUTION)),
            'not_converged': int(np.sum(self.status == NOT_CONVERGED)),
        }


def crossing_radius(b, alpha, inclination, order, mass, sweep=None):
    """Radius where the order `n` photon at (b, alpha) crosses the disk plane."""
    if sweep is None:
        sweep = sweep_angle(alpha, inclination, order)
    u = crossing_inverse_radius(b, sweep, mass)
    with np.errstate(divide='ignore'):
        return 1.0 / u


def emission_radius(b, alpha, inclination, order=DIRECT, mass=1.0, bounds=None):
    """
    For an apparent position (b, alpha) on the plate, find the radius on the
    disk the order `n` photon was emitted from.

    No solution is returned when the photon escapes without crossing the disk
    plane at that order, when it falls through the horizon first, or when the
    crossing lies outside `bounds` = (inner, outer) if given.
    """
    b, alpha = np.broadcast_arrays(np.asarray(b, dtype=float), np.asarray(alpha, dtype=float))
    sweep = sweep_angle(alpha, inclination, order)
    radius = crossing_radius(b, alpha, inclination, order, mass, sweep)
    solved = np.isfinite(radius) & (radius > 2.0 * mass)
    if bounds is not None:
        inner, outer = bounds
        solved &= (radius >= inner) & (radius <= outer)
    status = np.where(solved, SOLVED, NO_SOLUTION)
    return PhotonSolution(
        radius=np.where(solved, radius, np.nan),
        impact_parameter=np.where(solved, b, np.nan),
        alpha=alpha,
        order=order,
        status=status,
        sweep=sweep,
    )


def impact_parameter(radius, alpha, inclination, order=DIRECT, mass=1.0, settings=None):
    """
    For a point on the disk at `radius`, seen at plate angle `alpha`, find the
    impact parameter of the order `n` photon reaching the observer.

    Bisection over b in [MIN_IMPACT_PARAMETER * M, b(P = radius)]; at the upper
    end the periastron already exceeds the radius, so the crossing lies
    farther out. Points without a sign change over that bracket have no
    solution. Points still outside the tolerance after the iteration budget
    are reported as NOT_CONVERGED.
    """
    settings = settings or SolverSettings()
    radius, alpha = np.broadcast_arrays(np.asarray(radius, dtype=float),
                                        np.asarray(alpha, dtype=float))
    shape = radius.shape
    radius = radius.ravel()
    alpha = alpha.ravel()
    n = radius.size

    status = np.full(n, NO_SOLUTION)
    result = np.full(n, np.nan)

    lo = np.full(n, MIN_IMPACT_PARAMETER * mass)
    hi = impact_parameter_from_periastron(
        np.maximum(radius, 3.001 * mass) * (1.0 + 1e-6), mass)

    sweep = sweep_angle(alpha, inclination, order)

    def residual(b, idx):
        return crossing_radius(b, alpha[idx], inclination, order, mass, sweep[idx]) - radius[idx]

    everything = np.arange(n)
    with np.errstate(invalid='ignore'):
        bracketed = (residual(lo, everything) < 0) & (residual(hi, everything) > 0)
    active = np.flatnonzero(bracketed & np.isfinite(radius))
    status[active] = NOT_CONVERGED

    for _ in range(settings.max_iterations):
        if active.size == 0:
            break
        mid = 0.5 * (lo[active] + hi[active])
        f_mid = residual(mid, active)
        with np.errstate(invalid='ignore'):
            done = np.abs(f_mid) <= settings.tolerance * radius[active]
            below = f_mid < 0
        result[active[done]] = mid[done]
        status[active[done]] = SOLVED

        lo[active] = np.where(below, mid, lo[active])
        hi[active] = np.where(below, hi[active], mid)
        active = active[~done]

    if active.size:
        logging.warning(
            f"{active.size} of {n} forward solves (order {order}) did not converge "
            f"within {settings.max_iterations} iterations"
        )

    solved = status == SOLVED
    return PhotonSolution(
        radius=np.where(solved, radius, np.nan).reshape(shape),
        impact_parameter=result.reshape(shape),
        alpha=alpha.reshape(shape),
        order=order,
        status=status.reshape(shape),
        sweep=sweep.reshape(shape),
    )


def isoradial(radius, inclination, order=DIRECT, mass=1.0, settings=None, num_angles=360):
    """
    Apparent image of the ring at `radius` on the disk: solves the forward
    problem around the full circle of plate angles.
    """
    alpha = np.arange(num_angles) / num_angles * 2.0 * np.pi
    return impact_parameter(np.full(num_angles, float(radius)), alpha, inclination,
                            order, mass, settings)


def apparent_edge_radius(blackhole, alpha, inclination, settings=None, inner=True):
    """Apparent radius of the direct image of the disk's inner or outer edge."""
    edge = blackhole.disk_inner_edge if inner else blackhole.disk_outer_edge
    alpha = np.asarray(alpha, dtype=float)
    solution = impact_parameter(np.full(alpha.shape, edge), alpha, inclination,
                                DIRECT, blackhole.mass, settings)
    return solution.impact_parameter


def apparent_shadow_radius(blackhole, alpha, inclination, settings=None):
    """
    Apparent edge of the black hole: the inner disk edge where it hides the
    photon capture radius, and the capture radius elsewhere.
    """
    inner = apparent_edge_radius(blackhole, alpha, inclination, settings, inner=True)
    return np.fmin(inner, blackhole.critical_impact_parameter)
