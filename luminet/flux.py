#flux.py
import numpy as np

from luminet.blackhole import DISK_INNER_EDGE


def intrinsic_flux(radius, accretion_rate, mass, inner=None, outer=None):
    """
    Flux emitted by the disk in its rest frame, `F_s` (eqn 15).

    Standard thin-disk (Page-Thorne) law. Exactly 0 outside [inner, outer] and
    for radii that are NaN, i.e. points with no photon solution.
    """
    radius = np.asarray(radius, dtype=float)
    inner = DISK_INNER_EDGE * mass if inner is None else inner
    outer = np.inf if outer is None else outer

    flux = np.zeros(radius.shape)
    with np.errstate(invalid='ignore'):
        on_disk = np.isfinite(radius) & (radius >= inner) & (radius <= outer)
    r_star = radius[on_disk] / mass
    sqrt3 = np.sqrt(3.0)
    sqrt6 = np.sqrt(6.0)
    log_arg = ((np.sqrt(r_star) + sqrt3) * (sqrt6 - sqrt3)) / (
        (np.sqrt(r_star) - sqrt3) * (sqrt6 + sqrt3))
    flux[on_disk] = ((3.0 * mass * accretion_rate) / (8.0 * np.pi)) \
        * (1.0 / ((r_star - 3.0) * r_star ** 2.5)) \
        * (np.sqrt(r_star) - sqrt6 + (sqrt3 / 3.0) * np.log(log_arg))
    # rounding leaves tiny negative values right at r* = 6
    return np.maximum(flux, 0.0)


def redshift_factor(radius, alpha, inclination, mass, impact_parameter):
    """
    Gravitational plus Doppler redshift `1 + z` of a photon emitted at
    `radius` and seen at (impact_parameter, alpha) (eqn 19).

    The presumed eqn 18 above it is missing terms; eqn 19 itself is correct.
    """
    return (1.0 + np.sqrt(mass / radius ** 3) * impact_parameter * np.sin(inclination)
            * np.sin(alpha)) / np.sqrt(1.0 - 3.0 * mass / radius)


def observed_flux(solution, inclination, blackhole):
    """
    Bolometric flux seen by the observer, F_o = F_s / (1 + z)^4 (pg 233).

    Non-negative; 0 for every point without a valid photon solution.
    """
    flux = np.zeros(np.shape(solution.radius))
    valid = solution.valid
    if not np.any(valid):
        return flux
    radius = solution.radius[valid]
    emitted = intrinsic_flux(radius, blackhole.accretion_rate, blackhole.mass,
                             blackhole.disk_inner_edge, blackhole.disk_outer_edge)
    one_plus_z = redshift_factor(radius, solution.alpha[valid], inclination,
                                 blackhole.mass, solution.impact_parameter[valid])
    flux[valid] = emitted / one_plus_z ** 4
    return flux
