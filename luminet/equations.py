#equations.py
"""Photon geometry equations from Luminet (1979), "Image of a spherical black
hole with thin accretion disk", A&A 75, 228-235.

Several equations in the paper carry typos; the corrected forms are noted in
the function docstrings. All functions accept numpy arrays and broadcast.

Conventions: `b` is the impact parameter, `P` the periastron distance, `u` the
inverse radius 1/r, `alpha` the position angle on the observer's plate and
`psi` the angle swept by the photon between the observer direction and the
point where it crosses the disk plane.
"""
import numpy as np

from luminet.elliptic import ellip_f, ellip_k, jacobi

INCLINATION_TOLERANCE = 1e-5
# relative distance from b_c below which neither orbit family is evaluated
CRITICAL_GAP = 1e-12


def critical_impact_parameter(mass):
    return 3.0 * np.sqrt(3.0) * mass


def calc_q(periastron, mass):
    """Calculate `Q` from the periastron `P` (pg 229)."""
    return np.sqrt((periastron - 2.0 * mass) * (periastron + 6.0 * mass))


def impact_parameter_from_periastron(periastron, mass):
    """
    Calculate the impact parameter `b` from the periastron `P` (eqn 5).

    The paper writes `b` on the left-hand side; it should be `b^2`.
    """
    return np.sqrt(periastron ** 3 / (periastron - 2.0 * mass))


def periastron_from_impact_parameter(b, mass):
    """
    Invert eqn 5: the largest real root of P^3 - b^2 P + 2 M b^2 = 0.

    Only photons with b > b_c have a periastron outside the photon sphere;
    NaN is returned for the others.
    """
    b = np.asarray(b, dtype=float)
    with np.errstate(invalid='ignore', divide='ignore'):
        cos_arg = np.clip(-critical_impact_parameter(mass) / b, -1.0, 1.0)
        periastron = 2.0 * b / np.sqrt(3.0) * np.cos(np.arccos(cos_arg) / 3.0)
    return np.where(b > critical_impact_parameter(mass), periastron, np.nan)


def calc_modulus(periastron, mass, q=None):
    """
    Calculate the elliptic parameter `k^2` (eqn 12).

    Eqn 12 is correct, but the definition of `k` on pg 229 needs the numerator
    in parentheses.
    """
    if q is None:
        q = calc_q(periastron, mass)
    return (q - periastron + 6.0 * mass) / (2.0 * q)


def calc_zeta_inf(periastron, mass, q=None):
    """Calculate `zeta_inf` for the elliptic integral (eqn 12)."""
    if q is None:
        q = calc_q(periastron, mass)
    return np.arcsin(np.sqrt((q - periastron + 2.0 * mass) / (q - periastron + 6.0 * mass)))


def calc_cos_gamma(alpha, inclination):
    """
    Cosine of the angle `gamma` between the line of sight and the line where
    the photon's orbital plane cuts the disk (eqn 10).
    """
    alpha = np.asarray(alpha, dtype=float)
    if inclination < INCLINATION_TOLERANCE:
        return np.zeros_like(alpha)
    cos_alpha = np.cos(alpha)
    denominator = np.sqrt(cos_alpha ** 2 + 1.0 / np.tan(inclination) ** 2)
    cos_gamma = np.divide(cos_alpha, denominator, out=np.zeros_like(cos_alpha),
                          where=denominator > 0)
    return np.clip(cos_gamma, -1.0, 1.0)


def sweep_angle(alpha, inclination, order):
    """
    Angle swept by an order `n` photon before it reaches the disk plane.

    The orbital plane crosses the disk every pi radians, so the n-th crossing
    lies at gamma + n*pi. For n = 1 this is the paper's `2*pi - gamma`
    written at the mirrored position angle.
    """
    return np.arccos(calc_cos_gamma(alpha, inclination)) + order * np.pi


def _bound_inverse_radius(b, psi, mass):
    """
    1/r reached after sweeping `psi`, for photons with b > b_c (eqn 13).

    Eqn 13 in the paper places the `sqrt(P/Q)` factor of the `sn` argument in
    the numerator; it belongs in the denominator. Returns 0 when the photon
    climbs back out to infinity before sweeping `psi`.
    """
    periastron = periastron_from_impact_parameter(b, mass)
    q = calc_q(periastron, mass)
    m = calc_modulus(periastron, mass, q)
    elliptic_inf = ellip_f(calc_zeta_inf(periastron, mass, q), m)
    scale = 2.0 * np.sqrt(periastron / q)

    argument = psi / scale + elliptic_inf
    escaped = argument > 2.0 * ellip_k(m) - elliptic_inf
    sn = jacobi(argument, m)[0]
    u = (-(q - periastron + 2.0 * mass) + (q - periastron + 6.0 * mass) * sn ** 2) / (
        4.0 * mass * periastron)
    return np.where(escaped, 0.0, np.maximum(u, 0.0))


def _plunge_roots(b, mass):
    """
    Factor 2M v^3 - v^2 + 1/b^2 = 2M (v - u1) ((v - c1)^2 + a1^2) for b < b_c.

    Cardano's formula for the single real root u1 (always negative), written
    so that no cancellation occurs for small b.
    """
    p = -1.0 / (12.0 * mass ** 2)
    q = 1.0 / (2.0 * mass * b ** 2) - 1.0 / (108.0 * mass ** 3)
    disc = q ** 2 / 4.0 + p ** 3 / 27.0
    c = -np.cbrt(q / 2.0 + np.sqrt(disc))
    u1 = c - p / (3.0 * c) + 1.0 / (6.0 * mass)
    c1 = (1.0 / (2.0 * mass) - u1) / 2.0
    a1_sq = -1.0 / (2.0 * mass * b ** 2 * u1) - c1 ** 2
    return u1, c1, a1_sq


def _plunge_legendre(b, mass):
    """Legendre reduction constants (u1, A, m, F(phi_0)) for b < b_c."""
    u1, c1, a1_sq = _plunge_roots(b, mass)
    offset = c1 - u1
    big_a = np.sqrt(offset ** 2 + a1_sq)
    m = (big_a + offset) / (2.0 * big_a)
    phi_0 = np.arccos((big_a + u1) / (big_a - u1))
    return u1, big_a, m, ellip_f(phi_0, m)


def plunge_sweep(b, u, mass):
    """
    Angle swept from infinity down to inverse radius `u` by a photon with
    b < b_c, i.e. the integral of dv / sqrt(1/b^2 - v^2 + 2 M v^3) on [0, u].

    These photons have no periastron; they leave the disk moving outward
    (or, traced backwards from the observer, fall into the hole).
    """
    b, u = np.broadcast_arrays(np.asarray(b, dtype=float), np.asarray(u, dtype=float))
    u1, big_a, m, f_0 = _plunge_legendre(b, mass)
    s = u - u1
    phi = np.arccos(np.clip((big_a - s) / (big_a + s), -1.0, 1.0))
    return (ellip_f(phi, m) - f_0) / np.sqrt(2.0 * mass * big_a)


def _plunge_inverse_radius(b, psi, mass):
    """
    1/r reached after sweeping `psi`, for photons with b < b_c.

    Returns inf when the photon crosses the horizon before sweeping `psi`.
    """
    u1, big_a, m, f_0 = _plunge_legendre(b, mass)
    scale = np.sqrt(2.0 * mass * big_a)
    s_horizon = 1.0 / (2.0 * mass) - u1
    phi_horizon = np.arccos(np.clip((big_a - s_horizon) / (big_a + s_horizon), -1.0, 1.0))
    captured = psi > (ellip_f(phi_horizon, m) - f_0) / scale

    cos_phi = np.cos(jacobi(scale * psi + f_0, m)[3])
    with np.errstate(divide='ignore', invalid='ignore'):
        u = u1 + big_a * (1.0 - cos_phi) / (1.0 + cos_phi)
    return np.where(captured, np.inf, np.maximum(u, 0.0))


def crossing_inverse_radius(b, psi, mass):
    """
    Inverse radius 1/r at which a photon of impact parameter `b` crosses the
    disk plane after sweeping `psi`.

    Returns 0 for photons escaping before the crossing (r = inf), inf for
    photons captured first (r = 0), and NaN exactly at the critical impact
    parameter.
    """
    b, psi = np.broadcast_arrays(np.asarray(b, dtype=float), np.asarray(psi, dtype=float))
    shape = b.shape
    b = b.ravel()
    psi = psi.ravel()
    b_c = critical_impact_parameter(mass)

    u = np.full(b.shape, np.nan)
    tiny = b <= 1e-9 * mass
    u[tiny] = np.inf

    bound = b > b_c * (1.0 + CRITICAL_GAP)
    if np.any(bound):
        u[bound] = _bound_inverse_radius(b[bound], psi[bound], mass)

    plunge = ~tiny & (b < b_c * (1.0 - CRITICAL_GAP))
    if np.any(plunge):
        _, c1, a1_sq = _plunge_roots(b[plunge], mass)
        ok = a1_sq > 0
        idx = np.flatnonzero(plunge)
        u[idx[ok]] = _plunge_inverse_radius(b[idx[ok]], psi[idx[ok]], mass)
    return u.reshape(shape)


def ellipse(radius, alpha, inclination):
    """
    Newtonian isoradial: radius * sin(gamma).

    Isoradials form ellipses in the flat-space limit; used for a starting
    estimate of the image extent.
    """
    return radius * np.sin(np.arccos(calc_cos_gamma(alpha, inclination)))
