#elliptic.py
import numpy as np
from scipy import special

# ---
# Thin wrappers around scipy.special. The parameter m is the square of the
# elliptic modulus (m = k^2), matching scipy's convention and eqn 12 of the
# paper. Everything is vectorized over numpy arrays.
# ---


class EllipticDomainError(ValueError):
    """Raised when an elliptic parameter lies outside [0, 1)."""


def check_parameter(m):
    """
    Validate the elliptic parameter m and return it as a float array.

    The path equations only ever need 0 <= m < 1: m = 1 corresponds to a
    photon on the unstable circular orbit at P = 3M, where K diverges.
    """
    m = np.asarray(m, dtype=float)
    bad = ~np.isfinite(m) | (m < 0.0) | (m >= 1.0)
    if np.any(bad):
        offending = m[bad] if m.ndim else m
        raise EllipticDomainError(
            f"elliptic parameter must satisfy 0 <= m < 1, got {np.ravel(offending)[:5]}"
        )
    return m


def ellip_f(phi, m):
    """Incomplete elliptic integral of the first kind F(phi | m)."""
    m = check_parameter(m)
    return special.ellipkinc(phi, m)


def ellip_k(m):
    """Complete elliptic integral of the first kind K(m)."""
    m = check_parameter(m)
    return special.ellipk(m)


def jacobi(u, m):
    """
    Jacobi elliptic functions of argument u and parameter m.

    Returns
    -------
    sn, cn, dn, am : ndarray
        `am` is the amplitude, so that sn = sin(am) and cn = cos(am).
    """
    m = check_parameter(m)
    return special.ellipj(u, m)
