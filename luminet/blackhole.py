#blackhole.py
import numpy as np

# ---
# GEOMETRIZED UNITS: G = c = 1
# All lengths are in units of the black hole mass M.
# Schwarzschild radius: r_s = 2M, photon sphere: 3M, last stable orbit: 6M
# ---

DEFAULT_MASS = 1.0
DEFAULT_ACCRETION_RATE = 1e-7
DEFAULT_DISK_OUTER_EDGE = 50.0
DISK_INNER_EDGE = 6.0


class ConfigError(ValueError):
    """Invalid configuration, rejected before any computation starts."""


def validate_inclination(inclination_deg):
    """
    Check a viewer inclination in degrees and return it in radians.

    The inclination is measured from the disk normal: 90 is edge-on, and
    exactly face-on (0) is excluded because the projection of the disk is
    undefined there.
    """
    try:
        value = float(inclination_deg)
    except (TypeError, ValueError):
        raise ConfigError(f"inclination must be a number, got {inclination_deg!r}")
    if not np.isfinite(value) or value <= 0.0 or value > 90.0:
        raise ConfigError(f"inclination must be in (0, 90] degrees, got {value}")
    return np.deg2rad(value)


def validate_resolution(width, height):
    if int(width) != width or int(height) != height or width <= 0 or height <= 0:
        raise ConfigError(f"resolution must be positive integers, got {width}x{height}")
    return int(width), int(height)


class BlackHole:
    """
    Represents a Schwarzschild black hole with a thin accretion disk.
    mass: in geometrized units (e.g., M = 1)
    accretion_rate: mass accretion rate of the disk
    disk_outer_edge: outer radius of the disk, in units of the mass
    """
    def __init__(self, mass=DEFAULT_MASS, accretion_rate=DEFAULT_ACCRETION_RATE,
                 disk_outer_edge=DEFAULT_DISK_OUTER_EDGE):
        if not np.isfinite(mass) or mass <= 0:
            raise ConfigError(f"black hole mass must be positive, got {mass}")
        if not np.isfinite(accretion_rate) or accretion_rate <= 0:
            raise ConfigError(f"accretion rate must be positive, got {accretion_rate}")
        if not np.isfinite(disk_outer_edge) or disk_outer_edge <= DISK_INNER_EDGE:
            raise ConfigError(
                f"disk outer edge must exceed the inner edge ({DISK_INNER_EDGE}), got {disk_outer_edge}"
            )
        self.mass = float(mass)
        self.accretion_rate = float(accretion_rate)
        self.outer_edge_factor = float(disk_outer_edge)

    @property
    def critical_impact_parameter(self):
        """Photon capture radius b_c = 3*sqrt(3)*M."""
        return 3.0 * np.sqrt(3.0) * self.mass

    @property
    def disk_inner_edge(self):
        return DISK_INNER_EDGE * self.mass

    @property
    def disk_outer_edge(self):
        return self.outer_edge_factor * self.mass

    def __repr__(self):
        return (f"BlackHole(mass={self.mass}, accretion_rate={self.accretion_rate}, "
                f"disk_outer_edge={self.outer_edge_factor})")
