import numpy as np
import pytest
from scipy import integrate

from luminet.equations import (
    calc_cos_gamma, calc_modulus, calc_q, calc_zeta_inf, critical_impact_parameter,
    crossing_inverse_radius, ellipse, impact_parameter_from_periastron,
    periastron_from_impact_parameter, plunge_sweep, sweep_angle,
)
from luminet.elliptic import ellip_f, ellip_k

M = 1.0


def sweep_by_quadrature(b, u):
    """Angle swept from infinity down to 1/r = u, integrated numerically."""
    value, _ = integrate.quad(lambda v: 1.0 / np.sqrt(1.0 / b ** 2 - v ** 2 + 2.0 * M * v ** 3),
                              0.0, u, epsabs=1e-13, epsrel=1e-12)
    return value


def test_photon_sphere_gives_critical_impact_parameter():
    assert impact_parameter_from_periastron(3.0, M) == pytest.approx(3.0 * np.sqrt(3.0))
    assert critical_impact_parameter(2.0) == pytest.approx(6.0 * np.sqrt(3.0))


def test_periastron_inverts_impact_parameter():
    periastron = np.array([3.5, 4.0, 6.0, 10.0, 50.0, 1000.0])
    b = impact_parameter_from_periastron(periastron, M)
    np.testing.assert_allclose(periastron_from_impact_parameter(b, M), periastron, rtol=1e-10)


def test_no_periastron_inside_capture_radius():
    assert np.isnan(periastron_from_impact_parameter(4.0, M))


def test_modulus_in_range():
    periastron = np.linspace(3.01, 100.0, 50)
    m = calc_modulus(periastron, M)
    assert np.all((m > 0) & (m < 1))
    assert np.all(np.isfinite(calc_zeta_inf(periastron, M)))


def test_zero_sweep_is_at_infinity():
    u = crossing_inverse_radius(np.array([2.0, 8.0, 20.0]), 0.0, M)
    np.testing.assert_allclose(u, 0.0, atol=1e-12)


def test_periastron_reached_at_half_sweep():
    periastron = 7.0
    b = impact_parameter_from_periastron(periastron, M)
    q = calc_q(periastron, M)
    m = calc_modulus(periastron, M, q)
    half = 2.0 * np.sqrt(periastron / q) * (ellip_k(m) - ellip_f(calc_zeta_inf(periastron, M, q), m))
    assert crossing_inverse_radius(b, half, M) == pytest.approx(1.0 / periastron, rel=1e-8)


@pytest.mark.parametrize('b, u', [(8.0, 0.05), (8.0, 0.12), (20.0, 0.03), (5.5, 0.2)])
def test_bound_branch_matches_quadrature(b, u):
    psi = sweep_by_quadrature(b, u)
    assert crossing_inverse_radius(b, psi, M) == pytest.approx(u, rel=1e-6)


def test_photon_escapes_after_full_deflection():
    b = 10.0
    periastron = periastron_from_impact_parameter(b, M)
    q = calc_q(periastron, M)
    m = calc_modulus(periastron, M, q)
    total = 4.0 * np.sqrt(periastron / q) * (ellip_k(m) - ellip_f(calc_zeta_inf(periastron, M, q), m))
    assert crossing_inverse_radius(b, total + 0.01, M) == 0.0


@pytest.mark.parametrize('b', [1.0, 3.0, 5.0])
@pytest.mark.parametrize('u', [0.05, 0.2, 0.45])
def test_plunge_sweep_matches_quadrature(b, u):
    assert plunge_sweep(b, u, M) == pytest.approx(sweep_by_quadrature(b, u), rel=1e-7)


def test_plunge_branch_inverts_sweep():
    u = np.array([0.05, 0.2, 0.35, 0.45])
    b = np.full(u.shape, 3.0)
    np.testing.assert_allclose(crossing_inverse_radius(b, plunge_sweep(b, u, M), M), u, rtol=1e-7)


def test_plunge_photon_captured_past_horizon():
    b = 3.0
    psi = plunge_sweep(b, 0.5, M) + 0.05
    assert np.isinf(crossing_inverse_radius(b, psi, M))


def test_critical_impact_parameter_is_undefined():
    assert np.isnan(crossing_inverse_radius(critical_impact_parameter(M), 1.0, M))


def test_face_on_sweep_is_quarter_turn():
    alpha = np.linspace(0.0, 2.0 * np.pi, 9)
    np.testing.assert_allclose(calc_cos_gamma(alpha, 0.0), 0.0)
    np.testing.assert_allclose(sweep_angle(alpha, 1e-7, 0), np.pi / 2)


def test_edge_on_near_side_sweep_vanishes():
    assert calc_cos_gamma(0.0, np.pi / 2) == pytest.approx(1.0)
    assert sweep_angle(np.pi, np.pi / 2, 0) == pytest.approx(np.pi)


def test_ghost_sweeps_an_extra_half_turn():
    alpha = np.linspace(0.0, 2.0 * np.pi, 13)
    incl = np.deg2rad(60.0)
    np.testing.assert_allclose(sweep_angle(alpha, incl, 1) - sweep_angle(alpha, incl, 0), np.pi)


def test_newtonian_isoradial_is_an_ellipse():
    incl = np.deg2rad(60.0)
    assert ellipse(10.0, np.pi / 2, incl) == pytest.approx(10.0)
    assert ellipse(10.0, 0.0, incl) == pytest.approx(10.0 * np.cos(incl))
