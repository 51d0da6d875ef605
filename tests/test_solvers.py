import logging

import numpy as np
import pytest

from luminet.blackhole import ConfigError
from luminet.equations import sweep_angle
from luminet.solvers import (
    DIRECT, GHOST, NO_SOLUTION, NOT_CONVERGED, SOLVED, SolverSettings, apparent_shadow_radius,
    emission_radius, impact_parameter, isoradial,
)


@pytest.mark.parametrize('order', [DIRECT, GHOST])
@pytest.mark.parametrize('radius', [6.0, 10.0, 20.0, 40.0])
def test_forward_and_inverse_solvers_agree(incl80, order, radius):
    alpha = np.deg2rad([0.0, 45.0, 90.0, 150.0, 180.0, 270.0, 330.0])
    settings = SolverSettings()
    forward = impact_parameter(np.full(alpha.shape, radius), alpha, incl80, order,
                               settings=settings)
    assert np.all(forward.status == SOLVED)

    inverse = emission_radius(forward.impact_parameter, alpha, incl80, order)
    assert np.all(inverse.valid)
    # within the solver tolerance, with slack for rounding in the re-evaluation
    np.testing.assert_allclose(inverse.radius, radius, rtol=settings.tolerance * 1.01)


def test_ghost_image_lies_outside_capture_radius(incl80, blackhole):
    curve = isoradial(10.0, incl80, GHOST, num_angles=36)
    assert np.all(curve.valid)
    assert np.all(curve.impact_parameter > blackhole.critical_impact_parameter)


def test_direct_image_grows_with_radius(incl80):
    alpha = np.full(4, np.pi / 2)
    solution = impact_parameter(np.array([8.0, 15.0, 25.0, 45.0]), alpha, incl80)
    assert np.all(np.diff(solution.impact_parameter) > 0)


def test_edge_on_near_side_has_no_solution():
    solution = impact_parameter(np.array([10.0]), np.array([0.0]), np.pi / 2)
    assert solution.status[0] == NO_SOLUTION
    assert np.isnan(solution.impact_parameter[0])


def test_exhausted_budget_reports_not_converged(incl80, caplog):
    settings = SolverSettings(tolerance=1e-14, max_iterations=1)
    with caplog.at_level(logging.WARNING):
        solution = impact_parameter(np.array([10.0]), np.array([np.pi / 2]), incl80,
                                    settings=settings)
    assert solution.status[0] == NOT_CONVERGED
    assert not solution.valid[0]
    assert solution.counts() == {'solved': 0, 'no_solution': 0, 'not_converged': 1}
    assert 'did not converge' in caplog.text


def test_emission_radius_symmetric_about_vertical_axis(incl80):
    b = np.linspace(3.0, 40.0, 25)
    alpha = np.deg2rad(37.0)
    right = emission_radius(b, alpha, incl80, DIRECT)
    left = emission_radius(b, 2.0 * np.pi - alpha, incl80, DIRECT)
    np.testing.assert_array_equal(right.status, left.status)
    np.testing.assert_allclose(right.radius, left.radius, equal_nan=True)


def test_emission_radius_respects_disk_bounds(incl80):
    b = np.linspace(1.0, 70.0, 100)
    solution = emission_radius(b, np.pi / 2, incl80, DIRECT, bounds=(6.0, 50.0))
    radius = solution.radius[solution.valid]
    assert radius.size > 0
    assert np.all((radius >= 6.0) & (radius <= 50.0))


def test_center_of_shadow_has_no_solution(incl80):
    solution = emission_radius(np.array([0.0, 0.5]), np.array([0.0, 1.0]), incl80, DIRECT)
    assert np.all(solution.status == NO_SOLUTION)


def test_plate_coordinates_put_near_side_below(incl80):
    solution = impact_parameter(np.array([10.0]), np.array([0.0]), incl80)
    x, y = solution.plate_coordinates()
    assert x[0] == pytest.approx(0.0, abs=1e-12)
    assert y[0] < 0


def test_shadow_never_exceeds_capture_radius(incl80, blackhole):
    alpha = np.linspace(0.0, 2.0 * np.pi, 36, endpoint=False)
    shadow = apparent_shadow_radius(blackhole, alpha, incl80)
    assert np.all(np.isfinite(shadow))
    assert np.all(shadow <= blackhole.critical_impact_parameter)


@pytest.mark.parametrize('kwargs', [
    {'tolerance': 0.0},
    {'tolerance': -1e-3},
    {'max_iterations': 0},
    {'max_order': -1},
    {'max_order': 1.5},
])
def test_invalid_solver_settings_rejected(kwargs):
    with pytest.raises(ConfigError):
        SolverSettings(**kwargs)


def test_solutions_carry_the_sweep_angle(incl80):
    alpha = np.deg2rad([20.0, 90.0, 200.0])
    direct = emission_radius(np.array([8.0, 12.0, 20.0]), alpha, incl80, DIRECT)
    np.testing.assert_allclose(direct.sweep, sweep_angle(alpha, incl80, DIRECT))

    ghost = impact_parameter(np.full(3, 10.0), alpha, incl80, GHOST)
    np.testing.assert_allclose(ghost.sweep, direct.sweep + np.pi)
    assert np.all((ghost.sweep > np.pi) & (ghost.sweep < 2.0 * np.pi))
