import logging
import os

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.backend_bases import FigureCanvasBase

from luminet.blackhole import ConfigError, validate_inclination
from luminet.solvers import apparent_shadow_radius, impact_parameter, isoradial

ANGLE_COUNT = 360
PLOT_LIMIT = 35.0


def check_plot_path(out_path):
    extension = os.path.splitext(out_path)[1].lower().lstrip('.')
    if extension not in FigureCanvasBase.get_supported_filetypes():
        raise ConfigError(f"unsupported plot format {extension or '(none)'!r} for {out_path}")


def _save(fig, out_path):
    directory = os.path.dirname(out_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    logging.info(f"Saved {out_path}")


def plot_isoradials(blackhole, inclination, radii, out_path, settings=None, limit=PLOT_LIMIT):
    """
    Plot isoradial curves as the observer sees them, in the style of the
    paper's fig. 3:
    - the apparent edge of the black hole (inner disk edge or capture radius)
    - one closed curve per (radius, order) pair; ghost images drawn fainter

    inclination is in degrees from the disk normal.
    """
    inclination = validate_inclination(inclination)
    fig, ax = plt.subplots(figsize=(8, 8))

    # Apparent black hole edge
    alpha = np.arange(ANGLE_COUNT) / ANGLE_COUNT * 2.0 * np.pi
    b = apparent_shadow_radius(blackhole, alpha, inclination, settings)
    x, y = b * np.sin(alpha), -b * np.cos(alpha)
    ax.fill(x, y, color='black', label='Black hole')

    for radius, order in radii:
        curve = isoradial(radius, inclination, order, blackhole.mass, settings, ANGLE_COUNT)
        x, y = curve.plate_coordinates()
        # close the curve; unsolved angles leave gaps
        x = np.append(x, x[0])
        y = np.append(y, y[0])
        ax.plot(x, y, color='black', lw=2, alpha=0.25 if order > 0 else 0.5,
                label='Ghost image' if order > 0 else 'Direct image')

    ax.set_aspect('equal')
    ax.set_xlim(-limit, limit)
    ax.set_ylim(-limit, limit)
    ax.set_xlabel('x [M]')
    ax.set_ylabel('y [M]')
    ax.set_title(f'Isoradials at {np.rad2deg(inclination):g} deg')
    handles, labels = ax.get_legend_handles_labels()
    by_label = dict(zip(labels, handles))
    ax.legend(by_label.values(), by_label.keys())
    _save(fig, out_path)


def plot_impact_parameter_curves(blackhole, inclination, out_path, alphas_deg=(0, 90, 180, 270),
                                 orders=(0, 1), settings=None, num_radii=200):
    """
    Diagnostic: apparent impact parameter against emission radius, one curve
    per (position angle, order), over the whole disk.
    """
    inclination = validate_inclination(inclination)
    radii = np.linspace(blackhole.disk_inner_edge, blackhole.disk_outer_edge, num_radii)
    fig, ax = plt.subplots(figsize=(8, 6))
    for order in orders:
        for alpha_deg in alphas_deg:
            solution = impact_parameter(radii, np.deg2rad(alpha_deg), inclination, order,
                                        blackhole.mass, settings)
            ax.plot(radii, solution.impact_parameter, ls='-' if order == 0 else '--',
                    label=f'order {order}, alpha {alpha_deg} deg')
    ax.axhline(blackhole.critical_impact_parameter, color='gray', lw=1, ls=':',
               label='capture radius')
    ax.set_xlabel('emission radius r [M]')
    ax.set_ylabel('impact parameter b [M]')
    ax.set_title(f'b(r) at {np.rad2deg(inclination):g} deg')
    ax.legend(fontsize='small')
    _save(fig, out_path)
