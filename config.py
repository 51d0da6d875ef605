import argparse

from luminet.blackhole import (
    DEFAULT_ACCRETION_RATE, DEFAULT_DISK_OUTER_EDGE, DEFAULT_MASS, BlackHole, ConfigError,
    validate_inclination, validate_resolution,
)
from luminet.dither import DITHER_ALGORITHMS
from luminet.image import check_colormap, check_image_path
from luminet.sampling import SamplingSettings
from luminet.solvers import SolverSettings
from visualization.plot import check_plot_path


def _add_blackhole_args(parser):
    parser.add_argument('--bh-mass', type=float, default=DEFAULT_MASS, help='Black hole mass (default: 1)')
    parser.add_argument('--accretion-rate', type=float, default=DEFAULT_ACCRETION_RATE, help='Accretion rate of the disk (default: 1e-7)')
    parser.add_argument('--disk-outer-edge', type=float, default=DEFAULT_DISK_OUTER_EDGE, help='Outer edge of the disk in units of the mass (default: 50)')


def _add_render_args(parser):
    _add_blackhole_args(parser)
    parser.add_argument('-s', '--samples', type=int, default=200_000, help='Number of flux samples; more is slower but smoother (default: 200000)')
    parser.add_argument('--width', type=int, default=2048, help='Output image width in pixels (default: 2048)')
    parser.add_argument('--height', type=int, default=1080, help='Output image height in pixels (default: 1080)')
    parser.add_argument('--max-order', type=int, default=1, help='Highest image order to render, 0 = direct only (default: 1)')
    parser.add_argument('--tolerance', type=float, default=1e-6, help='Relative tolerance of the photon-path solver (default: 1e-6)')
    parser.add_argument('--max-iterations', type=int, default=100, help='Iteration budget of the photon-path solver (default: 100)')
    parser.add_argument('--workers', type=int, default=None, help='Worker processes for sampling (default: CPU count)')
    parser.add_argument('--seed', type=int, default=0, help='Seed of the sample jitter (default: 0)')
    parser.add_argument('--jitter', type=float, default=0.25, help='Sample jitter as a fraction of the lattice spacing (default: 0.25)')
    parser.add_argument('--colormap', type=str, default='inferno', help="Matplotlib colormap, or 'gray' for 16-bit grayscale (default: inferno)")
    parser.add_argument('--opaque-disk', action='store_true', help='Hide ghost images behind the direct image of the disk')
    parser.add_argument('--no-progress', action='store_true', help='Disable progress bars')


def build_parser():
    parser = argparse.ArgumentParser(description="Image of a Schwarzschild black hole with a thin accretion disk (Luminet 1979)")
    parser.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    subparsers = parser.add_subparsers(dest='command', required=True)

    isoradials = subparsers.add_parser('isoradials', help='Plot isoradial curves')
    isoradials.add_argument('-i', '--inclination', type=float, default=80.0, help='Viewer inclination from the disk normal, degrees (default: 80)')
    isoradials.add_argument('--direct-radii', type=float, nargs='+', default=[6.0, 10.0, 20.0, 30.0], help='Direct (order 0) radii to plot')
    isoradials.add_argument('--ghost-radii', type=float, nargs='+', default=[6.0, 10.0, 30.0, 10000.0], help='Ghost (order 1) radii to plot')
    isoradials.add_argument('--curves', type=str, default=None, help='Also plot b(r) curves per order to this path')
    _add_blackhole_args(isoradials)
    isoradials.add_argument('path', help='Output image path')

    flux = subparsers.add_parser('flux', help='Render an image of the observed flux')
    flux.add_argument('-i', '--inclination', type=float, default=80.0, help='Viewer inclination from the disk normal, degrees (default: 80)')
    _add_render_args(flux)
    flux.add_argument('--samples-csv', type=str, default=None, help='Also write the evaluated samples to this CSV file')
    flux.add_argument('path', help='Output image path')

    flux_range = subparsers.add_parser('flux-range', help='Render a series of inclinations with shared normalization')
    flux_range.add_argument('--start', type=float, default=10.0, help='First inclination, degrees (default: 10)')
    flux_range.add_argument('--end', type=float, default=80.0, help='Last inclination, degrees (default: 80)')
    flux_range.add_argument('--step', type=float, default=10.0, help='Inclination step, degrees (default: 10)')
    _add_render_args(flux_range)
    flux_range.add_argument('directory', help='Output directory')
    flux_range.add_argument('filename_prefix', help='Output filename prefix')

    dither = subparsers.add_parser('dither', help='Dither an image to black and white')
    dither.add_argument('-a', '--algorithm', choices=DITHER_ALGORITHMS, default='floyd', help='Dither algorithm (default: floyd)')
    dither.add_argument('--mask', type=str, default=None, help="Threshold mask image for the 'mask' algorithm (e.g. blue noise)")
    dither.add_argument('input_path', help='Input image path')
    dither.add_argument('output_path', help='Output image path')
    return parser


def validate_args(args):
    """Check every option before any computation; raises ConfigError naming the bad value."""
    if hasattr(args, 'bh_mass'):
        BlackHole(args.bh_mass, args.accretion_rate, args.disk_outer_edge)
    if args.command in ('isoradials', 'flux'):
        validate_inclination(args.inclination)
    if args.command == 'isoradials':
        check_plot_path(args.path)
        if args.curves:
            check_plot_path(args.curves)
        for r in args.direct_radii + args.ghost_radii:
            if r <= 0:
                raise ConfigError(f"isoradial radii must be positive, got {r}")
    if args.command in ('flux', 'flux-range'):
        validate_resolution(args.width, args.height)
        check_colormap(args.colormap)
        if args.command == 'flux':
            check_image_path(args.path)
        settings_from_args(args)
    if args.command == 'flux-range':
        if args.step <= 0:
            raise ConfigError(f"inclination step must be positive, got {args.step}")
        if args.end < args.start:
            raise ConfigError(f"inclination range is empty: {args.start} to {args.end}")
        validate_inclination(args.start)
        validate_inclination(args.end)
    if args.command == 'dither':
        check_image_path(args.output_path)
        if args.algorithm == 'mask' and args.mask is None:
            raise ConfigError("the 'mask' algorithm needs --mask")


def blackhole_from_args(args):
    return BlackHole(args.bh_mass, args.accretion_rate, args.disk_outer_edge)


def settings_from_args(args):
    solver = SolverSettings(tolerance=args.tolerance, max_iterations=args.max_iterations,
                            max_order=args.max_order)
    return SamplingSettings(samples=args.samples, jitter=args.jitter, seed=args.seed,
                            workers=args.workers, opaque_disk=args.opaque_disk,
                            progress=not args.no_progress, solver=solver)


def parse_args(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        validate_args(args)
    except ConfigError as e:
        parser.error(str(e))
    return args
