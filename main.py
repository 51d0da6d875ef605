#main.py
import logging
import os
import sys

from config import blackhole_from_args, parse_args, settings_from_args
from luminet.dither import dither_file
from luminet.image import render_image, save_image
from luminet.render import generate_flux_grid, generate_flux_grids, inclination_range, series_flux_range
from visualization.plot import plot_impact_parameter_curves, plot_isoradials

# ---
# GEOMETRIZED UNITS: G = c = 1
# All lengths are in units of the black hole mass M.
# ---


def run_isoradials(args):
    bh = blackhole_from_args(args)
    radii = [(r, 0) for r in args.direct_radii] + [(r, 1) for r in args.ghost_radii]
    logging.info("Plotting isoradials...")
    plot_isoradials(bh, args.inclination, radii, args.path)
    if args.curves:
        logging.info("Plotting impact parameter curves...")
        plot_impact_parameter_curves(bh, args.inclination, args.curves)


def run_flux(args):
    bh = blackhole_from_args(args)
    settings = settings_from_args(args)
    result = generate_flux_grid(bh, args.inclination, args.width, args.height, settings)
    save_image(render_image(result.grid, args.colormap), args.path)
    if args.samples_csv:
        result.samples.to_frame().to_csv(args.samples_csv, index=False)
        logging.info(f"Saved {len(result.samples)} samples to {args.samples_csv}")


def run_flux_range(args):
    if not os.path.isdir(args.directory):
        raise NotADirectoryError(f"{args.directory} is not a directory")
    bh = blackhole_from_args(args)
    settings = settings_from_args(args)
    inclinations = inclination_range(args.start, args.end, args.step)
    results = generate_flux_grids(bh, inclinations, args.width, args.height, settings)
    # normalize the whole series against its brightest image
    flux_range = series_flux_range(results)
    for result in results:
        filename = f"{args.filename_prefix}{result.inclination:g}.png"
        save_image(render_image(result.grid, args.colormap, flux_range),
                   os.path.join(args.directory, filename))


def run_dither(args):
    dither_file(args.algorithm, args.input_path, args.output_path, args.mask)
    logging.info(f"Saved {args.output_path}")


COMMANDS = {
    'isoradials': run_isoradials,
    'flux': run_flux,
    'flux-range': run_flux_range,
    'dither': run_dither,
}


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO,
                        format='%(asctime)s %(levelname)s: %(message)s')
    try:
        COMMANDS[args.command](args)
    except OSError as e:
        logging.error(f"I/O error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
