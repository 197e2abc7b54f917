import os
import re
import sys
import time
from argparse import ArgumentParser, ArgumentTypeError, RawDescriptionHelpFormatter
from dataclasses import dataclass
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import tensorflow as tf

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")

from mandelband import (
    BACKENDS,
    DEFAULT_BACKEND,
    DEFAULT_WORKER_COUNT,
    MandelbandError,
    PixelBounds,
    Viewport,
    parse_complex,
    parse_dimensions,
    partition_bands,
    render_image,
    write_image,
)
from mandelband.image import resolve_image_format

_EPILOG = "Example: mandel mandel.png 1000x750 -1.20,0.35 -1,0.20"


@dataclass
class RenderConfig:
    output_path: Path
    image_format: str
    bounds: PixelBounds
    viewport: Viewport
    worker_count: int
    backend: str
    verbose: bool


_VALUE_OPTIONS = ("--workers", "--backend", "--format")
_NEGATIVE_TOKEN = re.compile(r"-[0-9.]")


def order_arguments(argv):
    """Reorder ``argv`` as options, then ``--``, then positionals.

    Corner points such as -1.20,0.35 start with a dash, so argparse only reads
    them as positionals after the ``--`` separator. An ``argv`` that already
    contains ``--`` is returned unchanged.
    """

    argv = list(argv)
    if "--" in argv:
        return argv

    options = []
    positionals = []
    tokens = iter(argv)
    for token in tokens:
        if token.startswith("-") and not _NEGATIVE_TOKEN.match(token):
            options.append(token)
            if token in _VALUE_OPTIONS:
                value = next(tokens, None)
                if value is not None:
                    options.append(value)
        else:
            positionals.append(token)
    return options + ["--"] + positionals


def _dimensions_arg(text):
    bounds = parse_dimensions(text)
    if bounds is None or bounds.width <= 0 or bounds.height <= 0:
        raise ArgumentTypeError(f"Unexpected dimensions: {text!r} (expected WIDTHxHEIGHT with positive integers)")
    return bounds


def _corner_arg(text):
    point = parse_complex(text)
    if point is None:
        raise ArgumentTypeError(f"error parsing corner point {text!r} (expected RE,IM)")
    return point


def build_parser():
    parser = ArgumentParser(
        prog="mandel",
        allow_abbrev=False,
        description="Render a grayscale image of the Mandelbrot set.",
        epilog=_EPILOG,
        formatter_class=RawDescriptionHelpFormatter,
    )

    parser.add_argument('file', metavar='FILE',
                        help='image file to write; the suffix selects the format unless --format is given')

    parser.add_argument('bounds', type=_dimensions_arg, metavar='PIXELS',
                        help='image size in pixels, as WIDTHxHEIGHT')

    parser.add_argument('upper_left', type=_corner_arg, metavar='UPPERLEFT',
                        help='complex point at the upper left corner, as RE,IM')

    parser.add_argument('lower_right', type=_corner_arg, metavar='LOWERRIGHT',
                        help='complex point at the lower right corner, as RE,IM')

    parser.add_argument('--workers', type=int, dest='worker_count', metavar='WORKERS',
                        default=DEFAULT_WORKER_COUNT,
                        help='number of horizontal bands rendered in parallel. Default: %(default)s.')

    parser.add_argument('--backend', choices=BACKENDS, default=DEFAULT_BACKEND,
                        help='escape-time kernel: "python" evaluates pixel by pixel, '
                             '"tensorflow" evaluates a whole band at once. Default: %(default)s.')

    parser.add_argument('--format', type=str, dest='format', metavar='FORMAT',
                        help='image file format. Can be any format supported by Pillow. Default: taken from FILE, else "png".')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics and timings.')

    return parser


def resolve_render_config(opt, parser: ArgumentParser) -> RenderConfig:
    if opt.worker_count < 1:
        parser.error(f"--workers must be at least 1, got {opt.worker_count}.")

    output_path = Path(opt.file).expanduser()
    if str(opt.file).endswith(tuple(filter(None, {os.sep, os.altsep}))):
        parser.error("FILE must be a file path, not a directory.")
    if output_path.exists() and output_path.is_dir():
        parser.error("FILE must point to a file, not a directory.")

    if opt.format:
        image_format = resolve_image_format(output_path, opt.format)
        suffix = output_path.suffix
        if suffix and suffix.lower().lstrip(".") != image_format:
            parser.error(f"FILE extension {suffix} does not match --format {image_format}.")
    else:
        image_format = resolve_image_format(output_path)

    return RenderConfig(
        output_path=output_path.resolve(),
        image_format=image_format,
        bounds=opt.bounds,
        viewport=Viewport(opt.upper_left, opt.lower_right),
        worker_count=opt.worker_count,
        backend=opt.backend,
        verbose=bool(opt.verbose),
    )


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(order_arguments(sys.argv[1:] if argv is None else argv))

    config = resolve_render_config(opt, parser)

    global VERBOSE
    VERBOSE = config.verbose

    log("TensorFlow version: %s" % tf.__version__)

    viewport = config.viewport
    if viewport.upper_left.real >= viewport.lower_right.real or viewport.upper_left.imag <= viewport.lower_right.imag:
        log("Viewport corners are not upper-left/lower-right; the image will be mirrored or empty.")

    try:
        bands = partition_bands(config.bounds, viewport, config.worker_count)
        for band in bands:
            log("band {0}: rows {1}-{2}, {3} -> {4}".format(
                band.index, band.rows.start, band.rows.stop - 1,
                band.viewport.upper_left, band.viewport.lower_right,
            ))

        started = time.perf_counter()
        pixels = render_image(
            config.bounds,
            viewport,
            worker_count=config.worker_count,
            backend=config.backend,
        )
        rendered = time.perf_counter()
        log("rendered {0}x{1} pixels in {2:.3f}s with the {3} backend".format(
            config.bounds.width, config.bounds.height, rendered - started, config.backend,
        ))

        write_image(config.output_path, pixels, config.bounds, config.image_format)
        log("wrote {0} in {1:.3f}s".format(config.output_path, time.perf_counter() - rendered))
    except MandelbandError as exc:
        print(f"mandel: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
