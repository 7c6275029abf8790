import os
import sys
import warnings
from dataclasses import dataclass, replace
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import io
import logging
from argparse import ArgumentParser

import numpy as np
import PIL.Image
import imageio

from fractalrender import (
    ComplexPoint,
    FractalRenderError,
    GradientStops,
    Julia,
    Mandelbrot,
    RenderJobController,
    RenderRequest,
    RenderSettings,
    ViewportState,
    resolve_resolution,
    scheme_from_name,
)
from fractalrender.colors import SCHEME_NAMES, Custom, UnsupportedScheme, to_hex
from fractalrender.controller import JobStatus
from fractalrender.evaluator import DEFAULT_JULIA_CONSTANT
from fractalrender.scheduler import CHUNK_SIZE
from fractalrender.settings import DEFAULT_MAX_ITERATIONS, RESOLUTION_PRESETS
from fractalrender.viewport import DEFAULT_ZOOM, slow_zoom_factor


@dataclass
class OutputConfig:
    mode: str
    path: Path
    image_format: str


_DEFAULT_OUTPUTS = {
    "preview": "fractal_view",
    "highres": "fractal_highres",
    "animation": "fractal_zoom",
}


def build_parser():
    parser = ArgumentParser(description="Render Mandelbrot and Julia set images.")

    parser.add_argument('--mode', choices=sorted(_DEFAULT_OUTPUTS), default='preview',
                        help='preview: canvas-sized render; highres: chunked background render at --resolution; '
                             'animation: slow-zoom GIF built from preview renders.')

    parser.add_argument('--set', dest='set_type', choices=['mandelbrot', 'julia'], default='mandelbrot',
                        help='which fractal to render')
    parser.add_argument('--julia-real', type=float, dest='julia_real', metavar='REAL',
                        default=DEFAULT_JULIA_CONSTANT.real, help='real part of the Julia constant')
    parser.add_argument('--julia-imag', type=float, dest='julia_imag', metavar='IMAG',
                        default=DEFAULT_JULIA_CONSTANT.imag, help='imaginary part of the Julia constant')

    parser.add_argument('--zoom', type=float, default=DEFAULT_ZOOM,
                        help='zoom level; values below 0.5 are raised to 0.5')
    parser.add_argument('--offset-real', type=float, dest='offset_real', default=0.0,
                        help='real coordinate at the center of the view')
    parser.add_argument('--offset-imag', type=float, dest='offset_imag', default=0.0,
                        help='imaginary coordinate at the center of the view')

    parser.add_argument('--max-iterations', type=int, dest='max_iterations', metavar='MAX_ITERATIONS',
                        default=DEFAULT_MAX_ITERATIONS, help='iteration cap before a point counts as inside the set')

    parser.add_argument('--color-scheme', dest='color_scheme', default='fire',
                        help=f'one of {", ".join(SCHEME_NAMES)}')
    parser.add_argument('--colormap', type=str, default=None,
                        help='matplotlib colormap to color the fractal with (overrides --color-scheme)')
    parser.add_argument('--start-color', dest='start_color', default='#000000', help='custom gradient start, #RRGGBB')
    parser.add_argument('--middle-color', dest='middle_color', default='#ff0000', help='custom gradient middle, #RRGGBB')
    parser.add_argument('--end-color', dest='end_color', default='#ffffff', help='custom gradient end, #RRGGBB')
    parser.add_argument('--randomize', choices=['all', 'start', 'middle', 'end'], default=None,
                        help='replace custom gradient stops with random colors')
    parser.add_argument('--seed', type=int, default=None, help='seed for --randomize')

    parser.add_argument('--canvas-width', type=int, dest='canvas_width', default=800,
                        help='width of the preview/animation canvas')
    parser.add_argument('--canvas-height', type=int, dest='canvas_height', default=600,
                        help='height of the preview/animation canvas')
    parser.add_argument('--resolution', choices=[*RESOLUTION_PRESETS, 'custom'], default='1080',
                        help='output size for highres mode')
    parser.add_argument('--width', type=str, default=None, help='output width when --resolution custom')
    parser.add_argument('--height', type=str, default=None, help='output height when --resolution custom')
    parser.add_argument('--chunk-size', type=int, dest='chunk_size', default=CHUNK_SIZE,
                        help='pixels computed between progress reports in highres mode')

    parser.add_argument('--frames', type=int, default=60, help='number of frames in animation mode')
    parser.add_argument('--zoom-speed', type=float, dest='zoom_speed', default=50,
                        help='slow zoom speed; each frame multiplies zoom by 1 + 0.01 * (1 + speed / 100)')

    parser.add_argument('--output', type=str, default=None, help='destination file')
    parser.add_argument('--format', type=str, dest='format', metavar='FORMAT', default='png',
                        help='file format for preview/highres outputs. Can be any extension supported by Pillow.')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics and render job lifecycle.')

    return parser


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    image_format = (opt.format or "png").lower().lstrip(".") or "png"
    if opt.mode == "animation":
        image_format = "gif"

    if opt.output:
        output_path = Path(opt.output).expanduser()
        if output_path.exists() and output_path.is_dir():
            parser.error("--output must point to a file, not a directory.")
        expected_suffix = f".{image_format}"
        if output_path.suffix:
            if output_path.suffix.lower() != expected_suffix:
                parser.error(f"--output extension {output_path.suffix} does not match format {image_format}.")
        else:
            output_path = output_path.with_suffix(expected_suffix)
    else:
        output_path = Path(f"{_DEFAULT_OUTPUTS[opt.mode]}.{image_format}")

    return OutputConfig(mode=opt.mode, path=output_path.resolve(), image_format=image_format)


def resolve_gradient(opt, parser: ArgumentParser) -> GradientStops:
    try:
        stops = GradientStops.from_hex(opt.start_color, opt.middle_color, opt.end_color)
    except ValueError as exc:
        parser.error(str(exc))
    if opt.randomize:
        stops = stops.randomized(np.random.default_rng(opt.seed), opt.randomize)
        log("Randomized gradient: %s" % stops.as_hex())
    return stops


def build_settings(opt, parser: ArgumentParser) -> RenderSettings:
    name = f"colormap:{opt.colormap}" if opt.colormap else opt.color_scheme
    scheme = scheme_from_name(name, resolve_gradient(opt, parser))
    if isinstance(scheme, UnsupportedScheme):
        print(f"Unknown color scheme '{name}', escaping points will be black.")

    if opt.set_type == "julia":
        variant = Julia(ComplexPoint(opt.julia_real, opt.julia_imag))
    else:
        variant = Mandelbrot()

    try:
        viewport = ViewportState(
            zoom=opt.zoom,
            offset_real=opt.offset_real,
            offset_imag=opt.offset_imag,
            pixel_width=opt.canvas_width,
            pixel_height=opt.canvas_height,
        ).step_zoom(0)
        return RenderSettings(viewport=viewport, variant=variant, max_iterations=opt.max_iterations, scheme=scheme)
    except (FractalRenderError, ValueError) as exc:
        parser.error(str(exc))


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if pil_format == "JPEG" and image.mode == "RGBA":
        image = image.convert("RGB")
    image.save(str(output_path), format=pil_format)


def write_encoded_image(data: bytes, output_path: Path, image_format: str) -> None:
    """Persist PNG bytes handed back by a render job, converting if another format was requested."""

    if image_format == "png":
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
        return
    with PIL.Image.open(io.BytesIO(data)) as image:
        image.load()
        write_single_image(image, output_path, image_format)


def run_preview(settings: RenderSettings, config: OutputConfig) -> None:
    from fractalrender.preview import render_preview

    pixels = render_preview(settings)
    write_single_image(PIL.Image.fromarray(pixels), config.path, config.image_format)
    print(f"Saved {settings.width}x{settings.height} view to {config.path}")


def run_highres(opt, settings: RenderSettings, config: OutputConfig, parser: ArgumentParser) -> int:
    try:
        width, height = resolve_resolution(opt.resolution, opt.width, opt.height)
        request = RenderRequest.from_settings(settings, width, height)
    except FractalRenderError as exc:
        parser.error(str(exc))

    def on_progress(job):
        print(f"{round(job.percent_complete)}% {controller.status_line()}".ljust(60), end='\r')

    def on_complete(job, image):
        write_encoded_image(image, config.path, config.image_format)
        print()
        print(f"Saved {width}x{height} render to {config.path}")

    controller = RenderJobController(on_progress, on_complete, chunk_size=opt.chunk_size)
    controller.start(request)
    try:
        job = controller.wait()
    except KeyboardInterrupt:
        controller.cancel()
        print()
        print("Render cancelled.")
        return 130

    if job.status is JobStatus.FAILED:
        print(f"Render failed: {job.error}", file=sys.stderr)
        return 1
    return 0


def run_animation(opt, settings: RenderSettings, config: OutputConfig) -> None:
    from fractalrender.preview import render_preview

    if opt.frames <= 0:
        return
    factor = slow_zoom_factor(opt.zoom_speed)
    viewport = settings.viewport
    config.path.parent.mkdir(parents=True, exist_ok=True)
    writer = imageio.get_writer(str(config.path), mode='I', duration=max(opt.zoom_speed, 10) / 1000, loop=0)
    try:
        for i in range(opt.frames):
            print("frame {0} out of {1}".format(i, opt.frames), end='\r')
            writer.append_data(render_preview(replace(settings, viewport=viewport)))
            log("frame %d zoom %.4f" % (i, viewport.zoom))
            viewport = viewport.scale_zoom(factor)
    finally:
        writer.close()
    print()
    print(f"Saved {opt.frames} frame zoom to {config.path}")


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    logging.basicConfig(
        level=logging.DEBUG if VERBOSE else logging.WARNING,
        format='%(asctime)s - %(name)s - TH%(thread)d - %(levelname)s - %(message)s',
    )

    if opt.max_iterations < 1:
        parser.error("--max-iterations must be at least 1.")
    if opt.chunk_size < 1:
        parser.error("--chunk-size must be at least 1.")

    config = resolve_output_config(opt, parser)
    settings = build_settings(opt, parser)
    log("Rendering %s with %s" % (type(settings.variant).__name__, settings.scheme))
    if isinstance(settings.scheme, Custom):
        stops = settings.scheme.stops
        log("Gradient: %s -> %s -> %s" % (to_hex(stops.start), to_hex(stops.middle), to_hex(stops.end)))

    if config.mode == "highres":
        return run_highres(opt, settings, config, parser)
    if config.mode == "animation":
        run_animation(opt, settings, config)
    else:
        run_preview(settings, config)
    return 0


if __name__ == '__main__':
    sys.exit(main())
