"""
steadycam Command Line Interface

Usage:
    steadycam <command> [options]

Commands:
    stabilize   Smooth the camera path of a video
    track       Object-lock: keep the subject at the frame center in place
    enhance     CLAHE + auto gamma (optionally denoise/detail) on an image
    presets     List the built-in presets
    config      Write a preset as an editable JSON config

Examples:
    steadycam stabilize shaky.mp4 steady.mp4 -p gimbal
    steadycam stabilize shaky.mp4 steady.mp4 -r 45 -k gaussian -z 1.2
    steadycam track skate.mp4 locked.mp4 -z 1.4
    steadycam enhance photo.jpg -o photo_out.jpg --detail
    steadycam config --write my_config.json -p smart
"""

import sys
import argparse
import logging
import signal
import threading

from steadycam import __version__
from steadycam.core.config import (
    PRESETS,
    SmoothingKernel,
    StabilizerConfig,
    apply_env_overrides,
    get_preset,
    load_config,
)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog='steadycam',
        description='Video stabilization toolkit',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'steadycam {__version__}',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging',
    )
    parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only log warnings and errors',
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Stabilize command
    stab_parser = subparsers.add_parser(
        'stabilize',
        help='Smooth the camera path of a video',
    )
    _add_video_args(stab_parser, default_preset='light')
    stab_parser.add_argument(
        '-r', '--radius',
        type=int,
        default=None,
        help='Smoothing radius in frames',
    )
    stab_parser.add_argument(
        '-k', '--kernel',
        choices=[k.value for k in SmoothingKernel],
        default=None,
        help='Smoothing window weighting',
    )
    stab_parser.add_argument(
        '--method',
        choices=['flow', 'orb'],
        default=None,
        help='Motion observation strategy',
    )
    stab_parser.add_argument(
        '--enhance',
        action='store_true',
        help='Apply CLAHE and auto gamma to every frame',
    )

    # Track command
    track_parser = subparsers.add_parser(
        'track',
        help='Keep the subject at the frame center fixed on screen',
    )
    _add_video_args(track_parser, default_preset='lock')
    track_parser.add_argument(
        '--reseed-threshold',
        type=int,
        default=None,
        help='Re-seed when fewer live points remain',
    )
    track_parser.add_argument(
        '--reseed-interval',
        type=int,
        default=None,
        help='Re-seed every N frames (0 disables)',
    )

    # Enhance command
    enh_parser = subparsers.add_parser(
        'enhance',
        help='Enhance a still image',
    )
    enh_parser.add_argument('image', help='Image file')
    enh_parser.add_argument(
        '-o', '--output',
        default=None,
        help='Output image (default: overwrite input)',
    )
    enh_parser.add_argument(
        '--denoise',
        action='store_true',
        help='Apply non-local means denoising',
    )
    enh_parser.add_argument(
        '--detail',
        action='store_true',
        help='Apply detail enhancement',
    )

    # Presets command
    subparsers.add_parser(
        'presets',
        help='List built-in presets',
    )

    # Config command
    cfg_parser = subparsers.add_parser(
        'config',
        help='Write a preset as JSON',
    )
    cfg_parser.add_argument(
        '--write',
        required=True,
        metavar='PATH',
        help='Output JSON path',
    )
    cfg_parser.add_argument(
        '-p', '--preset',
        default='light',
        choices=sorted(PRESETS),
        help='Preset to write (default: light)',
    )

    return parser


def _add_video_args(parser: argparse.ArgumentParser, default_preset: str) -> None:
    parser.add_argument('input', help='Input video file')
    parser.add_argument('output', help='Output video file')
    parser.add_argument(
        '-p', '--preset',
        default=default_preset,
        choices=sorted(PRESETS),
        help=f'Preset (default: {default_preset})',
    )
    parser.add_argument(
        '-c', '--config',
        default=None,
        help='JSON configuration file (overrides --preset)',
    )
    parser.add_argument(
        '-z', '--zoom',
        type=float,
        default=None,
        help='Fixed zoom about the center to hide borders',
    )
    parser.add_argument(
        '--codec',
        action='append',
        dest='codecs',
        metavar='FOURCC',
        help='Codec candidate, in priority order (can be used multiple times)',
    )


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def config_from_args(args) -> StabilizerConfig:
    """Resolve preset / config file / environment / flags, in that order."""
    if args.config:
        config = load_config(args.config)
    else:
        config = get_preset(args.preset)
    apply_env_overrides(config)

    if args.zoom is not None:
        config.zoom = args.zoom
    if args.codecs:
        config.codecs = tuple(args.codecs)

    if args.command == 'stabilize':
        if args.radius is not None:
            config.smoothing.radius = args.radius
        if args.kernel is not None:
            config.smoothing.kernel = SmoothingKernel(args.kernel)
        if args.method is not None:
            config.motion.method = args.method
        if args.enhance:
            config.enhance.enabled = True
    elif args.command == 'track':
        if args.reseed_threshold is not None:
            config.lock.reseed_threshold = args.reseed_threshold
        if args.reseed_interval is not None:
            config.lock.reseed_interval = args.reseed_interval

    return config.validate()


def _report(result) -> int:
    if result.ok:
        print(f"Wrote {result.output_path} ({result.frames_written} frames, codec {result.codec})")
        if result.fallback_frames:
            print(f"  {result.fallback_frames} frames had too little evidence and were left as is")
        return 0
    print(f"Failed [{result.error.value}]: {result.message}", file=sys.stderr)
    return 1


def run_video(args) -> int:
    """Run the stabilize or track command."""
    from steadycam.pipeline import stabilize, track

    try:
        config = config_from_args(args)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    # Ctrl-C stops after the current frame and removes the partial output
    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        entry = stabilize if args.command == 'stabilize' else track
        print(f"{args.command.capitalize()} {args.input} -> {args.output}")
        result = entry(args.input, args.output, config=config, cancel=cancel)
    finally:
        signal.signal(signal.SIGINT, previous)

    return _report(result)


def run_enhance(args) -> int:
    """Run the enhance command."""
    from steadycam.processing import enhance_image

    result = enhance_image(
        args.image, args.output, denoise=args.denoise, detail=args.detail
    )
    if result.ok:
        print(f"Wrote {result.output_path}")
        return 0
    print(f"Failed [{result.error.value}]: {result.message}", file=sys.stderr)
    return 1


def run_presets(args) -> int:
    """List presets."""
    for name in sorted(PRESETS):
        config = get_preset(name)
        print(
            f"{name:8s} mode={config.mode.value} method={config.motion.method} "
            f"radius={config.smoothing.radius} kernel={config.smoothing.kernel.value} "
            f"zoom={config.zoom} enhance={config.enhance.enabled}"
        )
    return 0


def run_config(args) -> int:
    """Write a preset to a JSON file."""
    config = get_preset(args.preset)
    config.save(args.write)
    print(f"Created configuration: {args.write}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(args.verbose, args.quiet)

    # Dispatch to appropriate command
    if args.command in ('stabilize', 'track'):
        return run_video(args)
    elif args.command == 'enhance':
        return run_enhance(args)
    elif args.command == 'presets':
        return run_presets(args)
    elif args.command == 'config':
        return run_config(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
