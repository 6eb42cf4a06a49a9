#!/usr/bin/env python3
"""
SemZoom CLI

Command-line interface for recording execution traces and exploring them
with semantic zoom.

Usage:
    semzoom record [-o trace.json] <script.py> [args...]
    semzoom render <trace.json> <script.py> [-o frame.svg] [--zoom Z --left X --top Y]
    semzoom zoom <trace.json> <script.py> --at X Y [--steps N] [--factor F] [-o dir]
    semzoom serve <trace.json> <script.py> [--host H] [--port P]
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .errors import SemZoomError

logger = logging.getLogger(__name__)

# frames rendered while waiting for the scope chain to settle
MAX_SETTLE_FRAMES = 100


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def load_settings(args):
    """Load configuration and apply command-line overrides."""
    from .color_manager import configure_colors
    from .config import load_config

    config = load_config(args.config)
    if getattr(args, 'width', None):
        config.canvas.width = args.width
    if getattr(args, 'height', None):
        config.canvas.height = args.height
    if config.colors_path:
        configure_colors(config.colors_path)
    return config


def load_session(args, config):
    """Load the trace and source named on the command line into a session."""
    from .scope.session import create_session
    from .trace.history import load_history
    from .trace.source import SourceIndex

    history = load_history(args.trace)
    source = SourceIndex.from_file(args.source)
    print(f"Loaded {len(history)} trace entries for {args.source}")
    return create_session(history, source, config)


def make_renderer(config, output_dir=None):
    from .render.svg import SvgFrameRenderer

    return SvgFrameRenderer(
        config.canvas.width,
        config.canvas.height,
        output_dir=output_dir,
        font_family=config.text.font_family,
        font_weight=config.text.font_weight,
    )


def settle(session):
    """Render until the scope chain stops moving; return the last frame."""
    from .scope.navigator import Transition

    frame = session.render()
    for _ in range(MAX_SETTLE_FRAMES):
        if frame.transition in (Transition.STAY, Transition.RESET):
            break
        frame = session.render()
    return frame


def cmd_record(args):
    """Record an execution trace."""
    from .trace.history import dump_history
    from .trace.recorder import record_script

    script_args = list(args.script_args)
    if script_args and script_args[0] == '--':
        script_args = script_args[1:]

    entries = record_script(args.script, script_args, max_entries=args.max_entries)
    if not entries:
        print(f"Error: no lines of {args.script} were executed")
        return 1

    output = Path(args.output) if args.output else Path(args.script).with_suffix('.trace.json')
    dump_history(entries, output)
    print(f"Recorded {len(entries)} entries to {output}")
    return 0


def cmd_render(args):
    """Render one settled frame to SVG."""
    config = load_settings(args)
    session = load_session(args, config)

    if args.zoom is not None or args.left is not None or args.top is not None:
        session.set_viewport(
            top=args.top if args.top is not None else session.viewport.top,
            left=args.left if args.left is not None else session.viewport.left,
            zoom=args.zoom if args.zoom is not None else session.viewport.zoom,
        )

    frame = settle(session)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(make_renderer(config).render_frame_svg(frame))

    print(f"Scope: {' > '.join(session.chain_names())}")
    print(f"Scopes drawn: {len(frame.rendered)} ({frame.culled} culled)")
    print(f"Wrote {output}")
    return 0


def cmd_zoom(args):
    """Zoom into a point step by step and export every frame."""
    config = load_settings(args)
    session = load_session(args, config)
    renderer = make_renderer(config, args.output)
    x, y = args.at

    for step in range(args.steps):
        frame = session.render()
        renderer.capture(frame, label=f"Step {step} (zoom {session.viewport.zoom:.2f})")
        session.wheel(x, y, args.factor)

    renderer.export_all_frames()
    report = renderer.export_html_report()
    print(f"Final scope: {' > '.join(session.chain_names())}")
    print(f"Exported {len(renderer.frames)} frames to {renderer.output_dir}")
    if report:
        print(f"Report: {report}")
    return 0


def cmd_serve(args):
    """Serve an interactive zoom viewer over WebSocket."""
    import asyncio

    from .viewer.stream_server import ZoomStreamServer
    from .viewer.stream_viewer import generate_viewer_html

    config = load_settings(args)
    if args.host:
        config.stream.host = args.host
    if args.port:
        config.stream.port = args.port
    session = load_session(args, config)

    server = ZoomStreamServer(
        session,
        make_renderer(config),
        host=config.stream.host,
        port=config.stream.port,
        max_fps=config.stream.max_fps,
    )
    viewer_path = Path(args.viewer)
    generate_viewer_html(server.url, config.canvas.width, config.canvas.height, viewer_path)
    print(f"Open {viewer_path} in your browser (server at {server.url})")

    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        print("\nStopped.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SemZoom - semantic zoom over Python execution traces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  semzoom record -o fib.json examples/fib_recurse.py
  semzoom render fib.json examples/fib_recurse.py -o fib.svg
  semzoom zoom fib.json examples/fib_recurse.py --at 400 300 --steps 40
  semzoom serve fib.json examples/fib_recurse.py --port 8765
        """,
    )
    parser.add_argument('--version', action='version', version=f'semzoom {__version__}')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    common.add_argument('--config', help='YAML file overriding the default settings')

    view = argparse.ArgumentParser(add_help=False, parents=[common])
    view.add_argument('trace', help='Trace file written by "semzoom record"')
    view.add_argument('source', help='Python source file the trace was recorded from')
    view.add_argument('--width', type=int, help='Canvas width in px (default: 1200)')
    view.add_argument('--height', type=int, help='Canvas height in px (default: 1200)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Record command
    record_parser = subparsers.add_parser('record', parents=[common],
                                          help='Record an execution trace of a script')
    record_parser.add_argument('script', help='Python script to run')
    record_parser.add_argument('-o', '--output', help='Trace file (default: <script>.trace.json)')
    record_parser.add_argument('--max-entries', type=int, default=100_000,
                               help='Stop recording after this many entries (default: 100000)')
    record_parser.add_argument('script_args', nargs=argparse.REMAINDER,
                               help='Arguments passed to the script (options for record go before the script)')

    # Render command
    render_parser = subparsers.add_parser('render', parents=[view],
                                          help='Render one frame to SVG')
    render_parser.add_argument('-o', '--output', default='semzoom_frame.svg', help='Output SVG file')
    render_parser.add_argument('--zoom', type=float, help='Viewport zoom')
    render_parser.add_argument('--left', type=float, help='Viewport left edge (world units)')
    render_parser.add_argument('--top', type=float, help='Viewport top edge (world units)')

    # Zoom command
    zoom_parser = subparsers.add_parser('zoom', parents=[view],
                                        help='Zoom into a point and export the frames')
    zoom_parser.add_argument('--at', nargs=2, type=float, required=True, metavar=('X', 'Y'),
                             help='Screen point to zoom into (px)')
    zoom_parser.add_argument('--steps', type=int, default=30, help='Number of frames (default: 30)')
    zoom_parser.add_argument('--factor', type=float, default=-20.0,
                             help='Wheel delta per step; negative zooms in (default: -20)')
    zoom_parser.add_argument('-o', '--output', default='semzoom_frames', help='Output directory')

    # Serve command
    serve_parser = subparsers.add_parser('serve', parents=[view],
                                         help='Serve an interactive viewer')
    serve_parser.add_argument('--host', help='Server host (default: localhost)')
    serve_parser.add_argument('--port', type=int, help='Server port (default: 8765)')
    serve_parser.add_argument('--viewer', default='semzoom_viewer.html',
                              help='Where to write the viewer page')

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    commands = {
        'record': cmd_record,
        'render': cmd_render,
        'zoom': cmd_zoom,
        'serve': cmd_serve,
    }

    try:
        return commands[args.command](args)
    except (SemZoomError, FileNotFoundError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
