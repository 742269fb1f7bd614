"""
run_fire.py - Fire Effect Runner

Drives the engine from a single thread:

    update()  ->  flush_to_host()  ->  display / record

Interactive mode paints the snapshot in the terminal until a key is pressed.
Without a terminal (or with --headless) a fixed number of steps is run, and
the snapshot history can be saved as NPZ and/or rendered to a GIF.
"""

import argparse
import logging
import sys
import time

import imageio.v3 as iio
import numpy as np
from tqdm import tqdm

import config_fire as config
from accel import ExecutionContext
from fire_engine import FireEngine
from fire_errors import AcceleratorError
from logging_setup import setup_logging
from terminal_display import TerminalDisplay, snapshot_to_rgb

logger = logging.getLogger(__name__)

EPILOG = """
Examples:
  python run_fire.py
  python run_fire.py --quality
  python run_fire.py --headless --iterations 200 --save fire.npz --gif fire.gif
"""


def simulation_iterator(engine, context, iterations=None):
    """
    Generator that steps the engine and yields the published snapshot.

    Parameters:
    -----------
    iterations : int, optional
        Stop after this many steps; run forever when None

    Yields:
    -------
    dict: {"step", "status", "intensity"}; intensity is the engine's
    read-only snapshot view, only valid until the next step
    """
    step = 0
    while iterations is None or step < iterations:
        status = engine.update(context)
        flush_status = engine.flush_to_host()
        if status.ok:
            status = flush_status

        yield {
            "step": step,
            "status": status,
            "intensity": engine.host_intensity,
        }
        step += 1


def run_interactive(engine, context, display, frame_delay=config.FRAME_DELAY):
    steps = 0
    for frame in simulation_iterator(engine, context):
        display.draw(frame["intensity"])
        steps += 1
        if display.key_pressed():
            break
        if frame_delay > 0:
            time.sleep(frame_delay)
    return steps


def run_headless(engine, context, iterations, save_path=None, gif_path=None):
    """
    Runs a fixed number of steps, optionally keeping every snapshot.

    Returns:
    --------
    dict: {"steps", "failed", "frames"} where frames is the stacked
    snapshot history (None when nothing was recorded)
    """
    record = bool(save_path or gif_path)
    frames = []
    n_failed = 0

    for frame in tqdm(simulation_iterator(engine, context, iterations),
                      total=iterations, desc="Fire", disable=None):
        if not frame["status"].ok:
            n_failed += 1
        if record:
            frames.append(frame["intensity"].copy())

    if n_failed:
        logger.warning("%d of %d steps failed", n_failed, iterations)

    history = np.stack(frames) if frames else None
    if save_path and history is not None:
        save_frames(save_path, history, engine)
    if gif_path and history is not None:
        render_gif(gif_path, history)

    return {"steps": iterations, "failed": n_failed, "frames": history}


def save_frames(path, frames, engine):
    np.savez_compressed(
        path,
        intensity=frames,
        grid_shape=np.array([engine.height, engine.width]),
        supersample_factor=np.array([engine.supersample_factor]),
        blend_weights=np.array(engine.blend_weights),
    )
    logger.info("Saved %d frames: %s", len(frames), path)


def render_gif(path, frames, frame_ms=config.GIF_FRAME_MS):
    rgb = np.stack([snapshot_to_rgb(f) for f in frames])
    iio.imwrite(path, rgb, duration=frame_ms, loop=0)
    logger.info("Saved GIF: %s", path)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="GPU fire effect in the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument("--width", type=int, default=config.WIDTH,
                        help="Display columns")
    parser.add_argument("--height", type=int, default=config.HEIGHT,
                        help="Display rows")
    parser.add_argument("--quality", action="store_true", default=config.QUALITY,
                        help="Supersample the simulation and box-filter it down")
    parser.add_argument("--supersample", type=int, default=config.SUPERSAMPLE_FACTOR,
                        help="Supersample factor used with --quality")
    parser.add_argument("--iterations", type=int, default=config.HEADLESS_ITERATIONS,
                        help="Steps to run in headless mode")
    parser.add_argument("--headless", action="store_true",
                        help="Do not use the terminal display")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the fuel generator")
    parser.add_argument("--device", type=int, default=None,
                        help="CUDA device id")
    parser.add_argument("--delay", type=float, default=config.FRAME_DELAY,
                        help="Seconds between interactive frames")
    parser.add_argument("--save", type=str, default=None,
                        help="Save headless snapshots to this .npz file")
    parser.add_argument("--gif", type=str, default=None,
                        help="Render headless snapshots to this GIF")
    parser.add_argument("--log-level", type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", type=str, default=None,
                        help="Also log to this file (the only log output while "
                             "the terminal display is active)")
    args = parser.parse_args(argv)

    if args.width <= 0 or args.height <= 0:
        parser.error("--width and --height must be positive")
    if args.supersample < 1:
        parser.error("--supersample must be >= 1")
    if args.iterations < 0:
        parser.error("--iterations must be >= 0")
    return args


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    try:
        context = ExecutionContext.create(device_id=args.device)
    except AcceleratorError as e:
        logger.error("%s", e)
        return 1

    display = TerminalDisplay()
    try:
        supersample = args.supersample if args.quality else 1
        engine = FireEngine(args.width, args.height,
                            supersample_factor=supersample, seed=args.seed)
        try:
            engine.init(context)

            interactive = (not args.headless and sys.stdout.isatty()
                           and display.open())
            if interactive:
                # curses owns the terminal; keep console logging out of it
                setup_logging(args.log_level, args.log_file, to_stderr=False)
                steps = run_interactive(engine, context, display, args.delay)
            else:
                steps = run_headless(engine, context, args.iterations,
                                     save_path=args.save, gif_path=args.gif)["steps"]
        finally:
            engine.close(context)
            display.close()
    finally:
        context.close()

    setup_logging(args.log_level, args.log_file)
    logger.info("Ran %d steps", steps)
    return 0


if __name__ == "__main__":
    sys.exit(main())
