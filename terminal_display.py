"""
terminal_display.py - Curses display for the fire snapshot

Maps each intensity to one of 8 colour buckets:
    value > 128        -> brightest bucket, drawn with '$'
    otherwise          -> int(value) // 24, drawn with '#'; bucket 0 is blank
"""

import curses
import logging

import numpy as np

import config_fire as config

logger = logging.getLogger(__name__)


def intensity_to_buckets(snapshot):
    """
    Returns an int array of colour buckets with the snapshot's shape.
    """
    values = np.asarray(snapshot).astype(np.int64)
    buckets = values // config.BUCKET_WIDTH
    buckets = np.clip(buckets, 0, len(config.COLOR_RAMP) - 1)
    buckets[values > config.BRIGHT_THRESHOLD] = config.BRIGHTEST_BUCKET
    return buckets


def buckets_to_rgb(buckets):
    """
    Colours a bucket array with RAMP_RGB. Returns uint8 (rows, cols, 3).
    """
    ramp = np.asarray(config.RAMP_RGB, dtype=np.uint8)
    return ramp[np.asarray(buckets)]


def snapshot_to_rgb(snapshot):
    return buckets_to_rgb(intensity_to_buckets(snapshot))


class TerminalDisplay:
    """
    Paints snapshots onto a curses screen, one character per cell.
    """

    def __init__(self):
        self.screen = None

    def open(self):
        """
        Takes over the terminal. Returns False when none is available.
        """
        try:
            self.screen = curses.initscr()
        except curses.error as e:
            logger.info("No terminal available (%s); running headless", e)
            self.screen = None
            return False

        self.screen.keypad(True)
        self.screen.nodelay(True)
        curses.noecho()

        if curses.has_colors():
            curses.start_color()
            for i, name in enumerate(config.COLOR_RAMP):
                if i == 0:
                    # Pair 0 is fixed by curses
                    continue
                curses.init_pair(i, getattr(curses, name), curses.COLOR_BLACK)
        return True

    @property
    def is_open(self):
        return self.screen is not None

    def key_pressed(self):
        return self.screen.getch() != curses.ERR

    def draw(self, snapshot):
        buckets = intensity_to_buckets(snapshot)
        max_y, max_x = self.screen.getmaxyx()
        n_rows = min(buckets.shape[0], max_y)
        n_cols = min(buckets.shape[1], max_x)

        for y in range(n_rows):
            for x in range(n_cols):
                bucket = int(buckets[y, x])
                if bucket == 0:
                    ch = ' '
                    attr = curses.A_NORMAL
                else:
                    if int(snapshot[y, x]) > config.BRIGHT_THRESHOLD:
                        ch = config.BRIGHT_GLYPH
                    else:
                        ch = config.FIRE_GLYPH
                    attr = curses.color_pair(bucket)
                try:
                    self.screen.addch(y, x, ch, attr)
                except curses.error:
                    # Writing the bottom-right cell moves the cursor off screen
                    pass
        self.screen.refresh()

    def close(self):
        if self.screen is None:
            return
        self.screen.keypad(False)
        curses.echo()
        curses.endwin()
        self.screen = None
