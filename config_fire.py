"""
config_fire.py - Configuration for the GPU Fire Effect

Contains the default grid, stencil and display parameters. Values match the
reference demo: a 128x32 terminal fire, optionally simulated at 8x
supersampling and box-filtered back down to the terminal resolution.
"""

# =============================================================================
# GRID DIMENSIONS (Defaults - typically overridden on the command line)
# =============================================================================
WIDTH = 128   # columns (fire propagates along this axis)
HEIGHT = 32   # rows (fuel is injected once per row)

# =============================================================================
# QUALITY (SUPERSAMPLING)
# =============================================================================

# Simulate at WIDTH*S x HEIGHT*S and downsample with an SxS box filter
SUPERSAMPLE_FACTOR = 8

# Off by default: the basic variant simulates at display resolution
QUALITY = False

# =============================================================================
# PROPAGATION STENCIL
# =============================================================================

# (c1, c2): next[r, c] = c1*cur[r, c-1] + c2*cur[r-1, c-1] + c2*cur[r+1, c-1]
# Both sum to ~0.98, a slight decay so heat cannot accumulate without bound.
BLEND_WEIGHTS_BASIC = (0.53, 0.225)
BLEND_WEIGHTS_QUALITY = (0.497, 0.251)

# =============================================================================
# FUEL INJECTION
# =============================================================================

# Uniform random integers, both ends inclusive
FUEL_MIN = 64
FUEL_MAX = 128

# =============================================================================
# COMPUTATIONAL PARAMETERS
# =============================================================================

# Thread block size for the 2D kernels
THREADS_PER_BLOCK_2D = (8, 8)

# Side of the square array filled by the accelerator self test
SELF_TEST_SIZE = 128

# =============================================================================
# DISPLAY
# =============================================================================

# Values above this render with the brightest glyph
BRIGHT_THRESHOLD = 128

# Intensity range covered by one colour bucket
BUCKET_WIDTH = 24

# Bucket used for values above BRIGHT_THRESHOLD
BRIGHTEST_BUCKET = 6

FIRE_GLYPH = '#'
BRIGHT_GLYPH = '$'

# Curses colour names indexed by bucket (bucket 0 is drawn blank)
COLOR_RAMP = (
    'COLOR_BLACK', 'COLOR_BLACK', 'COLOR_RED', 'COLOR_YELLOW',
    'COLOR_WHITE', 'COLOR_CYAN', 'COLOR_MAGENTA', 'COLOR_BLUE',
)

# Same ramp as 8-bit RGB, for image export
RAMP_RGB = (
    (0, 0, 0),
    (0, 0, 0),
    (205, 0, 0),
    (205, 205, 0),
    (229, 229, 229),
    (0, 205, 205),
    (205, 0, 205),
    (0, 0, 238),
)

# =============================================================================
# RUN LOOP
# =============================================================================

# Steps run when no terminal is available
HEADLESS_ITERATIONS = 2

# Seconds slept between interactive frames
FRAME_DELAY = 0.0

# GIF frame duration [ms]
GIF_FRAME_MS = 50
