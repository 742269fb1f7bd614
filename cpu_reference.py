"""
cpu_reference.py - Host reference for the fire effect

Pure numpy/scipy version of the device stages. Used as ground truth for the
kernels: same stencil, same box filter, no device involved.

Invariants:
    - Arrays are [row, col]; fuel enters column 0, one value per row
    - Row neighbours wrap around (toroidal), columns do not
    - Results are float32, like the device buffers
"""

import numpy as np
import scipy.ndimage


def propagate(current, fuel, c1, c2):
    """
    One propagation step.

    Parameters:
    -----------
    current : 2D array
        Current heat buffer, shape (rows, cols)
    fuel : 1D array
        Fuel row, length rows
    c1, c2 : float
        Centre and neighbour weights

    Returns:
    --------
    np.ndarray: next heat buffer, float32
    """
    current = np.asarray(current, dtype=np.float64)
    fuel = np.asarray(fuel, dtype=np.float64)
    if fuel.shape != (current.shape[0],):
        raise ValueError(f"Fuel length {fuel.shape} does not match {current.shape[0]} rows")

    nxt = np.empty_like(current)
    nxt[:, 0] = fuel
    if current.shape[1] > 1:
        nxt[:, 1:] = scipy.ndimage.correlate1d(
            current[:, :-1], [c2, c1, c2], axis=0, mode='wrap')
    return nxt.astype(np.float32)


def downsample(grid, factor):
    """
    Mean over non-overlapping factor x factor blocks.
    """
    grid = np.asarray(grid, dtype=np.float64)
    n_rows, n_cols = grid.shape
    if n_rows % factor or n_cols % factor:
        raise ValueError(f"Grid {grid.shape} is not divisible by factor {factor}")
    blocks = grid.reshape(n_rows // factor, factor, n_cols // factor, factor)
    return blocks.mean(axis=(1, 3)).astype(np.float32)


def step(current, fuel, c1, c2, factor=1):
    """
    Full step as seen by the host: returns (next working buffer, snapshot).
    """
    nxt = propagate(current, fuel, c1, c2)
    if factor > 1:
        return nxt, downsample(nxt, factor)
    return nxt, nxt.copy()
