"""
fire_gpu.py - Fire Effect Kernels

Two data-parallel stages run once per simulation step:
1. Propagation: 3-tap blend of the previous column, toroidal across rows,
   with fresh fuel written into column 0
2. Downsample (quality variant only): SxS box filter from the supersampled
   working buffer to display resolution

Heat moves along increasing column index ("upward" on screen) while being
low-pass filtered across rows. Arrays are indexed [row, col].
"""

from numba import cuda


@cuda.jit
def propagate_kernel(current, nxt, fuel, c1, c2):
    """
    Computes the next heat buffer from the current one.

    next[r, 0] = fuel[r]
    next[r, c] = c1 * cur[r, c-1] + c2 * cur[r-1, c-1] + c2 * cur[r+1, c-1]

    Row neighbours wrap around (row -1 reads the last row, row H reads row 0).
    Column 0 is never blended.

    Parameters:
    -----------
    current : 2D float32 array
        Read buffer, shape (rows, cols)
    nxt : 2D float32 array
        Write buffer, same shape as current; must not alias it
    fuel : 1D float32 array
        Fuel row, length rows
    c1, c2 : float
        Centre and neighbour blend weights
    """
    i, j = cuda.grid(2)
    n_rows, n_cols = current.shape

    if i < n_rows and j < n_cols:
        if j == 0:
            nxt[i, j] = fuel[i]
        else:
            up = i - 1
            if i == 0:
                up = n_rows - 1
            down = i + 1
            if i == n_rows - 1:
                down = 0

            nxt[i, j] = (c1 * current[i, j - 1] +
                         c2 * current[up, j - 1] +
                         c2 * current[down, j - 1])


@cuda.jit
def downsample_kernel(src, dst, factor):
    """
    Box-filters src into dst: each dst cell is the mean of an
    factor x factor block of src.

    Parameters:
    -----------
    src : 2D float32 array
        Supersampled buffer, shape (rows*factor, cols*factor)
    dst : 2D float32 array
        Display-resolution buffer, shape (rows, cols)
    factor : int
        Supersample factor
    """
    i, j = cuda.grid(2)
    n_rows, n_cols = dst.shape

    if i < n_rows and j < n_cols:
        base_i = i * factor
        base_j = j * factor
        total = 0.0
        for di in range(factor):
            for dj in range(factor):
                total += src[base_i + di, base_j + dj]
        dst[i, j] = total / (factor * factor)
