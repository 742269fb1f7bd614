"""
gpu_utils.py - Shared CUDA helpers

Launch-geometry helper plus small fill kernels used by the fire engine and
the accelerator self test.
"""

from numba import cuda


def blocks_per_grid(shape, threads_per_block):
    """
    Number of blocks needed to cover a 2D array with the given block size.

    Parameters:
    -----------
    shape : tuple of int
        Array shape (rows, cols)
    threads_per_block : tuple of int
        Block shape (rows, cols)

    Returns:
    --------
    tuple: blocks per grid along each axis
    """
    return tuple(
        (n + t - 1) // t for n, t in zip(shape, threads_per_block)
    )


@cuda.jit
def zero_array_2d(arr):
    i, j = cuda.grid(2)
    n_rows, n_cols = arr.shape
    if i < n_rows and j < n_cols:
        arr[i, j] = 0.0


@cuda.jit
def row_index_kernel(arr):
    """
    Writes each cell's row index into the cell. Used as a self test:
    after copying back, arr[n-1, 0] must equal n-1.
    """
    i, j = cuda.grid(2)
    n_rows, n_cols = arr.shape
    if i < n_rows and j < n_cols:
        arr[i, j] = i
