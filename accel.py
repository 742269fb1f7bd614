"""
accel.py - Accelerator Execution Context

Wraps one CUDA device and a single in-order stream. The fire engine enqueues
all of its kernels and copies on this stream and records events on it to
know when a host copy has landed.

Device choice is deliberately simple: the current device, or an explicit
device id. The context runs a small self test on creation and refuses to
hand out a device that cannot run a kernel and copy the result back.
"""

import logging

import numpy as np
from numba import cuda
from numba.core import config as numba_config

import config_fire as config
import gpu_utils
from fire_errors import AcceleratorError

logger = logging.getLogger(__name__)


def cuda_available():
    return cuda.is_available()


class ExecutionContext:
    """
    One accelerator plus one in-order command queue.

    Parameters:
    -----------
    stream : numba.cuda stream
        Queue all work is submitted to
    threads_per_block : tuple of int, optional
        Block shape for 2D launches (default config.THREADS_PER_BLOCK_2D)
    """

    def __init__(self, stream, threads_per_block=None):
        self.stream = stream
        if threads_per_block is None:
            threads_per_block = config.THREADS_PER_BLOCK_2D
        self.threads_per_block = tuple(threads_per_block)
        self.closed = False

    @classmethod
    def create(cls, device_id=None, threads_per_block=None, self_test=True,
               self_test_size=None):
        """
        Opens the accelerator and returns a ready context.

        Raises:
        -------
        AcceleratorError
            No CUDA device is available, the device could not be opened,
            or the self test failed
        """
        if not cuda_available():
            raise AcceleratorError("No CUDA accelerator available")

        try:
            if device_id is not None:
                cuda.select_device(device_id)
            stream = cuda.stream()
        except Exception as e:
            raise AcceleratorError(f"Could not open accelerator: {e}") from e

        context = cls(stream, threads_per_block)
        context.log_device()

        if self_test and not context.self_test(self_test_size):
            logger.error("Accelerator self test failed")
            context.close()
            raise AcceleratorError("Accelerator self test failed")

        return context

    def log_device(self):
        if numba_config.ENABLE_CUDASIM:
            logger.info("Accelerator: CUDA simulator")
            return

        dev = cuda.get_current_device()
        name = dev.name.decode() if isinstance(dev.name, bytes) else dev.name
        major, minor = dev.compute_capability
        logger.info("Accelerator: %s (compute %d.%d) has %d SMs @ %dMHz",
                    name, major, minor,
                    dev.MULTIPROCESSOR_COUNT, dev.CLOCK_RATE // 1000)

    def self_test(self, size=None):
        """
        Fills a square array with each cell's row index on the device and
        checks the last row after copying back.
        """
        n = size or config.SELF_TEST_SIZE
        arr = cuda.device_array((n, n), dtype=np.float32)
        self.launch(gpu_utils.row_index_kernel, arr.shape, arr)
        host = arr.copy_to_host(stream=self.stream)
        self.stream.synchronize()
        return host[n - 1, 0] == float(n - 1)

    def launch(self, kernel, shape, *args):
        """
        Launches a 2D kernel covering `shape` on this context's stream.
        """
        bpg = gpu_utils.blocks_per_grid(shape, self.threads_per_block)
        kernel[bpg, self.threads_per_block, self.stream](*args)

    def record(self):
        """
        Records an event after everything enqueued so far and returns it.
        """
        event = cuda.event()
        event.record(stream=self.stream)
        return event

    def synchronize(self):
        self.stream.synchronize()

    def close(self):
        """
        Drains the queue. Work already submitted is never cancelled.
        """
        if self.closed:
            return
        logger.info("Destroying accelerator")
        try:
            self.stream.synchronize()
        except Exception:
            logger.exception("Failed to drain accelerator queue")
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
