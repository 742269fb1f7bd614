"""
fire_engine.py - Double-Buffered Fire Effect Engine

Owns every buffer of the simulation and the order in which work is enqueued:

    update():  fuel row  ->  propagate (current -> next, swap)
               [-> downsample]  ->  async copy to pinned staging  -> event
    flush_to_host():  wait on event  ->  publish staging into host_intensity

All stages of one step go onto the same in-order stream, so each stage sees
the previous stage's output. update() only enqueues; flush_to_host() is the
single blocking call. The host snapshot is published from the staging array
after the wait, so callers never observe a copy that is still in flight.

Quality variant (supersample_factor > 1):
    The working buffers are (height*S, width*S). After propagation the
    current buffer is box-filtered down to (height, width) before the copy.
"""

import logging

import numpy as np
from numba import cuda

import config_fire as config
import fire_gpu
import gpu_utils
from fire_errors import AllocationError, StepStatus

logger = logging.getLogger(__name__)


class FireEngine:
    """
    Fire simulation state and update schedule.

    Parameters:
    -----------
    width, height : int
        Display resolution of the host snapshot
    supersample_factor : int
        1 for the basic variant, S > 1 to simulate at S times the resolution
    blend_weights : tuple of float, optional
        (c1, c2) stencil weights; defaults depend on the variant
    seed : int, optional
        Seed for the fuel generator; None draws fresh OS entropy
    params : dict, optional
        Overrides: 'fuel_min', 'fuel_max'
    """

    def __init__(self, width, height, supersample_factor=1, blend_weights=None,
                 seed=None, params=None):
        params = params or {}

        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        if supersample_factor < 1:
            raise ValueError(f"Supersample factor must be >= 1, got {supersample_factor}")

        self.width = int(width)
        self.height = int(height)
        self.supersample_factor = int(supersample_factor)
        self.quality = self.supersample_factor > 1
        self.sim_shape = (self.height * self.supersample_factor,
                          self.width * self.supersample_factor)

        if blend_weights is None:
            if self.quality:
                blend_weights = config.BLEND_WEIGHTS_QUALITY
            else:
                blend_weights = config.BLEND_WEIGHTS_BASIC
        c1, c2 = (float(w) for w in blend_weights)
        if c1 < 0 or c2 < 0 or c1 + 2.0 * c2 > 1.0:
            raise ValueError(f"Blend weights must be non-negative with c1 + 2*c2 <= 1, "
                             f"got ({c1}, {c2})")
        self.blend_weights = (c1, c2)

        self.fuel_min = params.get('fuel_min', config.FUEL_MIN)
        self.fuel_max = params.get('fuel_max', config.FUEL_MAX)

        self.double_buffer_index = 0
        self.steps = 0
        self._rng = np.random.default_rng(seed)
        self._done_event = None
        self._context = None
        self._closed = False

        try:
            self._allocate()
        except Exception as e:
            self._release()
            raise AllocationError(
                f"Could not allocate fire buffers for {self.width}x{self.height} "
                f"(S={self.supersample_factor})") from e

        logger.debug("Fire engine %dx%d, simulation %dx%d, weights (%.3f, %.3f)",
                     self.width, self.height, self.sim_shape[1], self.sim_shape[0], c1, c2)

    # =========================================================================
    # BUFFERS
    # =========================================================================

    def _allocate(self):
        n_rows, n_cols = self.sim_shape

        # Host side
        self._host_intensity = np.zeros((self.height, self.width), dtype=np.float32)
        self._host_fuel = np.zeros(n_rows, dtype=np.float32)
        self._host_staging = cuda.pinned_array((self.height, self.width), dtype=np.float32)
        self._host_staging[:] = 0.0

        # Device side
        self._fuel_dev = cuda.device_array(n_rows, dtype=np.float32)
        self._intensity_dev = [
            cuda.device_array((n_rows, n_cols), dtype=np.float32),
            cuda.device_array((n_rows, n_cols), dtype=np.float32),
        ]
        if self.quality:
            self._downsample_dev = cuda.device_array((self.height, self.width),
                                                     dtype=np.float32)
        else:
            self._downsample_dev = None

    def _release(self):
        self._host_intensity = None
        self._host_fuel = None
        self._host_staging = None
        self._fuel_dev = None
        self._intensity_dev = None
        self._downsample_dev = None
        self._done_event = None
        self._context = None

    @property
    def host_intensity(self):
        """
        Read-only (height, width) view of the last flushed snapshot.
        """
        view = self._host_intensity.view()
        view.flags.writeable = False
        return view

    @property
    def fuel(self):
        """
        Copy of the most recently injected fuel row.
        """
        return self._host_fuel.copy()

    @property
    def closed(self):
        return self._closed

    # =========================================================================
    # STEPS
    # =========================================================================

    def init(self, context):
        """
        Zeroes intensity[0]. Best effort: a failed submission is logged and
        reported, and the caller may carry on with update().
        """
        self._context = context
        try:
            context.launch(gpu_utils.zero_array_2d, self.sim_shape, self._intensity_dev[0])
        except Exception:
            logger.exception("Fire init could not be submitted")
            return StepStatus.SUBMISSION_FAILURE
        return StepStatus.OK

    def update(self, context, fuel=None):
        """
        Enqueues one simulation step. Does not block.

        Parameters:
        -----------
        context : ExecutionContext
            Queue to submit to
        fuel : array-like, optional
            Fuel row of length sim_shape[0]; random fuel is drawn when None

        Returns:
        --------
        StepStatus: OK, or SUBMISSION_FAILURE if the step was abandoned
        """
        if fuel is not None:
            fuel = np.asarray(fuel, dtype=np.float32)
            if fuel.shape != (self.sim_shape[0],):
                raise ValueError(f"Fuel row must have length {self.sim_shape[0]}, "
                                 f"got shape {fuel.shape}")

        self._context = context
        try:
            self._inject_fuel(context, fuel)
            self._propagate(context)
            if self.quality:
                self._downsample(context)
            self._done_event = self._copy_to_host(context)
        except Exception:
            logger.exception("Fire update could not be submitted; step skipped")
            return StepStatus.SUBMISSION_FAILURE

        self.steps += 1
        return StepStatus.OK

    def _inject_fuel(self, context, fuel):
        if fuel is None:
            self._host_fuel[:] = self._rng.integers(
                self.fuel_min, self.fuel_max, size=self._host_fuel.shape[0], endpoint=True)
        else:
            self._host_fuel[:] = fuel
        # Pageable source: the host array is free to reuse once this returns
        self._fuel_dev.copy_to_device(self._host_fuel, stream=context.stream)

    def _propagate(self, context):
        current = self._intensity_dev[self.double_buffer_index]
        nxt = self._intensity_dev[self.double_buffer_index ^ 1]
        c1, c2 = self.blend_weights
        context.launch(fire_gpu.propagate_kernel, self.sim_shape,
                       current, nxt, self._fuel_dev, c1, c2)
        # Swap on enqueue; the stream keeps later stages behind the write
        self.double_buffer_index ^= 1

    def _downsample(self, context):
        context.launch(fire_gpu.downsample_kernel, (self.height, self.width),
                       self._intensity_dev[self.double_buffer_index],
                       self._downsample_dev, self.supersample_factor)

    def _copy_to_host(self, context):
        if self.quality:
            src = self._downsample_dev
        else:
            src = self._intensity_dev[self.double_buffer_index]
        # Staging is about to be overwritten; the old event no longer covers it
        self._done_event = None
        src.copy_to_host(self._host_staging, stream=context.stream)
        return context.record()

    def flush_to_host(self):
        """
        Blocks until the most recent update's copy has landed, then publishes
        it as host_intensity.

        Returns:
        --------
        StepStatus: OK, or WAIT_FAILURE (snapshot may be stale)
        """
        event = self._done_event
        if event is None:
            return StepStatus.OK

        try:
            event.synchronize()
        except Exception:
            logger.exception("Waiting for fire update failed")
            return StepStatus.WAIT_FAILURE

        np.copyto(self._host_intensity, self._host_staging)
        self._done_event = None
        return StepStatus.OK

    def read_current(self, context):
        """
        Blocking readback of the current working buffer at simulation
        resolution. Debug and test use only.
        """
        host = self._intensity_dev[self.double_buffer_index].copy_to_host(
            stream=context.stream)
        context.synchronize()
        return host

    # =========================================================================
    # LIFETIME
    # =========================================================================

    def close(self, context=None):
        """
        Waits for submitted work to finish, then drops all buffers. Without
        a context, the queue last used by init() or update() is drained.
        """
        if self._closed:
            return
        if context is None:
            context = self._context
        try:
            if context is not None:
                context.synchronize()
            elif self._done_event is not None:
                self._done_event.synchronize()
        except Exception:
            logger.exception("Failed to drain fire work before release")
        self._release()
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
