"""Tests for the accelerator execution context."""

import numpy as np
import pytest
from numba import cuda

import accel
import config_fire as config
import gpu_utils
from accel import ExecutionContext
from fire_engine import FireEngine
from fire_errors import AcceleratorError, StepStatus


class TestCreate:

    def test_create_runs_self_test(self):
        with ExecutionContext.create(self_test_size=8) as ctx:
            assert ctx.stream is not None
            assert ctx.threads_per_block == config.THREADS_PER_BLOCK_2D
        assert ctx.closed

    def test_custom_block_shape(self):
        ctx = ExecutionContext.create(threads_per_block=(4, 16), self_test=False)
        assert ctx.threads_per_block == (4, 16)
        ctx.close()

    def test_explicit_device(self):
        ctx = ExecutionContext.create(device_id=0, self_test_size=8)
        assert not ctx.closed
        ctx.close()

    def test_no_accelerator(self, monkeypatch):
        monkeypatch.setattr(accel, "cuda_available", lambda: False)
        with pytest.raises(AcceleratorError):
            ExecutionContext.create()

    def test_failed_self_test(self, monkeypatch, caplog):
        # A kernel that leaves zeros behind cannot pass the row-index check
        monkeypatch.setattr(gpu_utils, "row_index_kernel", gpu_utils.zero_array_2d)
        with pytest.raises(AcceleratorError):
            ExecutionContext.create(self_test_size=8)
        assert "self test failed" in caplog.text


class TestQueue:

    def test_self_test_passes(self, context):
        assert context.self_test(12)

    def test_launch_covers_whole_array(self, context):
        arr = cuda.to_device(np.full((11, 5), 9.0, dtype=np.float32))
        context.launch(gpu_utils.zero_array_2d, arr.shape, arr)
        host = arr.copy_to_host(stream=context.stream)
        context.synchronize()
        assert np.all(host == 0.0)

    def test_record_returns_waitable_event(self, context):
        arr = cuda.device_array((4, 4), dtype=np.float32)
        context.launch(gpu_utils.row_index_kernel, arr.shape, arr)
        event = context.record()
        event.synchronize()
        host = arr.copy_to_host(stream=context.stream)
        context.synchronize()
        assert host[3, 0] == 3.0

    def test_recorded_event_publishes_engine_step(self, context):
        engine = FireEngine(4, 4)
        engine.init(context)
        assert engine.update(context, fuel=[90] * 4) is StepStatus.OK
        assert engine.steps == 1
        assert engine.flush_to_host() is StepStatus.OK
        np.testing.assert_array_equal(engine.host_intensity[:, 0], [90] * 4)
        engine.close(context)

    def test_close_is_idempotent(self):
        ctx = ExecutionContext.create(self_test=False)
        ctx.close()
        ctx.close()
        assert ctx.closed

    def test_close_logs_drain_failure(self, caplog):
        class BrokenStream:
            def synchronize(self):
                raise RuntimeError("device lost")

        ctx = ExecutionContext(BrokenStream())
        ctx.close()
        assert ctx.closed
        assert "Failed to drain accelerator queue" in caplog.text
