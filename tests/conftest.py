"""Shared pytest fixtures for the fire effect test suite.

Tests run on the numba CUDA simulator unless NUMBA_ENABLE_CUDASIM is already
set (set it to 0 to run the same suite on a real GPU). The variable must be
in place before numba is first imported.
"""

import os

os.environ.setdefault("NUMBA_ENABLE_CUDASIM", "1")

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from accel import ExecutionContext  # noqa: E402
from fire_engine import FireEngine  # noqa: E402


# ============================================================================
# Context Fixtures
# ============================================================================

@pytest.fixture
def context():
    """Provide an execution context with a small self test.

    Returns:
        ExecutionContext: Open context, closed after the test.
    """
    ctx = ExecutionContext.create(self_test_size=16)
    yield ctx
    ctx.close()


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def basic_engine(context):
    """Provide an initialised 4x4 engine without supersampling."""
    engine = FireEngine(4, 4, seed=1234)
    engine.init(context)
    yield engine
    engine.close(context)


@pytest.fixture
def wide_engine(context):
    """Provide an initialised 8x4 engine (more columns than rows)."""
    engine = FireEngine(8, 4, seed=1234)
    engine.init(context)
    yield engine
    engine.close(context)


@pytest.fixture
def quality_engine(context):
    """Provide an initialised 3x2 engine with 4x supersampling."""
    engine = FireEngine(3, 2, supersample_factor=4, seed=1234)
    engine.init(context)
    yield engine
    engine.close(context)


@pytest.fixture
def fixed_fuel():
    """Provide a deterministic fuel sequence factory.

    Returns:
        callable: fuel(n, step) -> float32 row of length n.
    """
    def make(n, step=0):
        return (64 + (np.arange(n) * 7 + step * 13) % 65).astype(np.float32)
    return make
