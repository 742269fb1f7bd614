"""Tests for the runner: step loop, headless recording and the CLI."""

import numpy as np
import pytest

import accel
import config_fire as config
import run_fire
from fire_engine import FireEngine
from fire_errors import StepStatus
from logging_setup import setup_logging


@pytest.fixture
def small_self_test(monkeypatch):
    """Keep main()'s accelerator self test cheap on the simulator."""
    monkeypatch.setattr(config, "SELF_TEST_SIZE", 16)


@pytest.fixture(autouse=True)
def quiet_logging():
    """Drop the console handler main() installs once the test is done."""
    yield
    setup_logging("WARNING", to_stderr=False)


class TestSimulationIterator:

    def test_yields_requested_steps(self, context, wide_engine):
        frames = list(run_fire.simulation_iterator(wide_engine, context, iterations=4))
        assert [f["step"] for f in frames] == [0, 1, 2, 3]
        assert all(f["status"] is StepStatus.OK for f in frames)
        assert wide_engine.steps == 4

    def test_frames_are_flushed(self, context, wide_engine):
        frame = next(run_fire.simulation_iterator(wide_engine, context))
        np.testing.assert_array_equal(frame["intensity"][:, 0], wide_engine.fuel)

    def test_zero_iterations(self, context, wide_engine):
        assert list(run_fire.simulation_iterator(wide_engine, context, iterations=0)) == []


class TestHeadless:

    def test_run_without_recording(self, context, wide_engine):
        result = run_fire.run_headless(wide_engine, context, 3)
        assert result == {"steps": 3, "failed": 0, "frames": None}

    def test_save_and_gif(self, context, tmp_path):
        engine = FireEngine(6, 3, seed=42)
        engine.init(context)
        npz_path = tmp_path / "fire.npz"
        gif_path = tmp_path / "fire.gif"

        result = run_fire.run_headless(engine, context, 5,
                                       save_path=str(npz_path), gif_path=str(gif_path))
        engine.close(context)

        assert result["frames"].shape == (5, 3, 6)
        with np.load(npz_path) as data:
            np.testing.assert_array_equal(data["intensity"], result["frames"])
            np.testing.assert_array_equal(data["grid_shape"], [3, 6])
            assert data["supersample_factor"][0] == 1
        assert gif_path.stat().st_size > 0

    def test_history_differs_per_step(self, context, wide_engine, tmp_path):
        result = run_fire.run_headless(wide_engine, context, 3,
                                       save_path=str(tmp_path / "h.npz"))
        frames = result["frames"]
        # Heat from step 0 has moved one column by step 1
        np.testing.assert_array_equal(frames[0][:, 1], np.zeros(4))
        assert np.all(frames[1][:, 1] > 0)


class TestCli:

    def test_defaults(self):
        args = run_fire.parse_args([])
        assert (args.width, args.height) == (config.WIDTH, config.HEIGHT)
        assert args.quality is config.QUALITY
        assert args.supersample == config.SUPERSAMPLE_FACTOR
        assert args.iterations == config.HEADLESS_ITERATIONS

    def test_options(self):
        args = run_fire.parse_args(["--width", "16", "--height", "8", "--quality",
                                    "--supersample", "2", "--headless",
                                    "--iterations", "10", "--seed", "3"])
        assert (args.width, args.height, args.supersample) == (16, 8, 2)
        assert args.quality and args.headless
        assert args.iterations == 10 and args.seed == 3

    @pytest.mark.parametrize("argv", [
        ["--width", "0"],
        ["--height", "-2"],
        ["--supersample", "0"],
        ["--iterations", "-1"],
    ])
    def test_rejects_bad_values(self, argv):
        with pytest.raises(SystemExit):
            run_fire.parse_args(argv)

    def test_main_headless(self, small_self_test, tmp_path):
        npz_path = tmp_path / "run.npz"
        code = run_fire.main(["--headless", "--width", "8", "--height", "4",
                              "--iterations", "3", "--seed", "1",
                              "--save", str(npz_path)])
        assert code == 0
        with np.load(npz_path) as data:
            assert data["intensity"].shape == (3, 4, 8)

    def test_main_headless_default_runs_two_steps(self, small_self_test, tmp_path):
        npz_path = tmp_path / "run.npz"
        code = run_fire.main(["--headless", "--width", "8", "--height", "4",
                              "--save", str(npz_path)])
        assert code == 0
        with np.load(npz_path) as data:
            assert data["intensity"].shape == (2, 4, 8)

    def test_main_quality(self, small_self_test, tmp_path):
        npz_path = tmp_path / "run.npz"
        code = run_fire.main(["--headless", "--quality", "--supersample", "2",
                              "--width", "4", "--height", "2",
                              "--iterations", "2", "--save", str(npz_path)])
        assert code == 0
        with np.load(npz_path) as data:
            assert data["intensity"].shape == (2, 2, 4)
            assert data["supersample_factor"][0] == 2

    def test_main_without_accelerator(self, monkeypatch):
        monkeypatch.setattr(accel, "cuda_available", lambda: False)
        assert run_fire.main(["--headless"]) == 1
