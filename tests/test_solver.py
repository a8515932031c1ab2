"""Tests for the explicit Perona-Malik diffusion solver."""
import sys
import os
import logging
import warnings

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import numpy as np
import pytest

from perona_malik import DegenerateInput, DiffusionConfig, DiffusionSolver, Grid


def _boundary_term(flux_grids, alpha):
    """Sum change expected from one step: 2 * alpha * sum_d (last slice - first slice)."""
    total = 0.0
    for d, f in enumerate(flux_grids):
        total += np.take(f.array, -1, axis=d).sum() - np.take(f.array, 0, axis=d).sum()
    return 2.0 * alpha * total


def test_shape_preserved():
    rng = np.random.default_rng(0)
    solver = DiffusionSolver(alpha=0.1, beta=1.0)
    for shape in [(7,), (6, 5), (3, 4, 5)]:
        grid = Grid.from_array(rng.standard_normal(shape))
        for steps in (0, 1, 3):
            out = solver.denoise(grid, steps)
            assert out.dimensions == grid.dimensions, f"{shape} / {steps}: {out.dimensions}"
            assert out.dtype == np.float64
    print("PASS: test_shape_preserved")


def test_zero_steps_is_precision_copy():
    src = np.array([[0, 17, 255], [3, 128, 9]], dtype=np.uint8)
    grid = Grid.from_array(src)
    out = DiffusionSolver(alpha=0.2, beta=0.5).denoise(grid, 0)

    assert out.dtype == np.float64
    np.testing.assert_array_equal(out.array, src.astype(np.float64))

    out.set((0, 0), 1000.0)
    assert grid.get((0, 0)) == 0
    print("PASS: test_zero_steps_is_precision_copy")


def test_input_not_modified():
    src = np.array([0.0, 1.0, 5.0, 2.0, 2.0])
    grid = Grid.from_array(src)
    DiffusionSolver(alpha=0.2, beta=10.0).denoise(grid, 4)

    np.testing.assert_array_equal(grid.array, src)
    print("PASS: test_input_not_modified")


def test_constant_field_is_fixed_point():
    solver = DiffusionSolver(alpha=0.2, beta=0.5)
    flat_1d = Grid.from_array(np.full(6, 3.25))
    flat_2d = Grid.from_array(np.full((4, 5), -2.0))

    np.testing.assert_array_equal(solver.denoise(flat_1d, 25).array, flat_1d.array)
    np.testing.assert_array_equal(solver.denoise(flat_2d, 25).array, flat_2d.array)

    flux_seen = []
    solver.run(flat_1d, 1, callback=lambda s: flux_seen.extend(s.flux_grids()))
    assert len(flux_seen) == 1
    assert not flux_seen[0].array.any()
    print("PASS: test_constant_field_is_fixed_point")


def test_single_spike_one_step():
    grid = Grid.from_array([0.0, 0.0, 10.0, 0.0, 0.0])
    alpha, beta = 1.0, 1e4
    g = 1.0 / (1.0 + 100.0 / beta)  # squared central difference next to the spike

    flux_seen = []
    state = DiffusionSolver(alpha=alpha, beta=beta).run(
        grid, 1, callback=lambda s: flux_seen.extend(s.flux_grids())
    )
    out = state.current_state.array

    np.testing.assert_allclose(flux_seen[0].array, [0.0, 10.0 * g, 0.0, -10.0 * g, 0.0])
    np.testing.assert_allclose(out, [10.0 * g, 0.0, 10.0 - 20.0 * g, 0.0, 10.0 * g])

    # Spike shrinks; its stencil partners two cells away gain mass.
    assert abs(out[2]) < 10.0
    assert out[0] > 0.0 and out[4] > 0.0
    # Boundary flux is zero here, so the sum is conserved.
    assert abs(out.sum() - 10.0) < 1e-9
    print("PASS: test_single_spike_one_step")


def test_sum_changes_only_by_boundary_flux():
    rng = np.random.default_rng(3)
    alpha = 0.05
    for shape in [(9,), (6, 7)]:
        grid = Grid.from_array(rng.uniform(0.0, 5.0, shape))
        flux_seen = []
        state = DiffusionSolver(alpha=alpha, beta=2.0).run(
            grid, 1, callback=lambda s: flux_seen.append(s.flux_grids())
        )
        delta_sum = state.current_state.array.sum() - grid.array.sum()
        expected = _boundary_term(flux_seen[0], alpha)

        assert abs(expected) > 1e-6, "random input should have non-zero boundary flux"
        np.testing.assert_allclose(delta_sum, expected, rtol=1e-9, atol=1e-9)
    print("PASS: test_sum_changes_only_by_boundary_flux")


def test_small_beta_preserves_edges():
    grid = Grid.from_array([0.0, 0.0, 0.0, 10.0, 10.0, 10.0])
    sharp = DiffusionSolver(alpha=0.1, beta=1.0).denoise(grid, 5).array
    smooth = DiffusionSolver(alpha=0.1, beta=1e4).denoise(grid, 5).array

    jump_sharp = sharp[3] - sharp[2]
    jump_smooth = smooth[3] - smooth[2]
    assert jump_sharp > jump_smooth, f"sharp={jump_sharp:.4f} smooth={jump_smooth:.4f}"
    assert jump_sharp > 9.0
    print(f"PASS: test_small_beta_preserves_edges (sharp={jump_sharp:.3f}, smooth={jump_smooth:.3f})")


def test_deterministic_across_calls_and_workers():
    grid = Grid.from_array(np.random.default_rng(7).standard_normal((17, 13)))
    serial = DiffusionSolver(alpha=0.1, beta=0.3)
    threaded = DiffusionSolver(alpha=0.1, beta=0.3, workers=4)

    a = serial.denoise(grid, 6).array
    b = serial.denoise(grid, 6).array
    c = threaded.denoise(grid, 6).array

    np.testing.assert_array_equal(a, b)
    np.testing.assert_array_equal(a, c)
    print("PASS: test_deterministic_across_calls_and_workers")


def test_zero_alpha_is_noop():
    grid = Grid.from_array(np.random.default_rng(1).standard_normal((5, 5)))
    out = DiffusionSolver(alpha=0.0, beta=1.0).denoise(grid, 3)

    np.testing.assert_array_equal(out.array, grid.array)
    print("PASS: test_zero_alpha_is_noop")


def test_zero_beta_freezes_gradients_without_warnings():
    grid = Grid.from_array([0.0, 1.0, 1.0, 4.0, 4.0, 4.0])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = DiffusionSolver(alpha=0.1, beta=0.0).denoise(grid, 3)

    # g is 0 wherever the gradient is non-zero and flux is 0 where it is zero.
    np.testing.assert_array_equal(out.array, grid.array)
    print("PASS: test_zero_beta_freezes_gradients_without_warnings")


def test_degenerate_input_rejected():
    solver = DiffusionSolver()
    for dims in [(1,), (1, 5), (4, 1, 3)]:
        calls = []
        with pytest.raises(DegenerateInput):
            solver.run(Grid.create(dims), 2, callback=calls.append)
        assert calls == []
    print("PASS: test_degenerate_input_rejected")


def test_invalid_steps_rejected():
    solver = DiffusionSolver()
    grid = Grid.create((3, 3))
    for steps in (-1, 1.5, True):
        with pytest.raises(ValueError):
            solver.denoise(grid, steps)
    print("PASS: test_invalid_steps_rejected")


def test_run_state_traces_and_release():
    grid = Grid.from_array(np.random.default_rng(2).standard_normal((6, 6)))
    seen = []

    def on_step(state):
        assert state.flux is not None
        assert state.flux.shape == (2, 36)
        seen.append(state.step)

    state = DiffusionSolver(alpha=0.1, beta=1.0).run(grid, 4, callback=on_step)

    assert seen == [1, 2, 3, 4]
    assert state.step == 4
    assert len(state.trace_mean_abs_update) == 4
    assert all(v >= 0.0 for v in state.trace_mean_abs_update)
    assert state.flux is None
    assert state.flux_grids() == []
    print("PASS: test_run_state_traces_and_release")


def test_parameters():
    solver = DiffusionSolver(alpha=0.2, beta=0.4)
    assert (solver.alpha, solver.beta) == (0.2, 0.4)

    solver.set_parameters(0.05, 3.0)
    assert (solver.alpha, solver.beta) == (0.05, 3.0)

    with pytest.raises(ValueError):
        solver.set_parameters(-1.0, 1.0)
    with pytest.raises(ValueError):
        DiffusionSolver(alpha=0.1, beta=float("nan"))

    from_cfg = DiffusionSolver.from_config(DiffusionConfig.edge_preserving())
    assert from_cfg.beta == DiffusionConfig.edge_preserving().beta
    print("PASS: test_parameters")


def test_unstable_alpha_logs_warning(caplog):
    grid = Grid.from_array(np.random.default_rng(4).standard_normal((4, 4)))
    bound = DiffusionConfig().stable_alpha(grid.ndim)

    with caplog.at_level(logging.WARNING, logger="perona_malik.solver"):
        DiffusionSolver(alpha=bound, beta=1.0).denoise(grid, 1)
    assert not [r for r in caplog.records if r.levelno == logging.WARNING]

    with caplog.at_level(logging.WARNING, logger="perona_malik.solver"):
        DiffusionSolver(alpha=bound * 2, beta=1.0).denoise(grid, 1)
    warnings_logged = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings_logged) == 1
    assert "stability bound" in warnings_logged[0].getMessage()
    print("PASS: test_unstable_alpha_logs_warning")


if __name__ == "__main__":
    test_shape_preserved()
    test_zero_steps_is_precision_copy()
    test_input_not_modified()
    test_constant_field_is_fixed_point()
    test_single_spike_one_step()
    test_sum_changes_only_by_boundary_flux()
    test_small_beta_preserves_edges()
    test_deterministic_across_calls_and_workers()
    test_zero_alpha_is_noop()
    test_zero_beta_freezes_gradients_without_warnings()
    test_degenerate_input_rejected()
    test_invalid_steps_rejected()
    test_run_state_traces_and_release()
    test_parameters()
    print("\nAll solver tests passed.")
