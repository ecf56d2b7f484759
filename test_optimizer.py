"""Incremental and global optimizers, touched set, optimize/generate entry points."""

import numpy as np
import pytest

from bluenoise.config import BlueNoiseConfig, ConfigError
from bluenoise.energy import EnergyScorer, ScoreError
from bluenoise.histogram import unify_histogram
from bluenoise.kernel import build_kernel_window
from bluenoise.optimizer import (GlobalRecomputeOptimizer, IncrementalOptimizer, ProgressReporter,
                                 TouchedSet, generate, make_optimizer, optimize)
from bluenoise.rng import RandomSource
from bluenoise.toroidal import Torus


def equalised(n, channels, seed=0):
    pattern = RandomSource(seed).uniform((n, channels))
    return unify_histogram(pattern)


def scorer_for(dims, channels, radius):
    return EnergyScorer(Torus(dims), build_kernel_window(radius, len(dims)), channels)


def as_multiset(pattern):
    return sorted(map(tuple, pattern.tolist()))


# TouchedSet

def test_touched_set_dedupes_and_clears():
    touched = TouchedSet(8)
    touched.mark([3, 1, 3])
    touched.mark([1, 5])
    assert len(touched) == 3
    assert sorted(touched.indices().tolist()) == [1, 3, 5]
    assert 3 in touched and 0 not in touched

    touched.clear()
    assert len(touched) == 0
    assert 3 not in touched
    assert touched.indices().size == 0

    touched.mark([3])
    assert touched.indices().tolist() == [3]


# IncrementalOptimizer

def test_incremental_buffers_agree_after_every_step():
    pattern = equalised(64, 2, seed=1)
    opt = IncrementalOptimizer(pattern, scorer_for((8, 8), 2, 2), RandomSource(1))
    for _ in range(100):
        opt.step()
        np.testing.assert_array_equal(opt.working, opt.shadow)
        assert len(opt.touched) == 0


def test_incremental_keeps_value_multiset():
    pattern = equalised(64, 2, seed=2)
    before = as_multiset(pattern)
    opt = IncrementalOptimizer(pattern, scorer_for((8, 8), 2, 2), RandomSource(2))
    opt.run(300)
    assert opt.accepted > 0
    assert as_multiset(opt.pattern) == before


def test_incremental_score_is_monotonic():
    opt = IncrementalOptimizer(equalised(100, 1, seed=3), scorer_for((10, 10), 1, 2),
                               RandomSource(3))
    scores = [opt.score]
    for _ in range(300):
        accepted = opt.step()
        if accepted:
            assert opt.last_delta < 0
        scores.append(opt.score)
    assert all(b <= a for a, b in zip(scores, scores[1:]))
    assert scores[-1] < scores[0]


def test_incremental_matches_full_rescore_after_each_accepted_move():
    scorer = scorer_for((4, 4), 1, 1)
    opt = IncrementalOptimizer(equalised(16, 1, seed=4), scorer, RandomSource(4))
    checked = 0
    for _ in range(500):
        if opt.step():
            reference = GlobalRecomputeOptimizer(opt.working.copy(), scorer, RandomSource(0))
            assert opt.score == pytest.approx(reference.score, rel=1e-4)
            checked += 1
    assert checked > 0


def test_incremental_3d_multichannel_tracks_full_rescore():
    scorer = scorer_for((5, 4, 6), 3, 1)
    opt = IncrementalOptimizer(equalised(120, 3, seed=5), scorer, RandomSource(5))
    opt.run(200)
    assert opt.score == pytest.approx(scorer.total_score(opt.pattern), rel=1e-4)


def test_rejected_move_restores_pattern():
    opt = IncrementalOptimizer(equalised(36, 1, seed=6), scorer_for((6, 6), 1, 1),
                               RandomSource(6))
    rejected = 0
    for _ in range(200):
        before = opt.working.copy()
        score = opt.score
        if not opt.step():
            np.testing.assert_array_equal(opt.working, before)
            assert opt.score == score
            rejected += 1
    assert rejected > 0


# GlobalRecomputeOptimizer

def test_global_accepts_only_lower_scores_and_swaps_roles_on_reject():
    scorer = scorer_for((6, 6), 1, 1)
    opt = GlobalRecomputeOptimizer(equalised(36, 1, seed=7), scorer, RandomSource(7))
    for _ in range(200):
        before = opt.pattern.copy()
        current = opt.current
        score = opt.score
        if opt.step():
            assert opt.current == current
            assert opt.score < score
            assert opt.score == scorer.total_score(opt.pattern)
        else:
            assert opt.current == current ^ 1
            assert opt.score == score
            np.testing.assert_array_equal(opt.pattern, before)
    assert opt.accepted > 0


def test_global_keeps_value_multiset():
    pattern = equalised(25, 2, seed=8)
    before = as_multiset(pattern)
    opt = GlobalRecomputeOptimizer(pattern, scorer_for((5, 5), 2, 2), RandomSource(8))
    opt.run(200)
    assert as_multiset(opt.pattern) == before


def test_nan_pattern_fails_loudly():
    pattern = equalised(16, 1)
    pattern[3, 0] = np.nan
    scorer = scorer_for((4, 4), 1, 1)
    with pytest.raises(ScoreError):
        GlobalRecomputeOptimizer(pattern, scorer, RandomSource(0))
    with pytest.raises(ScoreError):
        IncrementalOptimizer(pattern, scorer, RandomSource(0))


# Driver selection and entry points

def test_driver_chosen_by_element_count():
    rng = RandomSource(0)
    big = BlueNoiseConfig(dimensions=(18, 18), radius=1, iterations=0)
    small = BlueNoiseConfig(dimensions=(17, 17), radius=1, iterations=0)
    assert isinstance(make_optimizer(equalised(324, 1), big, rng), IncrementalOptimizer)
    assert isinstance(make_optimizer(equalised(289, 1), small, rng), GlobalRecomputeOptimizer)
    forced = BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=0, incremental_threshold=0)
    assert isinstance(make_optimizer(equalised(16, 1), forced, rng), IncrementalOptimizer)


@pytest.mark.parametrize('threshold', [0, 10_000])
def test_optimize_is_deterministic(threshold):
    config = BlueNoiseConfig(dimensions=(8, 8), channels=2, radius=1, iterations=200,
                             incremental_threshold=threshold, seed=99)
    initial = equalised(64, 2, seed=11)
    first = optimize(initial, config)
    second = optimize(initial, config)
    np.testing.assert_array_equal(first, second)
    assert not np.array_equal(first, initial)


def test_optimize_accepts_flat_input_and_leaves_it_untouched():
    config = BlueNoiseConfig(dimensions=(6, 6), channels=2, radius=1, iterations=100, seed=5)
    flat = equalised(36, 2, seed=12).ravel()
    original = flat.copy()
    result = optimize(flat, config)
    assert result.shape == (36, 2)
    assert result.dtype == np.float32
    np.testing.assert_array_equal(flat, original)
    assert as_multiset(result) == as_multiset(original.reshape(36, 2))


def test_optimize_rejects_mismatched_pattern():
    config = BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=10, seed=0)
    with pytest.raises(ConfigError):
        optimize(np.zeros(15, dtype=np.float32), config)


def test_optimize_rejects_radius_not_smaller_than_extent():
    config = BlueNoiseConfig(dimensions=(8, 4), radius=4, iterations=10, seed=0)
    with pytest.raises(ConfigError, match='radius'):
        optimize(np.zeros(32, dtype=np.float32), config)


def test_end_to_end_8x8():
    config = BlueNoiseConfig(dimensions=(8, 8), channels=1, radius=1, iterations=1000, seed=1234)
    result = generate(config)
    assert result.final_score <= result.initial_score
    assert result.accepted > 0
    expected = np.arange(64, dtype=np.float32) / np.float32(63)
    np.testing.assert_array_equal(np.sort(result.values), expected)
    np.testing.assert_array_equal(np.sort(result.initial.ravel()), expected)


def test_end_to_end_incremental_path():
    config = BlueNoiseConfig(dimensions=(8, 8), channels=1, radius=1, iterations=1000,
                             incremental_threshold=0, seed=1234)
    result = generate(config)
    assert result.final_score < result.initial_score
    scorer = scorer_for((8, 8), 1, 1)
    assert result.final_score == pytest.approx(scorer.total_score(result.pattern), rel=1e-4)
    expected = np.arange(64, dtype=np.float32) / np.float32(63)
    np.testing.assert_array_equal(np.sort(result.values), expected)


def test_generate_is_deterministic():
    config = BlueNoiseConfig(dimensions=(6, 6), channels=3, radius=2, iterations=150, seed=21)
    np.testing.assert_array_equal(generate(config).pattern, generate(config).pattern)


def test_generate_zero_iterations_returns_equalised_noise():
    config = BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=0, seed=3)
    result = generate(config)
    np.testing.assert_array_equal(result.pattern, result.initial)
    assert result.final_score == result.initial_score


# Progress output

def test_progress_reporter_prints_at_interval(capsys):
    report = ProgressReporter(10, reports=5)
    report(0, 3.0)
    report(1, 3.0)
    report(2, 1.5)
    out = capsys.readouterr().out
    assert out.startswith('2/10 best score: 1.500000 eta: ')
    assert out.count('\n') == 1


def test_generate_verbose_reports_progress(capsys):
    config = BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=20, seed=0,
                             progress_reports=4)
    generate(config, verbose=True)
    out = capsys.readouterr().out
    assert '5/20 best score' in out
    assert '15/20 best score' in out


def test_generate_quiet_by_default(capsys):
    generate(BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=20, seed=0))
    assert capsys.readouterr().out == ''


def test_progress_reports_counts_reports_per_run(capsys):
    assert BlueNoiseConfig().progress_reports == 100
    config = BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=30, seed=0,
                             progress_reports=3)
    generate(config, verbose=True)
    lines = capsys.readouterr().out.splitlines()
    assert [line.split()[0] for line in lines] == ['10/30', '20/30']

    generate(BlueNoiseConfig(dimensions=(4, 4), radius=1, iterations=30, seed=0,
                             progress_reports=0), verbose=True)
    assert capsys.readouterr().out == ''
