from __future__ import annotations

import dataclasses
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from texcol.core_types import BalanceMode, CacheDecision, TransformConfig
from texcol.difference import apply_difference
from texcol.preview_cache import DifferencePreviewCache, source_fingerprint

FROM = (0.8, 0.2, 0.2, 1.0)
TO = (0.2, 0.6, 0.9, 1.0)


@pytest.fixture
def cache() -> DifferencePreviewCache:
    return DifferencePreviewCache()


@pytest.fixture
def target(random_buffer):
    return random_buffer(12, 10)


def test_first_call_is_full_recompute(cache, target):
    config = TransformConfig()
    assert cache.is_empty
    assert cache.decide(target, FROM, TO, config) is CacheDecision.FULL_RECOMPUTE
    out, decision = cache.process_incremental(target, FROM, TO, config)
    assert decision is CacheDecision.FULL_RECOMPUTE
    np.testing.assert_array_equal(out.pixels, apply_difference(target, FROM, TO, config).pixels)
    assert not cache.is_empty


def test_identical_call_is_no_op(cache, target):
    config = TransformConfig(BalanceMode.ADVANCED, intensity=0.7)
    first, _ = cache.process_incremental(target, FROM, TO, config)
    again, decision = cache.process_incremental(target, FROM, TO, config)
    assert decision is CacheDecision.NO_OP
    np.testing.assert_array_equal(again.pixels, first.pixels)


@pytest.mark.parametrize(
    "change",
    [
        {"brightness": 1.3},
        {"contrast": 0.7},
        {"gamma": 1.8},
        {"transparency": 0.4},
        {"brightness": 0.8, "gamma": 0.6},
    ],
)
@pytest.mark.parametrize("mode", list(BalanceMode))
def test_post_process_path_matches_full_recompute(cache, target, mode, change):
    config = TransformConfig(balance_mode=mode, intensity=0.8)
    cache.process_incremental(target, FROM, TO, config)

    tweaked = dataclasses.replace(config, **change)
    out, decision = cache.process_incremental(target, FROM, TO, tweaked)
    assert decision is CacheDecision.POST_PROCESS_ONLY
    full = apply_difference(target, FROM, TO, tweaked)
    np.testing.assert_allclose(out.pixels, full.pixels, atol=1e-6)


def test_small_intensity_change_reuses_shift(cache, target):
    config = TransformConfig(intensity=0.5)
    cache.process_incremental(target, FROM, TO, config)
    nudged = dataclasses.replace(config, intensity=0.505)
    assert cache.decide(target, FROM, TO, nudged) is CacheDecision.POST_PROCESS_ONLY
    moved = dataclasses.replace(config, intensity=0.6)
    assert cache.decide(target, FROM, TO, moved) is CacheDecision.FULL_RECOMPUTE


def test_key_changes_force_full_recompute(cache, target, random_buffer):
    config = TransformConfig()
    cache.process_incremental(target, FROM, TO, config)

    assert cache.decide(target, (0.1, 0.1, 0.1), TO, config) is CacheDecision.FULL_RECOMPUTE
    assert cache.decide(target, FROM, (0.0, 0.0, 0.0), config) is CacheDecision.FULL_RECOMPUTE
    for field, value in (
        ("balance_mode", BalanceMode.SIMPLE),
        ("selection_radius", 2.0),
        ("min_similarity", 0.3),
    ):
        changed = dataclasses.replace(config, **{field: value})
        assert cache.decide(target, FROM, TO, changed) is CacheDecision.FULL_RECOMPUTE

    mask = np.ones(target.size, dtype=bool)
    assert cache.decide(target, FROM, TO, config, mask) is CacheDecision.FULL_RECOMPUTE
    other = random_buffer(12, 10)
    assert cache.decide(other, FROM, TO, config) is CacheDecision.FULL_RECOMPUTE


def test_selection_mask_is_part_of_key(cache, target):
    config = TransformConfig()
    mask = np.zeros(target.size, dtype=bool)
    mask[::2] = True
    out, _ = cache.process_incremental(target, FROM, TO, config, mask)
    np.testing.assert_array_equal(out.pixels[~mask], target.pixels[~mask])
    assert cache.decide(target, FROM, TO, config, mask.copy()) is CacheDecision.NO_OP


def test_source_token_skips_fingerprinting(cache, target, random_buffer):
    config = TransformConfig()
    cache.process_incremental(target, FROM, TO, config, source_token="albedo")
    # the caller vouches that the token identifies the source
    assert cache.decide(random_buffer(12, 10), FROM, TO, config, source_token="albedo") is CacheDecision.NO_OP
    assert cache.decide(target, FROM, TO, config, source_token="normal") is CacheDecision.FULL_RECOMPUTE


def test_clear_and_force_full(cache, target):
    config = TransformConfig()
    cache.process_incremental(target, FROM, TO, config)
    _, decision = cache.process_incremental(target, FROM, TO, config, force_full=True)
    assert decision is CacheDecision.FULL_RECOMPUTE
    cache.clear()
    assert cache.is_empty
    assert cache.decide(target, FROM, TO, config) is CacheDecision.FULL_RECOMPUTE


def test_invalid_target(cache, target):
    out, decision = cache.process_incremental(None, FROM, TO, TransformConfig())
    assert out is None and decision is CacheDecision.FULL_RECOMPUTE
    bad_mask = np.ones(3, dtype=bool)
    out, _ = cache.process_incremental(target, FROM, TO, TransformConfig(), bad_mask)
    assert out is None
    assert cache.is_empty


def test_results_are_detached_from_slot(cache, target):
    config = TransformConfig()
    first, _ = cache.process_incremental(target, FROM, TO, config)
    first.pixels[:] = 0.0
    second, decision = cache.process_incremental(target, FROM, TO, config)
    assert decision is CacheDecision.NO_OP
    assert second.pixels.any()


def test_concurrent_previews_agree(cache, target):
    configs = [TransformConfig(brightness=b) for b in (0.8, 1.0, 1.2)] * 4

    def run(config):
        out, _ = cache.process_incremental(target, FROM, TO, config)
        return config, out

    with ThreadPoolExecutor(max_workers=4) as ex:
        results = list(ex.map(run, configs))
    for config, out in results:
        np.testing.assert_allclose(out.pixels, apply_difference(target, FROM, TO, config).pixels, atol=1e-6)


def test_fingerprint_tracks_content(random_buffer):
    a = random_buffer(4, 4)
    assert source_fingerprint(a) == source_fingerprint(a.copy())
    assert source_fingerprint(a) != source_fingerprint(random_buffer(4, 4))


def test_intensity_creep_still_recomputes(cache, target):
    config = TransformConfig(BalanceMode.SIMPLE, intensity=0.5)
    cache.process_incremental(target, FROM, TO, config)
    decisions = []
    for step in range(1, 41):
        config = dataclasses.replace(config, intensity=0.5 + 0.009 * step)
        out, decision = cache.process_incremental(target, FROM, TO, config)
        decisions.append(decision)
        full = apply_difference(target, FROM, TO, config)
        # the reused shift is at most one tolerance step stale
        np.testing.assert_allclose(out.pixels, full.pixels, atol=0.01)
    assert CacheDecision.FULL_RECOMPUTE in decisions
    assert CacheDecision.POST_PROCESS_ONLY in decisions
