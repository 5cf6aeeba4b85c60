import numpy as np

from tagquality.core.stats import summarize
from tagquality.eval.deltas import compute_deltas
from tagquality.eval.tag_detection import Detection, duplicate_ids

UNIT = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))


def _det(tag_id, corners=UNIT):
    return Detection(tag_id=tag_id, corners=tuple(corners))


def test_single_corner_shift():
    ref = [_det(1)]
    cmp = [_det(1, ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 2.0)))]
    res = compute_deltas(ref, cmp)
    assert res.deltas == [0.0, 0.0, 0.0, 1.0]
    assert res.missing == 0

    s = summarize(res.deltas)
    assert (s.min, s.mean, s.median, s.max) == (0.0, 0.25, 0.0, 1.0)


def test_missing_marker_contributes_no_deltas():
    res = compute_deltas([_det(1), _det(2)], [_det(1)])
    assert res.deltas == [0.0, 0.0, 0.0, 0.0]
    assert res.missing == 1


def test_both_empty():
    res = compute_deltas([], [])
    assert res.deltas == []
    assert res.missing == 0
    s = summarize(res.deltas)
    assert (s.min, s.mean, s.median, s.max) == (0.0, 0.0, 0.0, 0.0)


def test_extra_comparison_markers_are_ignored():
    res = compute_deltas([_det(3)], [_det(7), _det(3)])
    assert res.deltas == [0.0] * 4
    assert res.missing == 0


def test_first_match_wins_for_duplicate_ids():
    shifted = tuple((x + 3.0, y + 4.0) for x, y in UNIT)
    res = compute_deltas([_det(5)], [_det(5, shifted), _det(5)])
    assert res.deltas == [5.0, 5.0, 5.0, 5.0]


def test_counts_and_determinism_on_random_sets():
    rng = np.random.default_rng(42)
    for _ in range(20):
        ref_ids = rng.choice(40, size=int(rng.integers(0, 15)), replace=False).tolist()
        cmp_ids = rng.choice(40, size=int(rng.integers(0, 15)), replace=False).tolist()
        ref = [_det(i, rng.uniform(0, 100, size=(4, 2)).tolist()) for i in ref_ids]
        cmp = [_det(i, rng.uniform(0, 100, size=(4, 2)).tolist()) for i in cmp_ids]

        res = compute_deltas(ref, cmp)
        common = set(ref_ids) & set(cmp_ids)
        assert len(res.deltas) == 4 * len(common)
        assert res.missing == len(set(ref_ids)) - len(common)
        assert all(d >= 0.0 for d in res.deltas)
        assert compute_deltas(ref, cmp) == res


def test_well_formed_detection_sets_have_unique_ids():
    assert duplicate_ids([_det(1), _det(2), _det(3)]) == []
    assert duplicate_ids([_det(4), _det(2), _det(4), _det(2), _det(9)]) == [2, 4]
