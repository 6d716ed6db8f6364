"""Tests for the round builder."""

import random
from collections import Counter

from numberbonds.config import DifficultyConfig, preset
from numberbonds.generator import Operation
from numberbonds.rounds import build_round


def _check_round(rnd):
    results = [p.result for p in rnd.problems]
    assert len(results) == len(set(results))
    signatures = [p.signature for p in rnd.problems]
    assert len(signatures) == len(set(signatures))
    values = {a.value for a in rnd.answers}
    assert all(r in values for r in results)
    assert values <= set(results)


def test_addition_scenario():
    cfg = DifficultyConfig(min_number=1, max_number=10, operand_count=2,
                           enabled_operations=(Operation.ADDITION,), problem_count=4)
    rnd = build_round(cfg, random.Random(42))
    assert len(rnd.problems) == 4
    assert all(len(p.operands) == 2 and p.operator == "+" for p in rnd.problems)
    assert len({p.result for p in rnd.problems}) == 4
    assert len(rnd.answers) == 4
    assert not rnd.needs_wider_range
    _check_round(rnd)


def test_mixed_rounds_are_consistent():
    cfg = DifficultyConfig(min_number=1, max_number=20, operand_count=3,
                           enabled_operations=tuple(Operation), problem_count=8)
    for seed in range(50):
        _check_round(build_round(cfg, random.Random(seed)))


def test_short_round_signals_wider_range():
    """Only sums 2..4 exist for 1..2 with two operands."""
    cfg = DifficultyConfig(min_number=1, max_number=2, operand_count=2, problem_count=5)
    rnd = build_round(cfg, random.Random(0))
    assert rnd.needs_wider_range
    assert 1 <= len(rnd.problems) <= 3
    _check_round(rnd)


def test_decoys_repeat_existing_values():
    cfg = DifficultyConfig(problem_count=4)
    rnd = build_round(cfg, random.Random(3), decoy_count=3)
    assert len(rnd.answers) == 7
    counts = Counter(a.value for a in rnd.answers)
    assert sum(counts.values()) - len(counts) == 3
    _check_round(rnd)
    assert len({a.id for a in rnd.answers}) == 7


def test_rounds_are_shuffled():
    """Answer order should not simply follow problem order every time."""
    cfg = DifficultyConfig(min_number=1, max_number=30, problem_count=6)
    same_order = 0
    for seed in range(20):
        rnd = build_round(cfg, random.Random(seed))
        if [p.result for p in rnd.problems] == [a.value for a in rnd.answers]:
            same_order += 1
    assert same_order < 20


def test_without_removes_ids():
    rnd = build_round(DifficultyConfig(), random.Random(1))
    p = rnd.problems[0]
    a = next(a for a in rnd.answers if a.value == p.result)
    rest = rnd.without(p.id, a.id)
    assert rest.problem(p.id) is None
    assert rest.answer(a.id) is None
    assert len(rest.problems) == len(rnd.problems) - 1
    assert len(rnd.problems) == 4


def test_multiplication_with_high_minimum_fills_the_round():
    """Hard and expert presets: min_number**2 already exceeds max_number."""
    for name in ("hard", "expert"):
        cfg = preset(name, DifficultyConfig(enabled_operations=(Operation.MULTIPLICATION,)))
        rnd = build_round(cfg, random.Random(4))
        assert len(rnd.problems) == cfg.problem_count
        assert not rnd.needs_wider_range
        assert all(p.result <= cfg.max_number for p in rnd.problems)
        _check_round(rnd)
