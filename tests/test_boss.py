"""Tests for the boss mode controller."""

import pytest

from numberbonds.boss import BossModeController
from numberbonds.config import BossConfig
from numberbonds.effects import RecordingEffects
from numberbonds.timers import ManualScheduler


def _boss(**kwargs):
    scheduler = ManualScheduler()
    effects = RecordingEffects()
    completions = []
    boss = BossModeController(BossConfig(**kwargs), scheduler, effects,
                              on_complete=lambda: completions.append(scheduler.time()))
    return boss, scheduler, effects, completions


def test_enters_only_at_exact_threshold():
    boss, _, effects, _ = _boss()
    assert not boss.maybe_enter(9)
    assert not boss.maybe_enter(11)
    assert boss.multiplier == 1
    assert boss.maybe_enter(10)
    assert boss.active
    assert boss.multiplier == 3
    assert effects.names() == ["on_boss_mode_start"]


def test_does_not_reenter_while_active():
    boss, scheduler, effects, _ = _boss()
    boss.maybe_enter(10)
    scheduler.advance(2.0)
    assert not boss.maybe_enter(10)
    assert effects.names().count("on_boss_mode_start") == 1


def test_countdown_expires_after_time_limit():
    boss, scheduler, effects, completions = _boss()
    boss.maybe_enter(10)
    scheduler.advance(9.9)
    assert boss.active
    assert round(boss.time_left, 1) == 0.1
    scheduler.advance(0.1)
    assert not boss.active
    assert boss.multiplier == 1
    assert completions == [pytest.approx(10.0)]
    assert effects.names() == ["on_boss_mode_start", "on_boss_mode_end"]
    # countdown is ready for the next activation
    assert boss.time_left == 10.0
    assert scheduler.pending == 0


def test_palette_cycles_each_tick():
    boss, scheduler, _, _ = _boss(colors=["red", "green", "blue"])
    boss.maybe_enter(10)
    seen = []
    for _ in range(4):
        seen.append(boss.color)
        scheduler.advance(0.1)
    assert seen == ["red", "green", "blue", "red"]


def test_reset_cancels_countdown_without_bonus():
    boss, scheduler, effects, completions = _boss()
    boss.maybe_enter(10)
    scheduler.advance(1.0)
    boss.reset()
    boss.reset()
    scheduler.advance(20.0)
    assert not boss.active
    assert completions == []
    assert "on_boss_mode_end" not in effects.names()


def test_can_enter_again_after_expiry():
    boss, scheduler, effects, completions = _boss(time_limit=1.0)
    boss.maybe_enter(10)
    scheduler.advance(1.0)
    assert boss.maybe_enter(10)
    scheduler.advance(1.0)
    assert len(completions) == 2
