"""Tests for Stream Deck discovery and the deck front-end."""

import random
from unittest.mock import MagicMock, patch

import pytest

from numberbonds.config import AppConfig, DifficultyConfig
from numberbonds.daemon import (
    DIFFICULTY_KEY,
    PRESET_NAMES,
    RESET_CONFIRM_SECONDS,
    SCORE_KEY,
    TITLE_KEY,
    NumberBondsDeck,
    find_deck,
    key_slot,
    matching_preset,
    slot_key,
)
from numberbonds.engine import MatchEngine
from numberbonds.timers import ManualScheduler


def test_find_deck_returns_first_visual_deck():
    """find_deck should return the first visual StreamDeck device."""
    pedal = MagicMock()
    pedal.is_visual.return_value = False
    mock_deck = MagicMock()
    mock_deck.is_visual.return_value = True
    mock_deck.key_count.return_value = 32

    with patch("numberbonds.daemon.DeviceManager") as MockDM:
        MockDM.return_value.enumerate.return_value = [pedal, mock_deck]
        deck = find_deck()
        assert deck is mock_deck


def test_find_deck_returns_none_when_no_devices():
    """find_deck should return None when no devices are connected."""
    with patch("numberbonds.daemon.DeviceManager") as MockDM:
        MockDM.return_value.enumerate.return_value = []
        assert find_deck() is None


def test_slot_keys_roundtrip():
    assert slot_key(0, answer_side=False) == 8
    assert slot_key(0, answer_side=True) == 12
    assert slot_key(11, answer_side=True) == 31
    for i in range(12):
        assert key_slot(slot_key(i, False)) == ("problem", i)
        assert key_slot(slot_key(i, True)) == ("answer", i)
    assert key_slot(SCORE_KEY) is None


@pytest.fixture
def app():
    scheduler = ManualScheduler()
    engine = MatchEngine(AppConfig(), scheduler=scheduler, rng=random.Random(3))
    deck = MagicMock()
    with patch("numberbonds.daemon.PILHelper") as helper:
        helper.to_native_key_format.side_effect = lambda deck, img: img
        front = NumberBondsDeck(engine, deck)
        front.start()
        yield front, engine, deck, scheduler
        front.stop()


def _drawn_keys(deck):
    return {c.args[0] for c in deck.set_key_image.call_args_list}


def test_start_draws_every_key(app):
    front, _, deck, _ = app
    deck.open.assert_called_once()
    deck.set_brightness.assert_called_once_with(60)
    assert _drawn_keys(deck) == set(range(32))


def test_unchanged_keys_are_not_redrawn(app):
    front, engine, deck, _ = app
    deck.set_key_image.reset_mock()
    front.render(engine.view())
    deck.set_key_image.assert_not_called()


def test_key_presses_solve_a_problem(app):
    front, engine, deck, scheduler = app
    problem = engine.view().round.problems[0]
    index = next(i for i, a in enumerate(engine.view().round.answers)
                 if a.value == problem.result)

    front._on_key_change(deck, slot_key(0, False), True)
    front._on_key_change(deck, slot_key(0, False), False)
    assert engine.session.selected_problem == problem.id
    front._on_key_change(deck, slot_key(index, True), True)
    assert engine.session.score == 600
    assert SCORE_KEY in _drawn_keys(deck)

    scheduler.advance(0.5)
    assert engine.view().round.problem(problem.id) is None


def test_empty_slots_are_ignored(app):
    front, engine, _, _ = app
    front.handle_key(slot_key(11, False))
    front.handle_key(SCORE_KEY)
    assert engine.session.selected_problem is None
    assert engine.session.selected_answer is None


def test_difficulty_key_cycles_presets(app):
    front, engine, _, _ = app
    front.handle_key(DIFFICULTY_KEY)
    d = engine.session.difficulty
    assert (d.min_number, d.max_number, d.problem_count) == (5, 15, 5)
    assert len(engine.view().round.problems) == 5
    for _ in range(4):
        front.handle_key(DIFFICULTY_KEY)
    assert engine.session.difficulty.max_number == 10


def _score_once(engine):
    problem = engine.view().round.problems[0]
    answer = next(a for a in engine.view().round.answers if a.value == problem.result)
    engine.select_problem(problem.id)
    engine.select_answer(answer.id)


def test_title_key_needs_a_second_press_to_reset(app):
    front, engine, deck, _ = app
    _score_once(engine)
    score, earned = engine.session.score, engine.session.earned_badges
    assert score > 0 and earned

    front.handle_key(TITLE_KEY)
    assert front.reset_pending
    assert engine.session.score == score
    assert engine.session.earned_badges == earned
    assert front._drawn[TITLE_KEY] == ("reset?",)

    front.handle_key(TITLE_KEY)
    assert not front.reset_pending
    assert engine.session.score == 0
    assert engine.session.earned_badges == ()
    assert front._drawn[TITLE_KEY][0] == "title"


def test_reset_confirmation_expires(app):
    front, engine, _, scheduler = app
    _score_once(engine)
    score = engine.session.score
    front.handle_key(TITLE_KEY)
    scheduler.advance(RESET_CONFIRM_SECONDS)
    assert not front.reset_pending
    assert front._drawn[TITLE_KEY][0] == "title"

    front.handle_key(TITLE_KEY)
    assert engine.session.score == score
    assert front.reset_pending


def test_reset_restores_matching_preset(app):
    front, engine, _, _ = app
    easy = PRESET_NAMES.index("easy")
    assert front.preset_index == easy
    front.handle_key(DIFFICULTY_KEY)
    front.handle_key(DIFFICULTY_KEY)
    assert PRESET_NAMES[front.preset_index] == "hard"

    front.handle_key(TITLE_KEY)
    front.handle_key(TITLE_KEY)
    assert engine.session.difficulty.max_number == 10
    assert front.preset_index == easy
    assert front._drawn[DIFFICULTY_KEY] == ("preset", "easy")


def test_custom_difficulty_has_no_preset():
    assert matching_preset(DifficultyConfig(min_number=2, max_number=9)) is None
    assert PRESET_NAMES[matching_preset(DifficultyConfig(min_number=10, max_number=20,
                                                         problem_count=6))] == "hard"
