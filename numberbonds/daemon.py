"""Number Bonds — Stream Deck front-end.

Layout (8x4 = 32 keys):
  Row 1 (0-7):    HUD — title/reset, score, streak, multiplier, level, boss timer, badges, difficulty
  Rows 2-4:       problems in columns 0-3, answers in columns 4-7 (12 slots each)

Usage:
    numberbonds --config config.yaml
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
import threading
from pathlib import Path

import yaml
from StreamDeck.DeviceManager import DeviceManager
from StreamDeck.ImageHelpers import PILHelper

from numberbonds import renderer, sound
from numberbonds.config import DIFFICULTY_PRESETS, AppConfig, DifficultyConfig, load_config, preset
from numberbonds.effects import SoundEffects
from numberbonds.engine import GameView, MatchEngine
from numberbonds.storage import JsonFileStore
from numberbonds.timers import ThreadScheduler

logger = logging.getLogger(__name__)

COLS = 8
TITLE_KEY = 0
SCORE_KEY = 1
STREAK_KEY = 2
MULTIPLIER_KEY = 3
LEVEL_KEY = 4
BOSS_KEY = 5
BADGES_KEY = 6
DIFFICULTY_KEY = 7
SLOTS_PER_SIDE = 12

PRESET_NAMES = list(DIFFICULTY_PRESETS)
RESET_CONFIRM_SECONDS = 3.0


def find_deck():
    """Find first visual Stream Deck device."""
    decks = DeviceManager().enumerate()
    for deck in decks:
        if deck.is_visual():
            return deck
    return None


def slot_key(index: int, answer_side: bool) -> int:
    """Deck key for the n-th problem (or answer) slot."""
    row, col = divmod(index, 4)
    return COLS * (row + 1) + col + (4 if answer_side else 0)


def key_slot(key: int) -> tuple[str, int] | None:
    """Inverse of slot_key: ("problem" | "answer", index), or None for HUD keys."""
    row, col = divmod(key, COLS)
    if row < 1 or row > 3:
        return None
    side = "answer" if col >= 4 else "problem"
    return side, (row - 1) * 4 + col % 4


def matching_preset(difficulty: DifficultyConfig) -> int | None:
    """Index into PRESET_NAMES of the preset ``difficulty`` corresponds to, if any."""
    for index, name in enumerate(PRESET_NAMES):
        values = DIFFICULTY_PRESETS[name]
        if all(getattr(difficulty, attr) == value for attr, value in values.items()):
            return index
    return None


class NumberBondsDeck:
    """Presentation layer: draws GameView snapshots and forwards key presses."""

    def __init__(self, engine: MatchEngine, deck, brightness: int = 60,
                 lock: threading.RLock | None = None):
        self.engine = engine
        self.deck = deck
        self.brightness = brightness
        self.lock = lock or getattr(engine.scheduler, "lock", None) or threading.RLock()
        self.view: GameView | None = None
        self._drawn: dict[int, tuple] = {}
        self.preset_index = matching_preset(engine.session.difficulty)
        self.reset_pending = False
        self._reset_timer = None

    def start(self):
        self.deck.open()
        self.deck.reset()
        self.deck.set_brightness(self.brightness)
        self.engine.add_listener(self.render)
        self.deck.set_key_callback(self._on_key_change)
        with self.lock:
            self.engine.start()

    def stop(self):
        with self.lock:
            self._disarm_reset()
            self.engine.stop()
        self.deck.reset()
        self.deck.close()

    # ── drawing ───────────────────────────────────────────────────

    def set_key(self, pos: int, signature: tuple, draw):
        """Redraw ``pos`` only when its signature changed."""
        if self._drawn.get(pos) == signature:
            return
        self._drawn[pos] = signature
        native = PILHelper.to_native_key_format(self.deck, draw())
        with self.deck:
            self.deck.set_key_image(pos, native)

    def render(self, view: GameView):
        self.view = view
        self._render_hud(view)

        problems = list(view.round.problems)[:SLOTS_PER_SIDE]
        answers = list(view.round.answers)[:SLOTS_PER_SIDE]
        for i in range(SLOTS_PER_SIDE):
            key = slot_key(i, answer_side=False)
            if i < len(problems):
                p = problems[i]
                sel, rem = p.id == view.selected_problem, p.id in view.removing
                self.set_key(key, ("p", p.id, sel, rem),
                             lambda p=p, sel=sel, rem=rem: renderer.render_problem(
                                 p.operands, p.operator, selected=sel, removing=rem))
            else:
                self.set_key(key, ("empty",), renderer.render_empty)

            key = slot_key(i, answer_side=True)
            if i < len(answers):
                a = answers[i]
                sel, rem = a.id == view.selected_answer, a.id in view.removing
                self.set_key(key, ("a", a.id, sel, rem),
                             lambda a=a, sel=sel, rem=rem: renderer.render_answer(
                                 a.value, selected=sel, removing=rem))
            else:
                self.set_key(key, ("empty",), renderer.render_empty)

    def _render_hud(self, view: GameView):
        if self.reset_pending:
            self.set_key(TITLE_KEY, ("reset?",),
                         lambda: renderer.render_stat("TAP AGAIN", "RESET?", "#fecaca", "#7f1d1d"))
        else:
            self.set_key(TITLE_KEY, ("title", view.player_name),
                         lambda: renderer.render_title(view.player_name))
        self.set_key(SCORE_KEY, ("score", view.score),
                     lambda: renderer.render_stat("SCORE", str(view.score)))
        self.set_key(STREAK_KEY, ("streak", view.streak),
                     lambda: renderer.render_stat("STREAK", str(view.streak), "#f87171"))
        self.set_key(MULTIPLIER_KEY, ("mult", view.multiplier),
                     lambda: renderer.render_stat("MULTI", f"x{view.multiplier:.1f}", "#fbbf24"))
        self.set_key(LEVEL_KEY, ("level", view.level),
                     lambda: renderer.render_stat("LEVEL", str(view.level), "#60a5fa"))
        if view.boss_active:
            self.set_key(BOSS_KEY, ("boss", round(view.boss_time_left, 1), view.boss_color),
                         lambda: renderer.render_boss_timer(view.boss_time_left,
                                                            view.boss_color or "#7c2d12"))
        else:
            self.set_key(BOSS_KEY, ("empty",), renderer.render_empty)
        count = len(view.earned_badges)
        total = len(self.engine.badges.by_id)
        self.set_key(BADGES_KEY, ("badges", count),
                     lambda: renderer.render_stat("BADGES", f"{count}/{total}", "#c084fc"))
        name = "custom" if self.preset_index is None else PRESET_NAMES[self.preset_index]
        self.set_key(DIFFICULTY_KEY, ("preset", name),
                     lambda: renderer.render_stat("LEVEL SET", name.upper(), "#e5e7eb"))

    # ── reset confirmation ────────────────────────────────────────

    def _arm_reset(self):
        self.reset_pending = True
        self._reset_timer = self.engine.scheduler.call_later(RESET_CONFIRM_SECONDS,
                                                             self._reset_expired)
        self._render_hud(self.view or self.engine.view())

    def _disarm_reset(self):
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None
        self.reset_pending = False

    def _reset_expired(self):
        self._reset_timer = None
        self.reset_pending = False
        self._render_hud(self.view or self.engine.view())

    # ── input ─────────────────────────────────────────────────────

    def _on_key_change(self, deck, key: int, pressed: bool):
        """Handle physical button press."""
        if not pressed:
            return
        with self.lock:
            self.handle_key(key)

    def handle_key(self, key: int):
        if key == TITLE_KEY:
            # first press arms, a second press within the window wipes progress
            if not self.reset_pending:
                self._arm_reset()
                return
            self._disarm_reset()
            self.engine.reset()
            self.preset_index = matching_preset(self.engine.session.difficulty)
            self._render_hud(self.view or self.engine.view())
            return
        if key == DIFFICULTY_KEY:
            if self.preset_index is None:
                self.preset_index = 0
            else:
                self.preset_index = (self.preset_index + 1) % len(PRESET_NAMES)
            name = PRESET_NAMES[self.preset_index]
            logger.info("Difficulty preset: %s", name)
            self.engine.apply_settings(preset(name, self.engine.session.difficulty))
            return

        slot = key_slot(key)
        view = self.view or self.engine.view()
        if slot is None:
            return
        side, index = slot
        x, y = key % COLS, key // COLS
        if side == "problem" and index < len(view.round.problems):
            self.engine.select_problem(view.round.problems[index].id, x, y)
        elif side == "answer" and index < len(view.round.answers):
            self.engine.select_answer(view.round.answers[index].id, x, y)


def main():
    parser = argparse.ArgumentParser(description="Number Bonds on a Stream Deck")
    parser.add_argument("--config", default="config.yaml", help="Config file path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for rounds")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config_path = Path(args.config)
    if config_path.exists():
        try:
            config = load_config(config_path)
        except (yaml.YAMLError, TypeError) as exc:
            print(f"Bad config {config_path}: {exc}")
            sys.exit(1)
    else:
        print(f"Config not found: {config_path}, using defaults")
        config = AppConfig()

    deck = find_deck()
    if deck is None:
        print("No Stream Deck found. Is it plugged in?")
        sys.exit(1)

    scheduler = ThreadScheduler()
    engine = MatchEngine(
        config,
        store=JsonFileStore(config.storage.path),
        effects=SoundEffects(config.sounds),
        scheduler=scheduler,
        rng=random.Random(args.seed),
    )
    app = NumberBondsDeck(engine, deck, brightness=config.deck.brightness, lock=scheduler.lock)
    print(f"Connected: {deck.deck_type()} ({deck.key_count()} keys)")
    app.start()

    try:
        # Block main thread
        threading.Event().wait()
    except KeyboardInterrupt:
        print(f"\nBye! Score: {engine.session.score}")
    finally:
        app.stop()
        sound.stop_all()


if __name__ == "__main__":
    main()
