"""Effects dispatcher — fire-and-forget feedback intents issued by the engine."""

from __future__ import annotations

import logging
import os

from numberbonds import sound
from numberbonds.config import SoundConfig

logger = logging.getLogger(__name__)


class EffectsDispatcher:
    """No-op base. Subclasses override the events they care about."""

    def on_correct_match(self, x: float | None, y: float | None, is_streak_tier: bool) -> None:
        pass

    def on_wrong_match(self) -> None:
        pass

    def on_level_up(self) -> None:
        pass

    def on_streak_milestone(self) -> None:
        pass

    def on_boss_mode_start(self) -> None:
        pass

    def on_boss_mode_end(self) -> None:
        pass

    def on_badge_unlocked(self, badge_id: str) -> None:
        pass


class SafeEffects(EffectsDispatcher):
    """Wraps another dispatcher so its failures never reach the engine."""

    def __init__(self, inner: EffectsDispatcher | None = None):
        self.inner = inner or EffectsDispatcher()

    def _dispatch(self, event: str, *args) -> None:
        try:
            getattr(self.inner, event)(*args)
        except Exception:
            logger.exception("Effect %s failed", event)

    def on_correct_match(self, x, y, is_streak_tier):
        self._dispatch("on_correct_match", x, y, is_streak_tier)

    def on_wrong_match(self):
        self._dispatch("on_wrong_match")

    def on_level_up(self):
        self._dispatch("on_level_up")

    def on_streak_milestone(self):
        self._dispatch("on_streak_milestone")

    def on_boss_mode_start(self):
        self._dispatch("on_boss_mode_start")

    def on_boss_mode_end(self):
        self._dispatch("on_boss_mode_end")

    def on_badge_unlocked(self, badge_id):
        self._dispatch("on_badge_unlocked", badge_id)


class SoundEffects(EffectsDispatcher):
    """Plays the sound file configured for each event, if it exists."""

    def __init__(self, cfg: SoundConfig):
        self.cfg = cfg
        sound.sfx_enabled = cfg.enabled

    def _play(self, path: str | None) -> None:
        if not path:
            return
        full = os.path.expanduser(path)
        if os.path.exists(full):
            sound.play_file(full, self.cfg.player)

    def on_correct_match(self, x, y, is_streak_tier):
        self._play(self.cfg.streak if is_streak_tier else self.cfg.correct)

    def on_wrong_match(self):
        self._play(self.cfg.wrong)

    def on_level_up(self):
        self._play(self.cfg.level_up)

    def on_streak_milestone(self):
        self._play(self.cfg.streak)

    def on_boss_mode_start(self):
        self._play(self.cfg.boss_start)

    def on_boss_mode_end(self):
        self._play(self.cfg.boss_end)

    def on_badge_unlocked(self, badge_id):
        self._play(self.cfg.badge)


class RecordingEffects(EffectsDispatcher):
    """Keeps every event as ``(name, args)`` — handy for headless runs and tests."""

    def __init__(self):
        self.events: list[tuple[str, tuple]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def on_correct_match(self, x, y, is_streak_tier):
        self.events.append(("on_correct_match", (x, y, is_streak_tier)))

    def on_wrong_match(self):
        self.events.append(("on_wrong_match", ()))

    def on_level_up(self):
        self.events.append(("on_level_up", ()))

    def on_streak_milestone(self):
        self.events.append(("on_streak_milestone", ()))

    def on_boss_mode_start(self):
        self.events.append(("on_boss_mode_start", ()))

    def on_boss_mode_end(self):
        self.events.append(("on_boss_mode_end", ()))

    def on_badge_unlocked(self, badge_id):
        self.events.append(("on_badge_unlocked", (badge_id,)))
