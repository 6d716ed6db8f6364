"""Boss mode — a timed phase with a score multiplier, entered at a streak milestone."""

from __future__ import annotations

import logging
from collections.abc import Callable

from numberbonds.config import BossConfig
from numberbonds.effects import EffectsDispatcher, SafeEffects
from numberbonds.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class BossModeController:
    """Owns the countdown. The engine supplies ``on_complete`` to pay out the bonus."""

    def __init__(self, cfg: BossConfig, scheduler: Scheduler,
                 effects: EffectsDispatcher | None = None,
                 on_complete: Callable[[], None] | None = None,
                 on_tick: Callable[[], None] | None = None):
        self.cfg = cfg
        self.scheduler = scheduler
        self.effects = effects if isinstance(effects, SafeEffects) else SafeEffects(effects)
        self.on_complete = on_complete
        self.on_tick = on_tick
        self.total_ticks = max(1, round(cfg.time_limit / cfg.tick))
        self.active = False
        self.ticks_left = self.total_ticks
        self.color_index = 0
        self._timer: TimerHandle | None = None

    @property
    def multiplier(self) -> int:
        return self.cfg.multiplier if self.active else 1

    @property
    def time_left(self) -> float:
        return self.ticks_left * self.cfg.tick

    @property
    def color(self) -> str | None:
        if not self.active or not self.cfg.colors:
            return None
        return self.cfg.colors[self.color_index]

    def maybe_enter(self, streak: int) -> bool:
        """Enter boss mode if ``streak`` hit the threshold exactly. Returns True on entry."""
        if self.active or streak != self.cfg.streak_required:
            return False
        self.active = True
        self.ticks_left = self.total_ticks
        self.color_index = 0
        self._timer = self.scheduler.call_every(self.cfg.tick, self._tick)
        logger.info("Boss mode! %.1fs at x%d", self.time_left, self.cfg.multiplier)
        self.effects.on_boss_mode_start()
        return True

    def _tick(self) -> None:
        if not self.active:
            return
        if self.cfg.colors:
            self.color_index = (self.color_index + 1) % len(self.cfg.colors)
        self.ticks_left -= 1
        if self.ticks_left <= 0:
            self._finish()
        elif self.on_tick:
            self.on_tick()

    def _finish(self) -> None:
        self._cancel_timer()
        # multiplier is neutral again before the bonus is paid out
        self.active = False
        self.ticks_left = self.total_ticks
        self.color_index = 0
        logger.info("Boss mode complete")
        if self.on_complete:
            self.on_complete()
        self.effects.on_boss_mode_end()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def reset(self) -> None:
        """Leave boss mode without a bonus (teardown or explicit reset)."""
        self._cancel_timer()
        self.active = False
        self.ticks_left = self.total_ticks
        self.color_index = 0
