"""Match engine — selection state machine, scoring, streaks and round replenishment.

The engine owns one explicit ``Session``. Presentation code forwards
``select_problem`` / ``select_answer`` and listens for ``GameView`` snapshots.
Timers (removal grace, playtime, boss countdown) come from the injected
scheduler, so the engine never sleeps or spawns threads itself.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from fractions import Fraction

from numberbonds.badges import BadgeEngine
from numberbonds.boss import BossModeController
from numberbonds.config import AppConfig, DifficultyConfig, SpeedTier
from numberbonds.effects import EffectsDispatcher, SafeEffects
from numberbonds.generator import Problem
from numberbonds.rounds import AnswerTile, Round, build_round
from numberbonds.stats import SessionStats
from numberbonds.storage import MemoryStore, Store, load_earned_badges, load_settings, save_settings
from numberbonds.timers import Scheduler, ThreadScheduler, TimerHandle

logger = logging.getLogger(__name__)

PLAYTIME_INTERVAL = 1.0


class State(Enum):
    IDLE = auto()
    PROBLEM_SELECTED = auto()
    ANSWER_SELECTED = auto()
    BOTH_SELECTED = auto()  # transient: judged immediately


@dataclass
class Session:
    difficulty: DifficultyConfig
    player_name: str = ""
    score: int = 0
    multiplier: Fraction = Fraction(1)
    stats: SessionStats = field(default_factory=SessionStats)
    earned_badges: tuple[str, ...] = ()
    round: Round = field(default_factory=Round)
    selected_problem: str | None = None
    selected_answer: str | None = None
    problem_selected_at: float | None = None
    removing: frozenset[str] = frozenset()


@dataclass(frozen=True)
class MatchResult:
    correct: bool
    problem: Problem
    answer: AnswerTile
    elapsed: float
    points: int = 0
    speed_tier: SpeedTier | None = None


@dataclass(frozen=True)
class GameView:
    """Read-only snapshot handed to the presentation layer."""
    state: State
    round: Round
    score: int
    streak: int
    multiplier: float
    level: int
    boss_active: bool
    boss_time_left: float
    boss_color: str | None
    earned_badges: tuple[str, ...]
    selected_problem: str | None
    selected_answer: str | None
    removing: frozenset[str]
    player_name: str


def speed_tier(tiers: list[SpeedTier], elapsed: float) -> SpeedTier | None:
    """Fastest tier that ``elapsed`` qualifies for, or None."""
    for tier in sorted(tiers, key=lambda t: t.seconds):
        if elapsed <= tier.seconds:
            return tier
    return None


class MatchEngine:
    def __init__(self, cfg: AppConfig, *, store: Store | None = None,
                 effects: EffectsDispatcher | None = None,
                 scheduler: Scheduler | None = None,
                 rng: random.Random | None = None,
                 badges: BadgeEngine | None = None):
        self.cfg = cfg
        self.store = store if store is not None else MemoryStore()
        self.effects = SafeEffects(effects)
        self.scheduler = scheduler or ThreadScheduler()
        self.rng = rng or random.Random()
        self.badges = badges or BadgeEngine(store=self.store, effects=self.effects)
        self.boss = BossModeController(cfg.boss, self.scheduler, self.effects,
                                       on_complete=self._boss_complete, on_tick=self._notify)
        self._step = Fraction(str(cfg.scoring.multiplier_step))
        self._cap = Fraction(str(cfg.scoring.multiplier_cap))
        self._listeners: list[Callable[[GameView], None]] = []
        self._removals: dict[tuple[str, str], TimerHandle] = {}
        self._playtime: TimerHandle | None = None
        self.session = self._load_session()

    def _load_session(self) -> Session:
        settings = load_settings(self.store, self.cfg.difficulty)
        earned = load_earned_badges(self.store, self.badges.ids)
        return Session(difficulty=settings.difficulty, player_name=settings.player_name,
                       earned_badges=earned)

    # ── lifecycle ─────────────────────────────────────────────────

    def start(self) -> None:
        """Build the first round and start the playtime clock."""
        if self.session.round.is_empty:
            self._replenish()
        if self._playtime is None:
            self._playtime = self.scheduler.call_every(PLAYTIME_INTERVAL, self.tick_playtime)
        self._notify()

    def stop(self) -> None:
        """Cancel every timer the engine owns."""
        if self._playtime is not None:
            self._playtime.cancel()
            self._playtime = None
        self._cancel_removals()
        self.boss.reset()

    def reset(self) -> None:
        """Forget all progress: store, score, stats, badges, boss mode and settings."""
        logger.info("Resetting all progress")
        self._cancel_removals()
        self.boss.reset()
        self.store.clear()
        self.session = Session(difficulty=self.cfg.difficulty)
        self._replenish()
        self._notify()

    def apply_settings(self, difficulty: DifficultyConfig, player_name: str | None = None) -> None:
        """Settings-save path: validate, persist, then deal a fresh round."""
        name = self.session.player_name if player_name is None else player_name
        saved = save_settings(self.store, name, difficulty)
        self.session.difficulty = saved.difficulty
        if saved.player_name:
            self.session.player_name = saved.player_name
        self._cancel_removals()
        self._replenish()
        self._notify()

    def add_listener(self, callback: Callable[[GameView], None]) -> None:
        self._listeners.append(callback)

    # ── selection ─────────────────────────────────────────────────

    @property
    def state(self) -> State:
        s = self.session
        if s.selected_problem and s.selected_answer:
            return State.BOTH_SELECTED
        if s.selected_problem:
            return State.PROBLEM_SELECTED
        if s.selected_answer:
            return State.ANSWER_SELECTED
        return State.IDLE

    def select_problem(self, problem_id: str, x: float | None = None,
                       y: float | None = None) -> MatchResult | None:
        s = self.session
        if problem_id in s.removing or s.round.problem(problem_id) is None:
            logger.debug("Ignoring selection of problem %s", problem_id)
            return None
        if s.selected_problem == problem_id:
            s.selected_problem = None
            s.problem_selected_at = None
            self._notify()
            return None
        s.selected_problem = problem_id
        s.problem_selected_at = self.scheduler.time()
        if s.selected_answer:
            return self._judge(x, y)
        self._notify()
        return None

    def select_answer(self, answer_id: str, x: float | None = None,
                      y: float | None = None) -> MatchResult | None:
        s = self.session
        if answer_id in s.removing or s.round.answer(answer_id) is None:
            logger.debug("Ignoring selection of answer %s", answer_id)
            return None
        if s.selected_answer == answer_id:
            s.selected_answer = None
            self._notify()
            return None
        s.selected_answer = answer_id
        if s.selected_problem:
            return self._judge(x, y)
        self._notify()
        return None

    # ── judging ───────────────────────────────────────────────────

    def _judge(self, x, y) -> MatchResult:
        s = self.session
        problem = s.round.problem(s.selected_problem)
        answer = s.round.answer(s.selected_answer)
        now = self.scheduler.time()
        started = s.problem_selected_at if s.problem_selected_at is not None else now
        elapsed = max(0.0, now - started)

        s.selected_problem = None
        s.selected_answer = None
        s.problem_selected_at = None

        if problem.result == answer.value:
            result = self._correct(problem, answer, elapsed, x, y)
        else:
            result = self._wrong(problem, answer, elapsed)
        self._notify()
        return result

    def _correct(self, problem: Problem, answer: AnswerTile, elapsed: float, x, y) -> MatchResult:
        s = self.session
        sc = self.cfg.scoring
        tier = speed_tier(sc.speed_tiers, elapsed)
        bonus = tier.bonus if tier else 0
        points = math.floor(sc.base_points * s.multiplier * self.boss.multiplier) + bonus
        s.score += points
        s.stats = s.stats.solved(problem, fast=elapsed <= sc.fast_solve_seconds)
        s.multiplier = min(s.multiplier + self._step, self._cap)
        streak = s.stats.current_streak
        logger.debug("Correct: %s = %d in %.2fs, +%d (streak %d)",
                     problem, answer.value, elapsed, points, streak)

        s.removing = s.removing | {problem.id, answer.id}
        key = (problem.id, answer.id)
        self._removals[key] = self.scheduler.call_later(
            self.cfg.rounds.removal_grace, lambda: self._remove(*key))

        milestone = sc.streak_milestone
        self.effects.on_correct_match(x, y, milestone > 0 and streak >= milestone)
        if milestone > 0 and streak % milestone == 0:
            self.effects.on_streak_milestone()

        self._update_level()
        self.boss.maybe_enter(streak)
        self._check_badges()
        return MatchResult(True, problem, answer, elapsed, points, tier)

    def _wrong(self, problem: Problem, answer: AnswerTile, elapsed: float) -> MatchResult:
        s = self.session
        logger.debug("Wrong: %s != %d", problem, answer.value)
        s.stats = s.stats.missed()
        s.multiplier = Fraction(1)
        self.effects.on_wrong_match()
        self._check_badges()
        return MatchResult(False, problem, answer, elapsed)

    # ── rounds ────────────────────────────────────────────────────

    def _remove(self, problem_id: str, answer_id: str) -> None:
        s = self.session
        self._removals.pop((problem_id, answer_id), None)
        s.round = s.round.without(problem_id, answer_id)
        s.removing = s.removing - {problem_id, answer_id}
        if not self._removals and len(s.round.problems) <= self.cfg.rounds.low_water_mark:
            self._replenish()
        self._notify()

    def _cancel_removals(self) -> None:
        for handle in self._removals.values():
            handle.cancel()
        self._removals.clear()
        self.session.removing = frozenset()

    def _replenish(self) -> None:
        s = self.session
        rc = self.cfg.rounds
        new_round = build_round(s.difficulty, self.rng,
                                max_attempts=rc.max_attempts, decoy_count=rc.decoy_count)
        if new_round.needs_wider_range:
            s.difficulty = replace(s.difficulty, max_number=s.difficulty.max_number + rc.widen_step)
            logger.warning("Could not fill the round, widening range to %d..%d",
                           s.difficulty.min_number, s.difficulty.max_number)
        s.round = new_round
        s.selected_problem = None
        s.selected_answer = None
        s.problem_selected_at = None

    # ── stats / badges / boss ─────────────────────────────────────

    def tick_playtime(self) -> None:
        self.session.stats = self.session.stats.ticked()
        self._check_badges()
        self._notify()

    def _update_level(self) -> None:
        s = self.session
        level = s.score // self.cfg.scoring.level_points + 1
        if level > s.stats.level:
            s.stats = s.stats.leveled(level)
            logger.info("Level up: %d", level)
            self.effects.on_level_up()

    def _check_badges(self) -> None:
        s = self.session
        s.earned_badges, _ = self.badges.evaluate(s.stats, s.earned_badges)

    def _boss_complete(self) -> None:
        s = self.session
        bonus = s.score * self.cfg.boss.completion_bonus_percent // 100
        s.score += bonus
        logger.info("Boss bonus: +%d", bonus)
        self._update_level()
        self._check_badges()
        self._notify()

    # ── presentation ──────────────────────────────────────────────

    def view(self) -> GameView:
        s = self.session
        return GameView(
            state=self.state,
            round=s.round,
            score=s.score,
            streak=s.stats.current_streak,
            multiplier=float(s.multiplier),
            level=s.stats.level,
            boss_active=self.boss.active,
            boss_time_left=self.boss.time_left,
            boss_color=self.boss.color,
            earned_badges=s.earned_badges,
            selected_problem=s.selected_problem,
            selected_answer=s.selected_answer,
            removing=s.removing,
            player_name=s.player_name,
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.view()
        for callback in self._listeners:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Listener %r failed", callback)
