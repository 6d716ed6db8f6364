"""Achievement badges.

The catalog is a fixed table. Super badges list the badges they depend on in
``depends_on`` and are only evaluated once all of those are earned. Evaluation
repeats until no new badge unlocks, so a whole chain can unlock in one pass.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from numberbonds.effects import EffectsDispatcher, SafeEffects
from numberbonds.stats import SessionStats
from numberbonds.storage import Store, save_earned_badges

logger = logging.getLogger(__name__)

Predicate = Callable[[SessionStats, frozenset], bool]


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    predicate: Predicate
    depends_on: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_super(self) -> bool:
        return bool(self.depends_on)


def _always(stats: SessionStats, earned: frozenset) -> bool:
    return True


BADGES: tuple[Badge, ...] = (
    Badge("quick-start", "Quick Start", "Complete your first problem",
          lambda s, e: s.total_solved >= 1),
    Badge("math-whiz", "Math Whiz", "Reach level 3",
          lambda s, e: s.level >= 3),
    Badge("speed-demon", "Speed Demon", "Solve 10 problems fast",
          lambda s, e: s.fast_solves >= 10),
    Badge("persistent", "Persistent", "Play for 5 minutes straight",
          lambda s, e: s.play_time_seconds >= 300),
    Badge("perfectionist", "Perfectionist", "Get a streak of 10",
          lambda s, e: s.max_streak >= 10),
    Badge("explorer", "Explorer", "Try all basic operations",
          lambda s, e: len(s.operations_used) >= 4),
    Badge("variable-master", "Variable Master", "Solve a problem with 5 numbers",
          lambda s, e: s.max_variables >= 5),
    Badge("math-master", "Math Master", "Earn Math Whiz, Speed Demon and Perfectionist",
          _always, frozenset({"math-whiz", "speed-demon", "perfectionist"})),
    Badge("grand-explorer", "Grand Explorer", "Earn Explorer and Variable Master, solve 100 problems",
          lambda s, e: s.total_solved >= 100, frozenset({"explorer", "variable-master"})),
    Badge("ultimate-achiever", "Ultimate Achiever", "Earn all other super badges",
          _always, frozenset({"math-master", "grand-explorer"})),
)


def validate_catalog(catalog: Iterable[Badge]) -> dict[str, Badge]:
    """Index the catalog by id; reject duplicates, dangling dependencies and cycles."""
    by_id: dict[str, Badge] = {}
    for badge in catalog:
        if badge.id in by_id:
            raise ValueError(f"duplicate badge id {badge.id!r}")
        by_id[badge.id] = badge
    for badge in by_id.values():
        missing = badge.depends_on - by_id.keys()
        if missing:
            raise ValueError(f"badge {badge.id!r} depends on unknown {sorted(missing)}")

    state: dict[str, int] = {}  # 1 = visiting, 2 = done

    def visit(badge_id: str, path: tuple[str, ...]) -> None:
        if state.get(badge_id) == 2:
            return
        if state.get(badge_id) == 1:
            raise ValueError(f"badge dependency cycle: {' -> '.join(path + (badge_id,))}")
        state[badge_id] = 1
        for dep in sorted(by_id[badge_id].depends_on):
            visit(dep, path + (badge_id,))
        state[badge_id] = 2

    for badge_id in by_id:
        visit(badge_id, ())
    return by_id


class BadgeEngine:
    def __init__(self, catalog: Iterable[Badge] = BADGES, store: Store | None = None,
                 effects: EffectsDispatcher | None = None):
        self.by_id = validate_catalog(catalog)
        self.store = store
        self.effects = effects if isinstance(effects, SafeEffects) else SafeEffects(effects)

    @property
    def ids(self) -> set[str]:
        return set(self.by_id)

    def evaluate(self, stats: SessionStats, earned: tuple[str, ...]) -> tuple[tuple[str, ...], list[str]]:
        """Unlock every badge that ``stats`` now satisfies.

        Returns the new earned tuple and the ids unlocked by this call, in
        unlock order. Each is persisted and notified once.
        """
        have = list(earned)
        unlocked: list[str] = []
        changed = True
        while changed:
            changed = False
            current = frozenset(have)
            for badge in self.by_id.values():
                if badge.id in current or not badge.depends_on <= current:
                    continue
                if badge.predicate(stats, current):
                    have.append(badge.id)
                    unlocked.append(badge.id)
                    current = frozenset(have)
                    changed = True

        if unlocked:
            result = tuple(have)
            if self.store is not None:
                save_earned_badges(self.store, result)
            for badge_id in unlocked:
                logger.info("Badge unlocked: %s", badge_id)
                self.effects.on_badge_unlocked(badge_id)
            return result, unlocked
        return tuple(earned), unlocked
