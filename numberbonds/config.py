"""Config loader — YAML to dataclasses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from numberbonds.generator import Operation

logger = logging.getLogger(__name__)

MIN_OPERANDS = 2
MAX_OPERANDS = 5
MAX_PROBLEMS = 12
NUMBER_CEILING = 9999


@dataclass
class DeckConfig:
    brightness: int = 60


@dataclass(frozen=True)
class DifficultyConfig:
    min_number: int = 1
    max_number: int = 10
    operand_count: int = 2
    enabled_operations: tuple[Operation, ...] = (Operation.ADDITION,)
    problem_count: int = 4


@dataclass(frozen=True)
class SpeedTier:
    seconds: float
    bonus: int
    label: str = ""


DEFAULT_SPEED_TIERS = [
    SpeedTier(3, 500, "Lightning Fast!"),
    SpeedTier(5, 300, "Super Fast!"),
    SpeedTier(8, 200, "Fast!"),
    SpeedTier(12, 100, "Good!"),
]


@dataclass
class ScoringConfig:
    base_points: int = 100
    multiplier_step: float = 0.1
    multiplier_cap: float = 3.0
    fast_solve_seconds: float = 5.0
    speed_tiers: list[SpeedTier] = field(default_factory=lambda: list(DEFAULT_SPEED_TIERS))
    level_points: int = 1000
    streak_milestone: int = 5


@dataclass
class BossConfig:
    streak_required: int = 10
    time_limit: float = 10.0
    tick: float = 0.1
    multiplier: int = 3
    completion_bonus_percent: int = 20
    colors: list[str] = field(default_factory=lambda: ["#ef4444", "#9333ea", "#f97316"])


@dataclass
class RoundConfig:
    max_attempts: int = 100
    decoy_count: int = 0
    low_water_mark: int = 0
    widen_step: int = 5
    removal_grace: float = 0.5


@dataclass
class StorageConfig:
    path: str = "~/.numberbonds/storage.json"


@dataclass
class SoundConfig:
    enabled: bool = True
    player: str | None = None  # "afplay" on macOS, "aplay" elsewhere
    correct: str | None = None
    wrong: str | None = None
    level_up: str | None = None
    streak: str | None = None
    boss_start: str | None = None
    boss_end: str | None = None
    badge: str | None = None


@dataclass
class AppConfig:
    deck: DeckConfig = field(default_factory=DeckConfig)
    difficulty: DifficultyConfig = field(default_factory=DifficultyConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    boss: BossConfig = field(default_factory=BossConfig)
    rounds: RoundConfig = field(default_factory=RoundConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sounds: SoundConfig = field(default_factory=SoundConfig)


# presets offered on the settings screen
DIFFICULTY_PRESETS = {
    "beginner": {"min_number": 1, "max_number": 5, "problem_count": 3},
    "easy": {"min_number": 1, "max_number": 10, "problem_count": 4},
    "medium": {"min_number": 5, "max_number": 15, "problem_count": 5},
    "hard": {"min_number": 10, "max_number": 20, "problem_count": 6},
    "expert": {"min_number": 15, "max_number": 30, "problem_count": 8},
}


def preset(name: str, base: DifficultyConfig | None = None) -> DifficultyConfig:
    """Apply a named difficulty preset on top of ``base`` (operations and operand count are kept)."""
    values = DIFFICULTY_PRESETS[name.lower()]
    return replace(base or DifficultyConfig(), **values)


def parse_operations(raw) -> tuple[Operation, ...]:
    """Parse operation names, dropping unknown ones. Falls back to addition."""
    ops: list[Operation] = []
    for item in raw or []:
        try:
            op = Operation(item)
        except ValueError:
            logger.warning("Ignoring unknown operation %r", item)
            continue
        if op not in ops:
            ops.append(op)
    return tuple(ops) or (Operation.ADDITION,)


def sanitize_difficulty(cfg: DifficultyConfig) -> DifficultyConfig:
    """Clamp a difficulty config into a shape the generator can always use."""
    lo = int(max(0, min(NUMBER_CEILING - 1, cfg.min_number)))
    hi = int(max(lo + 1, min(NUMBER_CEILING, cfg.max_number)))
    ops = parse_operations([getattr(op, "value", op) for op in cfg.enabled_operations])
    fixed = DifficultyConfig(
        min_number=lo,
        max_number=hi,
        operand_count=int(max(MIN_OPERANDS, min(MAX_OPERANDS, cfg.operand_count))),
        enabled_operations=ops,
        problem_count=int(max(2, min(MAX_PROBLEMS, cfg.problem_count))),
    )
    if fixed != cfg:
        logger.warning("Difficulty adjusted from %s to %s", cfg, fixed)
    return fixed


def _difficulty(raw: dict) -> DifficultyConfig:
    values = {k: v for k, v in raw.items() if k != "enabled_operations"}
    ops = parse_operations(raw.get("enabled_operations") or ["addition"])
    return sanitize_difficulty(DifficultyConfig(enabled_operations=ops, **values))


def _scoring(raw: dict) -> ScoringConfig:
    values = {k: v for k, v in raw.items() if k != "speed_tiers"}
    cfg = ScoringConfig(**values)
    if raw.get("speed_tiers"):
        cfg.speed_tiers = [SpeedTier(**tier) for tier in raw["speed_tiers"]]
    cfg.speed_tiers.sort(key=lambda tier: tier.seconds)
    return cfg


def load_config(path: Path) -> AppConfig:
    """Load config from YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return AppConfig(
        deck=DeckConfig(**(raw.get("deck") or {})),
        difficulty=_difficulty(raw.get("difficulty") or {}),
        scoring=_scoring(raw.get("scoring") or {}),
        boss=BossConfig(**(raw.get("boss") or {})),
        rounds=RoundConfig(**(raw.get("rounds") or {})),
        storage=StorageConfig(**(raw.get("storage") or {})),
        sounds=SoundConfig(**(raw.get("sounds") or {})),
    )
