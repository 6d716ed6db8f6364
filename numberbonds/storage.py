"""Persistent key-value storage for player settings and earned badges.

Everything lives in one JSON file (default ~/.numberbonds/storage.json). Values
are strings; lists are stored as JSON-encoded strings.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Protocol

from numberbonds.config import DifficultyConfig, parse_operations, sanitize_difficulty

logger = logging.getLogger(__name__)

KEY_PLAYER = "playerName"
KEY_MIN = "minNumber"
KEY_MAX = "maxNumber"
KEY_PROBLEMS = "problemCount"
KEY_VARIABLES = "variableCount"
KEY_OPERATIONS = "enabledOperations"
KEY_BADGES = "earnedBadges"

MAX_NAME_LENGTH = 20


class Store(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStore:
    def __init__(self, data: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = str(value)

    def clear(self) -> None:
        self.data.clear()


class JsonFileStore:
    """String store backed by a single JSON file."""

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._lock = threading.Lock()

    def _load_all(self) -> dict:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable store %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_all(self, data: dict) -> None:
        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as exc:
            logger.warning("Could not write store %s: %s", self.path, exc)

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._load_all().get(key)
        return None if value is None else str(value)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load_all()
            data[key] = str(value)
            self._save_all(data)

    def clear(self) -> None:
        with self._lock:
            self._save_all({})


# ── settings ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PlayerSettings:
    player_name: str = ""
    difficulty: DifficultyConfig = field(default_factory=DifficultyConfig)


def _int(store: Store, key: str, default: int) -> int:
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Bad %s=%r in store, using %d", key, raw, default)
        return default


def _json_list(store: Store, key: str, default: list) -> list:
    raw = store.get(key)
    if raw is None:
        return list(default)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Corrupt %s in store, using defaults", key)
        return list(default)
    if not isinstance(value, list):
        logger.warning("Expected a list for %s, got %r", key, value)
        return list(default)
    return value


def load_settings(store: Store, defaults: DifficultyConfig | None = None) -> PlayerSettings:
    """Read the player's saved settings, falling back to ``defaults`` field by field."""
    d = defaults or DifficultyConfig()
    ops = _json_list(store, KEY_OPERATIONS, [op.value for op in d.enabled_operations])
    difficulty = DifficultyConfig(
        min_number=_int(store, KEY_MIN, d.min_number),
        max_number=_int(store, KEY_MAX, d.max_number),
        operand_count=_int(store, KEY_VARIABLES, d.operand_count),
        enabled_operations=parse_operations(ops),
        problem_count=_int(store, KEY_PROBLEMS, d.problem_count),
    )
    return PlayerSettings(
        player_name=store.get(KEY_PLAYER) or "",
        difficulty=sanitize_difficulty(difficulty),
    )


def save_settings(store: Store, player_name: str, difficulty: DifficultyConfig) -> PlayerSettings:
    """Validate and persist settings. Returns what was actually stored."""
    difficulty = sanitize_difficulty(difficulty)
    name = player_name.strip()[:MAX_NAME_LENGTH]
    if name:
        store.set(KEY_PLAYER, name)
    store.set(KEY_MIN, str(difficulty.min_number))
    store.set(KEY_MAX, str(difficulty.max_number))
    store.set(KEY_PROBLEMS, str(difficulty.problem_count))
    store.set(KEY_VARIABLES, str(difficulty.operand_count))
    store.set(KEY_OPERATIONS, json.dumps([op.value for op in difficulty.enabled_operations]))
    return PlayerSettings(player_name=name, difficulty=difficulty)


def load_earned_badges(store: Store, known: set[str] | None = None) -> tuple[str, ...]:
    earned: list[str] = []
    for badge_id in _json_list(store, KEY_BADGES, []):
        if not isinstance(badge_id, str) or (known is not None and badge_id not in known):
            logger.warning("Dropping unknown badge %r from store", badge_id)
            continue
        if badge_id not in earned:
            earned.append(badge_id)
    return tuple(earned)


def save_earned_badges(store: Store, earned: tuple[str, ...]) -> None:
    store.set(KEY_BADGES, json.dumps(list(earned)))
