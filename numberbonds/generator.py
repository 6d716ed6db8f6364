"""Problem generator — one arithmetic problem per call.

All randomness comes from the ``rng`` argument so rounds can be seeded.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from numberbonds.config import DifficultyConfig

logger = logging.getLogger(__name__)

MAX_RETRIES = 20
DIVISION_CAP = 12


class Operation(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {
    Operation.ADDITION: "+",
    Operation.SUBTRACTION: "-",
    Operation.MULTIPLICATION: "×",
    Operation.DIVISION: "÷",
}


def new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class Problem:
    operands: tuple[int, ...]
    operation: Operation
    result: int
    id: str = field(default_factory=new_id)

    @property
    def operator(self) -> str:
        return self.operation.symbol

    @property
    def signature(self) -> tuple[tuple[int, ...], Operation]:
        return self.operands, self.operation

    def __str__(self) -> str:
        return f" {self.operator} ".join(str(n) for n in self.operands)


def evaluate(operands: tuple[int, ...], operation: Operation) -> int:
    """Reduce operands left to right. Division must be exact."""
    if operation is Operation.ADDITION:
        return sum(operands)
    if operation is Operation.SUBTRACTION:
        return reduce(lambda a, b: a - b, operands)
    if operation is Operation.MULTIPLICATION:
        return reduce(lambda a, b: a * b, operands, 1)

    def _div(a: int, b: int) -> int:
        if b == 0 or a % b:
            raise ValueError(f"{a} is not exactly divisible by {b}")
        return a // b

    return reduce(_div, operands)


def iroot(value: int, n: int) -> int:
    """Largest k with k**n <= value (k >= 0)."""
    if value < 1:
        return 0
    k = int(round(value ** (1.0 / n)))
    while k ** n > value:
        k -= 1
    while (k + 1) ** n <= value:
        k += 1
    return k


def draw_nonzero(rng: random.Random, lo: int, hi: int) -> int | None:
    """Uniform draw from [lo, hi] with zero excluded; None if nothing is left."""
    if lo > hi or lo == hi == 0:
        return None
    if lo <= 0 <= hi:
        value = rng.randint(lo, hi - 1)
        return value + 1 if value >= 0 else value
    return rng.randint(lo, hi)


def _addition(cfg: DifficultyConfig, rng: random.Random) -> tuple[int, ...] | None:
    parts = [draw_nonzero(rng, cfg.min_number, cfg.max_number) for _ in range(cfg.operand_count)]
    if None in parts:
        return None
    return tuple(parts)


def _subtraction(cfg: DifficultyConfig, rng: random.Random) -> tuple[int, ...] | None:
    first = draw_nonzero(rng, max(cfg.min_number, cfg.max_number // 2), cfg.max_number)
    if first is None:
        return None
    parts = [first]
    remaining = first
    for _ in range(1, cfg.operand_count):
        upper = min(remaining - 1, cfg.max_number)
        nxt = draw_nonzero(rng, cfg.min_number, upper)
        if nxt is None:
            break
        parts.append(nxt)
        remaining -= nxt
    if len(parts) < 2:
        return None
    return tuple(parts)


def _multiplication(cfg: DifficultyConfig, rng: random.Random) -> tuple[int, ...] | None:
    upper = min(cfg.max_number, iroot(cfg.max_number, cfg.operand_count))
    if upper >= cfg.min_number:
        parts = [draw_nonzero(rng, cfg.min_number, upper) for _ in range(cfg.operand_count)]
        if None in parts:
            return None
        return tuple(parts)

    # min_number is too large for any product to stay within max_number:
    # drop the lower bound and spend the remaining budget operand by operand
    parts = []
    product = 1
    for i in range(cfg.operand_count):
        bound = max(1, iroot(cfg.max_number // product, cfg.operand_count - i))
        value = rng.randint(1, bound)
        parts.append(value)
        product *= value
    return tuple(parts)


def _division(cfg: DifficultyConfig, rng: random.Random) -> tuple[int, ...] | None:
    result = draw_nonzero(rng, max(1, cfg.min_number), min(cfg.max_number, DIVISION_CAP))
    if result is None:
        return None
    partner = draw_nonzero(rng, max(1, cfg.min_number), min(cfg.max_number // result, DIVISION_CAP))
    if partner is None:
        return None
    return result * partner, partner


_DRAWS = {
    Operation.ADDITION: _addition,
    Operation.SUBTRACTION: _subtraction,
    Operation.MULTIPLICATION: _multiplication,
    Operation.DIVISION: _division,
}


def fallback_problem() -> Problem:
    return Problem(operands=(1, 1), operation=Operation.ADDITION, result=2)


def generate_problem(cfg: DifficultyConfig, rng: random.Random | None = None,
                     max_retries: int = MAX_RETRIES) -> Problem:
    """Generate one problem for ``cfg``.

    Infeasible draws are retried up to ``max_retries`` times, after which
    ``1 + 1`` is returned so the caller always gets a valid problem.
    """
    rng = rng or random.Random()
    ops = list(cfg.enabled_operations) or [Operation.ADDITION]
    for _ in range(max_retries):
        op = Operation(rng.choice(ops))
        operands = _DRAWS[op](cfg, rng)
        if operands is None:
            continue
        return Problem(operands=operands, operation=op, result=evaluate(operands, op))
    logger.warning("No feasible problem for %s after %d tries, using fallback", cfg, max_retries)
    return fallback_problem()
