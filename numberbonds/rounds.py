"""Round builder — a batch of problems with distinct results plus shuffled answer tiles."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from numberbonds.generator import Problem, fallback_problem, generate_problem, new_id

if TYPE_CHECKING:
    from numberbonds.config import DifficultyConfig

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 100


@dataclass(frozen=True)
class AnswerTile:
    value: int
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class Round:
    problems: tuple[Problem, ...] = ()
    answers: tuple[AnswerTile, ...] = ()
    needs_wider_range: bool = False

    def problem(self, problem_id: str) -> Problem | None:
        return next((p for p in self.problems if p.id == problem_id), None)

    def answer(self, answer_id: str) -> AnswerTile | None:
        return next((a for a in self.answers if a.id == answer_id), None)

    def without(self, *ids: str) -> Round:
        """Copy of the round with the given problem/answer ids removed."""
        drop = set(ids)
        return replace(
            self,
            problems=tuple(p for p in self.problems if p.id not in drop),
            answers=tuple(a for a in self.answers if a.id not in drop),
        )

    @property
    def is_empty(self) -> bool:
        return not self.problems


def build_round(cfg: DifficultyConfig, rng: random.Random | None = None, *,
                max_attempts: int = MAX_ATTEMPTS, decoy_count: int = 0) -> Round:
    """Build a round of ``cfg.problem_count`` problems with pairwise-distinct results.

    When the attempt budget runs out first, the partial round is returned with
    ``needs_wider_range`` set so the caller can widen the number range.
    """
    rng = rng or random.Random()
    problems: list[Problem] = []
    results: list[int] = []
    signatures: set = set()
    attempts = 0

    while len(problems) < cfg.problem_count and attempts < max_attempts:
        attempts += 1
        problem = generate_problem(cfg, rng)
        if problem.result in results or problem.signature in signatures:
            continue
        problems.append(problem)
        results.append(problem.result)
        signatures.add(problem.signature)

    short = len(problems) < cfg.problem_count
    if short:
        logger.warning("Only %d/%d unique problems after %d attempts",
                       len(problems), cfg.problem_count, attempts)
    if not problems:
        fallback = fallback_problem()
        problems.append(fallback)
        results.append(fallback.result)

    answers = [AnswerTile(value=value) for value in results]
    for _ in range(max(0, decoy_count)):
        answers.append(AnswerTile(value=rng.choice(results)))

    rng.shuffle(problems)
    rng.shuffle(answers)
    logger.info("Built round: %s", ", ".join(f"{p} = {p.result}" for p in problems))
    return Round(problems=tuple(problems), answers=tuple(answers), needs_wider_range=short)
