"""Session statistics — immutable snapshots, one per transition."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from numberbonds.generator import Problem


@dataclass(frozen=True)
class SessionStats:
    total_solved: int = 0
    fast_solves: int = 0
    max_streak: int = 0
    current_streak: int = 0
    play_time_seconds: int = 0
    level: int = 1
    operations_used: frozenset[str] = field(default_factory=frozenset)
    max_variables: int = 0

    def solved(self, problem: Problem, fast: bool) -> SessionStats:
        """Stats after a correct match of ``problem``."""
        streak = self.current_streak + 1
        return replace(
            self,
            total_solved=self.total_solved + 1,
            fast_solves=self.fast_solves + (1 if fast else 0),
            current_streak=streak,
            max_streak=max(self.max_streak, streak),
            operations_used=self.operations_used | {problem.operation.value},
            max_variables=max(self.max_variables, len(problem.operands)),
        )

    def missed(self) -> SessionStats:
        return replace(self, current_streak=0)

    def ticked(self, seconds: int = 1) -> SessionStats:
        return replace(self, play_time_seconds=self.play_time_seconds + seconds)

    def leveled(self, level: int) -> SessionStats:
        return replace(self, level=max(self.level, level))
