"""Shared fixtures: a deterministic engine on a virtual clock."""

import random

import pytest

from numberbonds.config import AppConfig
from numberbonds.effects import RecordingEffects
from numberbonds.engine import MatchEngine
from numberbonds.storage import MemoryStore
from numberbonds.timers import ManualScheduler


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def effects():
    return RecordingEffects()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(scheduler, effects, store):
    eng = MatchEngine(AppConfig(), store=store, effects=effects,
                      scheduler=scheduler, rng=random.Random(7))
    eng.start()
    yield eng
    eng.stop()


def solve(engine, scheduler, settle=True):
    """Match the first available problem with its answer."""
    view = engine.view()
    problem = next(p for p in view.round.problems if p.id not in view.removing)
    answer = next(a for a in view.round.answers
                  if a.value == problem.result and a.id not in view.removing)
    engine.select_problem(problem.id)
    result = engine.select_answer(answer.id)
    if settle:
        scheduler.advance(engine.cfg.rounds.removal_grace)
    return result


def miss(engine):
    """Pair the first available problem with a wrong answer."""
    view = engine.view()
    problem = next(p for p in view.round.problems if p.id not in view.removing)
    answer = next(a for a in view.round.answers
                  if a.value != problem.result and a.id not in view.removing)
    engine.select_problem(problem.id)
    return engine.select_answer(answer.id)
