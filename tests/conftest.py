"""Shared fixtures: a controllable clock and sessions at various stages."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest

from asrgot.core.logging_config import ROOT_LOGGER_NAME
from asrgot.engine import ReasoningSession
from asrgot.graph.store import ReasoningGraph

START = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

HYPOTHESES = [
    {
        "content": "Sleep deprivation reduces working memory capacity",
        "falsification_criteria": "No change in span tasks after 24h without sleep",
        "disciplinary_tags": ["neuroscience"],
    },
    {
        "content": "Caffeine intake masks fatigue effects on reaction time",
        "falsification_criteria": "Reaction times equal with and without caffeine",
        "disciplinary_tags": ["pharmacology"],
    },
    {
        "content": "Shift workers report more attention lapses",
        "falsification_criteria": "Lapse rates match day workers",
        "disciplinary_tags": ["occupational_health"],
    },
]


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, *, days: float = 0.0) -> None:
        self.current += timedelta(days=days)


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    # The CLI detaches the package logger from the root; restore it for caplog
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def graph(clock: FixedClock) -> ReasoningGraph:
    return ReasoningGraph(clock=clock)


@pytest.fixture
def session(clock: FixedClock) -> ReasoningSession:
    return ReasoningSession(clock=clock, session_id="test-session")


@pytest.fixture
def decomposed_session(session: ReasoningSession) -> ReasoningSession:
    session.initialize("Study X", [0.8, 0.8, 0.8, 0.8])
    session.decompose()
    return session


@pytest.fixture
def hypothesis_session(decomposed_session: ReasoningSession) -> ReasoningSession:
    decomposed_session.generate_hypotheses("2.1", HYPOTHESES)
    return decomposed_session
