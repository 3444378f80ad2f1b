"""Shared fixtures: a recording emitter and scripted question sources."""

import asyncio
from typing import List, Optional

import pytest

from fichy_engine.config import create_config
from fichy_engine.emitter import Emitter
from fichy_engine.engine import RoundEngine
from fichy_engine.errors import QuestionGenerationFailed
from fichy_engine.models import Question
from fichy_engine.questions import QuestionSource
from fichy_engine.registry import RoomRegistry


class RecordingEmitter(Emitter):
    """Keeps every event with its target (player id or room code)."""

    def __init__(self):
        self.sent = []

    def send(self, player_id, event):
        self.sent.append((player_id, event))

    def broadcast(self, room, event):
        self.sent.append((room.code, event))

    def events(self, event_type, target=None):
        return [
            event for to, event in self.sent
            if event.type == event_type and (target is None or to == target)
        ]

    def clear(self):
        self.sent = []


class ScriptedQuestionSource(QuestionSource):
    """Hands out questions in order; an exception in the script is raised instead."""

    def __init__(self, script):
        self.script = list(script)
        self.calls: List[List[str]] = []
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, used_questions):
        self.calls.append(list(used_questions))
        if self.gate is not None:
            await self.gate.wait()
        item = self.script[(len(self.calls) - 1) % len(self.script)]
        if isinstance(item, Exception):
            raise item
        return item


SPIDER = Question(question="How many legs does a spider have?", answer="8", hint="Insects have six.")
SUM = Question(question="What is 2 + 2?", answer="4", hint="Basic arithmetic.")


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def question_source():
    return ScriptedQuestionSource([SUM, SPIDER])


@pytest.fixture
def failing_source():
    return ScriptedQuestionSource([QuestionGenerationFailed("service down")])


@pytest.fixture
def gated_source():
    return ScriptedQuestionSource([SUM])


@pytest.fixture
def fast_config():
    return create_config(answer_time=0.05, bet_time=0.05, rounds_per_game=2)


@pytest.fixture
def slow_config():
    return create_config(answer_time=60, bet_time=45, rounds_per_game=2)


@pytest.fixture
def make_engine(emitter, question_source):
    """Factory: make_engine(config, source=None) -> RoundEngine."""

    def factory(config, source=None, pool_seed=7):
        registry = RoomRegistry(config)
        return RoundEngine(registry, source or question_source, emitter, config, pool_seed=pool_seed)

    return factory
