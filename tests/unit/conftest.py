"""
Unit test fixtures. Engine only; the in-memory store stands in for persistence.
"""
import pytest_asyncio

from progression.session import LearnerSession
from progression.state_machine import ProgressionStateMachine


@pytest_asyncio.fixture
async def machine(outline, store):
    return await ProgressionStateMachine.load(outline=outline, store=store, learner_id="learner-1")


@pytest_asyncio.fixture
async def session(outline, store):
    s = await LearnerSession.open(store=store, outline=outline, learner_id="learner-1", poll_interval=0.01)
    yield s
    await s.close()
