import asyncio
from types import SimpleNamespace

import pytest

from pulse.models import (
    AppRole,
    Profile,
    QuestionType,
    Survey,
    SurveyQuestion,
    SurveyStatus,
    UserRole,
)
from pulse.models.base import build_engine, build_session_maker, init_db
from pulse.services.llm.types import LLMResponse


class FakeLLMClient:
    """Stands in for LLMClient: replays canned completions or raises queued errors."""

    def __init__(self, responses=None):
        self._responses = list(responses or [])
        self.requests = []

    def complete(self, request):
        self.requests.append(request)
        nxt = self._responses.pop(0) if self._responses else ""
        if isinstance(nxt, Exception):
            raise nxt
        return LLMResponse(text=str(nxt), provider="fake", model=request.model)


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pulse-test.db'}", per_task=True)
    asyncio.run(init_db(engine))
    yield build_session_maker(engine)
    asyncio.run(engine.dispose())


async def _seed(
    db,
    *,
    question_types=("rating", "text"),
    reviewers=(),
    user_id="emp-1",
    department="Engineering",
    survey_status=SurveyStatus.active,
):
    survey = Survey(title="Quarterly pulse", description="How are we doing?", status=survey_status)
    db.add(survey)
    await db.flush()
    questions = [
        SurveyQuestion(
            survey_id=survey.id,
            question_text=f"Question {index + 1}",
            question_type=QuestionType(question_type),
            required=True,
            order_index=index,
        )
        for index, question_type in enumerate(question_types)
    ]
    db.add_all(questions)
    profile = Profile(
        user_id=user_id,
        email=f"{user_id}@example.com",
        full_name="Alex Morgan",
        department=department,
    )
    db.add(profile)
    for reviewer in reviewers:
        db.add(UserRole(user_id=reviewer, role=AppRole.hr_manager))
    await db.commit()
    return SimpleNamespace(survey=survey, questions=questions, profile=profile)


@pytest.fixture
def seed(session_factory):
    """Create a survey, its questions, one employee profile and optional reviewers."""

    def _run(**kwargs):
        async def _inner():
            async with session_factory() as db:
                return await _seed(db, **kwargs)

        return asyncio.run(_inner())

    return _run


@pytest.fixture
def fake_llm():
    return FakeLLMClient
