"""Survey submission: profile resolution, response ingestion and per-answer flagging."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pulse.config import get_settings
from pulse.models.flag import ResponseFlag
from pulse.models.profile import Profile
from pulse.models.response import SentimentAnalysis, SurveyResponse
from pulse.models.survey import QuestionType, Survey, SurveyQuestion
from pulse.services.llm.client import LLMClient
from pulse.services.pipeline import analyze_and_flag_safely, flag_low_rating, notify_reviewers

logger = logging.getLogger(__name__)

SUBMISSION_NOTIFICATION_TITLE = "New Survey Submission"
SUBMISSION_NOTIFICATION_MESSAGE = "An employee has completed a survey."
SUBMISSION_NOTIFICATION_TYPE = "survey_submission"

DEFAULT_DEPARTMENT = "General"
DEFAULT_ROLE = "employee"
DEFAULT_EMAIL = "unknown@example.com"


class SubmissionError(ValueError):
    """The submitted answers do not fit the survey."""


@dataclass
class AnswerInput:
    question_id: int
    value: str = ""
    score: Optional[int] = None


@dataclass
class SubmissionOutcome:
    responses: List[SurveyResponse] = field(default_factory=list)
    # Every flag this submission raised, low-rating and negative-sentiment, in answer order.
    flags: List[ResponseFlag] = field(default_factory=list)
    analyses: Dict[int, SentimentAnalysis] = field(default_factory=dict)
    queued_response_ids: List[int] = field(default_factory=list)


async def ensure_profile(
    db: AsyncSession,
    *,
    user_id: str,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    department: Optional[str] = None,
    role: Optional[str] = None,
) -> Profile:
    """Return the profile for an auth user, creating it from signup metadata if missing."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if profile is not None:
        return profile

    local_part = email.split("@")[0] if email else ""
    profile = Profile(
        user_id=user_id,
        email=email or DEFAULT_EMAIL,
        full_name=full_name or local_part or "User",
        department=department or DEFAULT_DEPARTMENT,
        role=role or DEFAULT_ROLE,
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    logger.info("Created profile %s for user %s", profile.id, user_id)
    return profile


def _normalize_answers(
    questions: Sequence[SurveyQuestion],
    answers: Sequence[AnswerInput],
) -> List[tuple]:
    by_id = {q.id: q for q in questions}
    seen = set()
    normalized = []
    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None:
            raise SubmissionError(f"Question {answer.question_id} does not belong to this survey")
        if answer.question_id in seen:
            raise SubmissionError(f"Question {answer.question_id} answered more than once")
        seen.add(answer.question_id)

        value = str(answer.value or "").strip()
        score = answer.score
        if question.question_type == QuestionType.rating:
            if score is None and value.isdigit():
                score = int(value)
            if score is None:
                raise SubmissionError(f"Question {question.id} requires a rating between 1 and 5")
            if not 1 <= score <= 5:
                raise SubmissionError(f"Rating for question {question.id} must be between 1 and 5")
            value = str(score)
        else:
            score = None
        normalized.append((question, value, score))

    answered = {q.id for q, value, _ in normalized if value}
    missing = [q.id for q in questions if q.required and q.id not in answered]
    if missing:
        raise SubmissionError(f"Missing answers for required questions: {missing}")
    return normalized


async def submit_survey(
    db: AsyncSession,
    *,
    survey: Survey,
    profile: Profile,
    answers: Sequence[AnswerInput],
    client: Optional[LLMClient] = None,
) -> SubmissionOutcome:
    """Persist every answer, then run the sentiment or low-rating path for each.

    Each step commits on its own; a failed sentiment call never undoes a
    stored response.
    """
    questions_result = await db.execute(
        select(SurveyQuestion).where(SurveyQuestion.survey_id == survey.id).order_by(SurveyQuestion.order_index)
    )
    questions = questions_result.scalars().all()
    normalized = _normalize_answers(questions, answers)
    dispatch_to_worker = get_settings().dispatch_sentiment_to_worker

    outcome = SubmissionOutcome()
    for question, value, score in normalized:
        response = SurveyResponse(
            survey_id=survey.id,
            question_id=question.id,
            employee_id=profile.id,
            response_value=value,
            response_score=score,
        )
        db.add(response)
        await db.commit()
        await db.refresh(response)
        outcome.responses.append(response)

        if question.question_type == QuestionType.text and value:
            if dispatch_to_worker:
                from pulse.workers.tasks import analyze_response_sentiment

                analyze_response_sentiment.delay(response.id, value)
                outcome.queued_response_ids.append(response.id)
            else:
                analysis, negative_flag = await analyze_and_flag_safely(db, response.id, value, client)
                if analysis is not None:
                    outcome.analyses[response.id] = analysis
                if negative_flag is not None:
                    outcome.flags.append(negative_flag)

        flag = await flag_low_rating(
            db,
            question_type=question.question_type,
            score=score,
            employee_id=profile.id,
            survey_id=survey.id,
        )
        if flag is not None:
            outcome.flags.append(flag)

    await notify_reviewers(
        db,
        title=SUBMISSION_NOTIFICATION_TITLE,
        message=SUBMISSION_NOTIFICATION_MESSAGE,
        notification_type=SUBMISSION_NOTIFICATION_TYPE,
    )
    logger.info(
        "Survey %s submitted by profile %s: %s responses, %s flags",
        survey.id,
        profile.id,
        len(outcome.responses),
        len(outcome.flags),
    )
    return outcome
