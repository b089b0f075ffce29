"""Sentiment & flag engine: persists verdicts, creates flags and notifies reviewers."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from pulse.models.flag import PENDING_NEGATIVE_WHERE, FlagIssueType, FlagStatus, ResponseFlag
from pulse.models.notification import Notification
from pulse.models.profile import AppRole, UserRole
from pulse.models.response import SentimentAnalysis, SurveyResponse
from pulse.models.survey import QuestionType
from pulse.services.flagging import (
    NEGATIVE_FEEDBACK_NOTIFICATION_TITLE,
    NEGATIVE_FEEDBACK_NOTIFICATION_TYPE,
    FlagDraft,
    low_rating_flag,
    negative_feedback_message,
    negative_sentiment_flag,
)
from pulse.services.llm.client import LLMClient
from pulse.services.llm.types import LLMProviderError
from pulse.services.sentiment import SentimentVerdict, classify_sentiment

logger = logging.getLogger(__name__)


async def reviewer_user_ids(db: AsyncSession) -> List[str]:
    result = await db.execute(
        select(UserRole.user_id).where(UserRole.role == AppRole.hr_manager)
    )
    return [row for row in result.scalars().all()]


async def notify_reviewers(
    db: AsyncSession,
    *,
    title: str,
    message: str,
    notification_type: str,
    related_id: Optional[int] = None,
) -> int:
    """Insert one notification per HR manager. Returns the number created."""
    recipients = await reviewer_user_ids(db)
    if not recipients:
        return 0
    for user_id in recipients:
        db.add(
            Notification(
                recipient_id=user_id,
                title=title,
                message=message,
                type=notification_type,
                related_id=related_id,
            )
        )
    await db.commit()
    return len(recipients)


async def store_sentiment(db: AsyncSession, response_id: int, verdict: SentimentVerdict) -> SentimentAnalysis:
    record = SentimentAnalysis(
        response_id=response_id,
        sentiment=verdict.sentiment,
        confidence=verdict.confidence,
        key_themes=list(verdict.key_themes),
        ai_summary=verdict.summary,
        verdict_source=verdict.kind.value,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


_CONDITIONAL_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def insert_negative_flag(
    db: AsyncSession,
    draft: FlagDraft,
    *,
    employee_id: int,
    survey_id: int,
) -> Optional[ResponseFlag]:
    """Insert a pending negative-sentiment flag unless one already holds the slot.

    Backed by the partial unique index on response_flags, so two concurrent
    analyses for the same employee and survey cannot both insert. Dialects
    without ON CONFLICT support rely on the caller's pending-flag pre-check.
    """
    dialect = db.get_bind().dialect.name
    insert = _CONDITIONAL_INSERTS.get(dialect)
    if insert is None:
        logger.warning("No conditional insert for dialect %s, inserting flag without conflict guard", dialect)
        flag = ResponseFlag(status=FlagStatus.pending, **draft.row_fields(employee_id=employee_id, survey_id=survey_id))
        db.add(flag)
        await db.commit()
        await db.refresh(flag)
        return flag
    stmt = (
        insert(ResponseFlag)
        .values(status=FlagStatus.pending, **draft.row_fields(employee_id=employee_id, survey_id=survey_id))
        .on_conflict_do_nothing(index_elements=["employee_id", "survey_id"], index_where=PENDING_NEGATIVE_WHERE)
        .returning(ResponseFlag.id)
    )
    result = await db.execute(stmt)
    flag_id = result.scalar_one_or_none()
    await db.commit()
    if flag_id is None:
        logger.info(
            "Pending negative_sentiment flag inserted concurrently for employee=%s survey=%s, skipping duplicate",
            employee_id,
            survey_id,
        )
        return None
    return await db.get(ResponseFlag, flag_id)


async def pending_negative_flag_exists(db: AsyncSession, *, employee_id: int, survey_id: int) -> bool:
    result = await db.execute(
        select(ResponseFlag.id)
        .where(ResponseFlag.employee_id == employee_id)
        .where(ResponseFlag.survey_id == survey_id)
        .where(ResponseFlag.issue_type == FlagIssueType.negative_sentiment)
        .where(ResponseFlag.status == FlagStatus.pending)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def flag_negative_sentiment(
    db: AsyncSession,
    *,
    response: SurveyResponse,
    analysis: SentimentAnalysis,
    response_text: str,
) -> Optional[ResponseFlag]:
    draft = negative_sentiment_flag(
        sentiment=analysis.sentiment,
        confidence=analysis.confidence,
        ai_summary=analysis.ai_summary,
        response_text=response_text,
    )
    if draft is None:
        logger.info("No flag needed. Sentiment: %s, Confidence: %s", analysis.sentiment, analysis.confidence)
        return None

    logger.info("Negative sentiment detected on response %s, creating flag", response.id)
    if await pending_negative_flag_exists(db, employee_id=response.employee_id, survey_id=response.survey_id):
        logger.info(
            "Pending negative_sentiment flag already exists for employee=%s survey=%s, skipping duplicate",
            response.employee_id,
            response.survey_id,
        )
        return None

    flag = await insert_negative_flag(db, draft, employee_id=response.employee_id, survey_id=response.survey_id)
    if flag is None:
        return None
    notified = await notify_reviewers(
        db,
        title=NEGATIVE_FEEDBACK_NOTIFICATION_TITLE,
        message=negative_feedback_message(analysis.confidence, analysis.ai_summary),
        notification_type=NEGATIVE_FEEDBACK_NOTIFICATION_TYPE,
        related_id=flag.id,
    )
    logger.info("Response flag %s created, %s HR managers notified", flag.id, notified)
    return flag


async def flag_low_rating(
    db: AsyncSession,
    *,
    question_type: QuestionType,
    score: Optional[int],
    employee_id: int,
    survey_id: int,
) -> Optional[ResponseFlag]:
    """Low ratings are flagged every time and without notifications."""
    draft = low_rating_flag(question_type, score)
    if draft is None:
        return None
    flag = ResponseFlag(status=FlagStatus.pending, **draft.row_fields(employee_id=employee_id, survey_id=survey_id))
    db.add(flag)
    await db.commit()
    await db.refresh(flag)
    logger.info("Low rating flag %s created (score=%s)", flag.id, score)
    return flag


async def analyze_and_flag(
    db: AsyncSession,
    response_id: int,
    response_text: str,
    client: Optional[LLMClient] = None,
) -> Tuple[Optional[SentimentAnalysis], Optional[ResponseFlag]]:
    """Classify one text answer, store the verdict and apply the negative-sentiment policy.

    Returns the stored verdict and the flag it raised, if any. The verdict is
    None when the response does not exist. Gateway failures raise
    LLMProviderError before anything is written.
    """
    response = await db.get(SurveyResponse, response_id)
    if response is None:
        logger.error("Response %s not found, skipping sentiment analysis", response_id)
        return None, None

    existing = await db.execute(
        select(SentimentAnalysis).where(SentimentAnalysis.response_id == response_id)
    )
    analysis = existing.scalar_one_or_none()
    if analysis is not None:
        logger.info("Response %s already analysed, returning stored verdict", response_id)
        return analysis, None

    logger.info("Analyzing sentiment for response: %s", response_id)
    verdict = await asyncio.to_thread(classify_sentiment, response_text, client)
    analysis = await store_sentiment(db, response_id, verdict)
    flag = await flag_negative_sentiment(db, response=response, analysis=analysis, response_text=response_text)
    logger.info("Sentiment analysis completed for response %s: %s", response_id, analysis.sentiment)
    return analysis, flag


async def analyze_and_flag_safely(
    db: AsyncSession,
    response_id: int,
    response_text: str,
    client: Optional[LLMClient] = None,
) -> Tuple[Optional[SentimentAnalysis], Optional[ResponseFlag]]:
    """Like analyze_and_flag, but a gateway failure only means "no sentiment"."""
    try:
        return await analyze_and_flag(db, response_id, response_text, client)
    except LLMProviderError as exc:
        logger.error("Error analyzing sentiment for response %s: %s", response_id, exc)
        return None, None


async def analyze_response(
    db: AsyncSession,
    response_id: int,
    response_text: str,
    client: Optional[LLMClient] = None,
) -> Optional[SentimentAnalysis]:
    analysis, _ = await analyze_and_flag(db, response_id, response_text, client)
    return analysis


async def analyze_response_safely(
    db: AsyncSession,
    response_id: int,
    response_text: str,
    client: Optional[LLMClient] = None,
) -> Optional[SentimentAnalysis]:
    analysis, _ = await analyze_and_flag_safely(db, response_id, response_text, client)
    return analysis
