"""Dashboard read routes. Aggregation lives in pulse.services.dashboard."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import List, Dict, Any

from pulse.models.base import get_db
from pulse.models.flag import ResponseFlag, FlagStatus
from pulse.models.profile import Profile
from pulse.models.response import SurveyResponse, SentimentAnalysis
from pulse.models.survey import Survey, SurveyQuestion
from pulse.services.dashboard import (
    department_breakdown,
    engagement_trend,
    negative_feedback_by_department,
    question_analysis,
    sentiment_distribution,
    survey_metrics,
)

router = APIRouter()


async def _ensure_survey(db: AsyncSession, survey_id: int) -> None:
    survey = await db.get(Survey, survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")


async def _response_rows(db: AsyncSession, survey_id: int) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(SurveyResponse, Profile, SentimentAnalysis.sentiment)
        .join(Profile, Profile.id == SurveyResponse.employee_id)
        .outerjoin(SentimentAnalysis, SentimentAnalysis.response_id == SurveyResponse.id)
        .where(SurveyResponse.survey_id == survey_id)
        .order_by(SurveyResponse.created_at, SurveyResponse.id)
    )
    return [
        {
            "id": response.id,
            "question_id": response.question_id,
            "employee_id": response.employee_id,
            "response_value": response.response_value,
            "response_score": response.response_score,
            "created_at": response.created_at,
            "sentiment": sentiment,
            "employee_name": profile.full_name,
            "department": profile.department,
        }
        for response, profile, sentiment in result.all()
    ]


@router.get("/{survey_id}/dashboard/departments")
async def get_department_breakdown(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _ensure_survey(db, survey_id)
    rows = await _response_rows(db, survey_id)
    return department_breakdown((r["department"], r["response_score"]) for r in rows)


@router.get("/{survey_id}/dashboard/engagement")
async def get_engagement_trend(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _ensure_survey(db, survey_id)
    rows = await _response_rows(db, survey_id)
    return engagement_trend((r["created_at"], r["response_score"]) for r in rows)


@router.get("/{survey_id}/dashboard/negative-by-department")
async def get_negative_feedback_by_department(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _ensure_survey(db, survey_id)
    result = await db.execute(
        select(Profile.department)
        .select_from(ResponseFlag)
        .outerjoin(Profile, Profile.id == ResponseFlag.employee_id)
        .where(ResponseFlag.survey_id == survey_id, ResponseFlag.status == FlagStatus.pending)
    )
    return negative_feedback_by_department(result.scalars().all())


@router.get("/{survey_id}/dashboard/metrics")
async def get_survey_metrics(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _ensure_survey(db, survey_id)
    rows = await _response_rows(db, survey_id)
    flag_count = await db.execute(
        select(func.count(ResponseFlag.id)).where(
            ResponseFlag.survey_id == survey_id, ResponseFlag.status == FlagStatus.pending
        )
    )
    return survey_metrics(rows, flag_count.scalar() or 0)


@router.get("/{survey_id}/dashboard/sentiment")
async def get_sentiment_distribution(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _ensure_survey(db, survey_id)
    rows = await _response_rows(db, survey_id)
    return sentiment_distribution((r["sentiment"], r["response_score"]) for r in rows)


@router.get("/{survey_id}/dashboard/questions")
async def get_question_analysis(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _ensure_survey(db, survey_id)
    result = await db.execute(
        select(SurveyQuestion).where(SurveyQuestion.survey_id == survey_id).order_by(SurveyQuestion.order_index)
    )
    questions = [
        {"id": q.id, "question_text": q.question_text, "question_type": q.question_type.value}
        for q in result.scalars().all()
    ]
    return question_analysis(questions, await _response_rows(db, survey_id))
