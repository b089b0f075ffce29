"""Survey API routes - authoring, listing and employee submissions."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from pulse.api.deps import get_llm_client
from pulse.models.base import get_db
from pulse.models.flag import FlagIssueType
from pulse.models.survey import Survey, SurveyQuestion, SurveyStatus, QuestionType
from pulse.services.llm.client import LLMClient
from pulse.services.submission import (
    AnswerInput,
    SubmissionError,
    ensure_profile,
    submit_survey,
)

router = APIRouter()


# ============================================================================
# Pydantic Schemas
# ============================================================================

class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=1, max_length=500)
    question_type: Literal["rating", "text"] = "rating"
    required: bool = True
    options: Optional[dict] = None

    @field_validator("question_text", mode="before")
    @classmethod
    def strip_question_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class SurveyCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    survey_type: str = "engagement"
    created_by: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    questions: List[QuestionCreate] = Field(min_length=1)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text_fields(cls, value):
        return value.strip() if isinstance(value, str) else value


class QuestionResponse(BaseModel):
    id: int
    survey_id: int
    question_text: str
    question_type: str
    required: bool
    options: Optional[dict] = None
    order_index: int


class SurveyResponseModel(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: str
    survey_type: str
    created_by: Optional[str]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    created_at: datetime
    question_count: int = 0


class AnswerSubmission(BaseModel):
    question_id: int
    value: str = ""
    score: Optional[int] = Field(default=None, ge=1, le=5)


class SubmissionRequest(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    department: Optional[str] = None
    answers: List[AnswerSubmission] = Field(min_length=1)


class SubmittedResponse(BaseModel):
    id: int
    question_id: int
    response_value: str
    response_score: Optional[int]
    sentiment: Optional[str] = None


class SubmissionResult(BaseModel):
    survey_id: int
    employee_id: int
    responses: List[SubmittedResponse]
    low_rating_flag_ids: List[int] = Field(default_factory=list)
    negative_sentiment_flag_ids: List[int] = Field(default_factory=list)
    queued_for_analysis: List[int] = Field(default_factory=list)


# ============================================================================
# Internal Helpers
# ============================================================================

def _to_question_response(question: SurveyQuestion) -> QuestionResponse:
    return QuestionResponse(
        id=question.id,
        survey_id=question.survey_id,
        question_text=question.question_text,
        question_type=question.question_type.value,
        required=bool(question.required),
        options=question.options,
        order_index=question.order_index,
    )


def _to_survey_response(survey: Survey, question_count: int) -> SurveyResponseModel:
    return SurveyResponseModel(
        id=survey.id,
        title=survey.title,
        description=survey.description,
        status=survey.status.value,
        survey_type=survey.survey_type,
        created_by=survey.created_by,
        start_date=survey.start_date,
        end_date=survey.end_date,
        created_at=survey.created_at,
        question_count=question_count,
    )


async def _get_survey_or_404(db: AsyncSession, survey_id: int) -> Survey:
    result = await db.execute(select(Survey).where(Survey.id == survey_id))
    survey = result.scalar_one_or_none()
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")
    return survey


async def _questions_for(db: AsyncSession, survey_id: int) -> List[SurveyQuestion]:
    result = await db.execute(
        select(SurveyQuestion)
        .where(SurveyQuestion.survey_id == survey_id)
        .order_by(SurveyQuestion.order_index)
    )
    return list(result.scalars().all())


# ============================================================================
# Survey CRUD
# ============================================================================

@router.post("", response_model=SurveyResponseModel)
async def create_survey(
    data: SurveyCreate,
    db: AsyncSession = Depends(get_db)
):
    """Publish a survey together with its ordered questions."""
    survey = Survey(
        title=data.title,
        description=data.description,
        status=SurveyStatus.active,
        survey_type=data.survey_type,
        created_by=data.created_by,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    db.add(survey)
    await db.flush()

    for index, question in enumerate(data.questions):
        db.add(
            SurveyQuestion(
                survey_id=survey.id,
                question_text=question.question_text,
                question_type=QuestionType(question.question_type),
                required=question.required,
                options=question.options,
                order_index=index,
            )
        )

    await db.commit()
    await db.refresh(survey)
    return _to_survey_response(survey, len(data.questions))


@router.get("", response_model=List[SurveyResponseModel])
async def list_surveys(
    status: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """List surveys, newest first."""
    query = select(Survey)
    if status:
        try:
            query = query.where(Survey.status == SurveyStatus(status))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown survey status: {status}")
    result = await db.execute(query.order_by(Survey.created_at.desc(), Survey.id.desc()))
    surveys = result.scalars().all()

    responses = []
    for survey in surveys:
        questions = await _questions_for(db, survey.id)
        responses.append(_to_survey_response(survey, len(questions)))
    return responses


@router.get("/{survey_id}", response_model=SurveyResponseModel)
async def get_survey(survey_id: int, db: AsyncSession = Depends(get_db)):
    survey = await _get_survey_or_404(db, survey_id)
    questions = await _questions_for(db, survey_id)
    return _to_survey_response(survey, len(questions))


@router.delete("/{survey_id}")
async def delete_survey(survey_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a survey with its questions, responses and flags."""
    survey = await _get_survey_or_404(db, survey_id)
    await db.delete(survey)
    await db.commit()
    return {"deleted": True}


@router.get("/{survey_id}/questions", response_model=List[QuestionResponse])
async def list_questions(survey_id: int, db: AsyncSession = Depends(get_db)):
    await _get_survey_or_404(db, survey_id)
    return [_to_question_response(q) for q in await _questions_for(db, survey_id)]


# ============================================================================
# Submissions
# ============================================================================

@router.post("/{survey_id}/responses", response_model=SubmissionResult)
async def submit_responses(
    survey_id: int,
    data: SubmissionRequest,
    db: AsyncSession = Depends(get_db),
    client: LLMClient = Depends(get_llm_client),
):
    """Store an employee's answers; text answers are sentiment-scored, low ratings flagged."""
    survey = await _get_survey_or_404(db, survey_id)
    if survey.status != SurveyStatus.active:
        raise HTTPException(status_code=400, detail="Survey is not accepting responses")

    profile = await ensure_profile(
        db,
        user_id=data.user_id,
        email=data.email,
        full_name=data.full_name,
        department=data.department,
    )
    try:
        outcome = await submit_survey(
            db,
            survey=survey,
            profile=profile,
            answers=[AnswerInput(question_id=a.question_id, value=a.value, score=a.score) for a in data.answers],
            client=client,
        )
    except SubmissionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return SubmissionResult(
        survey_id=survey.id,
        employee_id=profile.id,
        responses=[
            SubmittedResponse(
                id=r.id,
                question_id=r.question_id,
                response_value=r.response_value,
                response_score=r.response_score,
                sentiment=outcome.analyses[r.id].sentiment if r.id in outcome.analyses else None,
            )
            for r in outcome.responses
        ],
        low_rating_flag_ids=[f.id for f in outcome.flags if f.issue_type == FlagIssueType.low_rating],
        negative_sentiment_flag_ids=[
            f.id for f in outcome.flags if f.issue_type == FlagIssueType.negative_sentiment
        ],
        queued_for_analysis=outcome.queued_response_ids,
    )
