"""Externally triggered function endpoints (sentiment analysis)."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from pulse.api.deps import get_llm_client
from pulse.models.base import get_db
from pulse.models.response import SentimentAnalysis
from pulse.services.llm.client import LLMClient
from pulse.services.llm.types import LLMProviderError, LLMQuotaExceededError, LLMRateLimitError
from pulse.services.pipeline import analyze_response

logger = logging.getLogger(__name__)

router = APIRouter()


class AnalyzeSentimentRequest(BaseModel):
    response_id: int = Field(alias="responseId")
    response_text: str = Field(alias="responseText", min_length=1)


class SentimentAnalysisResponse(BaseModel):
    id: int
    response_id: int
    sentiment: str
    confidence: Optional[float]
    key_themes: List[str]
    ai_summary: Optional[str]
    verdict_source: str
    analyzed_at: Optional[datetime]


class AnalyzeSentimentResult(BaseModel):
    success: bool
    analysis: SentimentAnalysisResponse


def _to_analysis_response(record: SentimentAnalysis) -> SentimentAnalysisResponse:
    return SentimentAnalysisResponse(
        id=record.id,
        response_id=record.response_id,
        sentiment=record.sentiment,
        confidence=record.confidence,
        key_themes=list(record.key_themes or []),
        ai_summary=record.ai_summary,
        verdict_source=record.verdict_source,
        analyzed_at=record.analyzed_at,
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/analyze-sentiment", response_model=AnalyzeSentimentResult)
async def analyze_sentiment(
    data: AnalyzeSentimentRequest,
    db: AsyncSession = Depends(get_db),
    client: LLMClient = Depends(get_llm_client),
):
    """Score one stored text answer and apply the negative-feedback flagging policy."""
    try:
        record = await analyze_response(db, data.response_id, data.response_text, client)
    except (LLMRateLimitError, LLMQuotaExceededError) as exc:
        return _error(exc.status_code, str(exc))
    except LLMProviderError as exc:
        logger.error("Error in analyze-sentiment function: %s", exc)
        return _error(500, str(exc))

    if record is None:
        return _error(404, "Response not found")
    return AnalyzeSentimentResult(success=True, analysis=_to_analysis_response(record))
