"""Flagging policy for survey answers (negative sentiment and low ratings)."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from pulse.models.flag import FLAG_DESCRIPTION_MAX_CHARS, FlagIssueType, FlagSeverity
from pulse.models.survey import QuestionType
from pulse.services.scoring import RATING_SCALE_MAX, round_half_up

NEGATIVE_CONFIDENCE_THRESHOLD = 0.5
CRITICAL_CONFIDENCE_THRESHOLD = 0.8
LOW_RATING_MAX_SCORE = 2
DEFAULT_THEME = "general feedback"
FLAGGED_BY_SYSTEM = "system"

NEGATIVE_FEEDBACK_NOTIFICATION_TITLE = "Negative Feedback Alert"
NEGATIVE_FEEDBACK_NOTIFICATION_TYPE = "negative_feedback"
NOTIFICATION_SUMMARY_CHARS = 100

_JSON_BLOB_RE = re.compile(r"\{[\s\S]*\}")


@dataclass
class FlagDraft:
    severity: FlagSeverity
    issue_type: FlagIssueType
    description: str

    def row_fields(self, *, employee_id: int, survey_id: int) -> Dict[str, Any]:
        return {
            "employee_id": employee_id,
            "survey_id": survey_id,
            "severity": self.severity,
            "issue_type": self.issue_type,
            "description": self.description,
            "flagged_by": FLAGGED_BY_SYSTEM,
        }


class DescriptionSource(str, Enum):
    parsed = "parsed"
    fallback = "fallback"


@dataclass
class DescriptionParts:
    theme: str
    summary: str
    source: DescriptionSource


class _EmbeddedSummary(BaseModel):
    summary: Optional[str] = None
    key_themes: List[str] = []


def should_flag_negative(sentiment: str, confidence: Optional[float]) -> bool:
    return sentiment == "negative" and float(confidence or 0.0) > NEGATIVE_CONFIDENCE_THRESHOLD


def severity_for_confidence(confidence: float) -> FlagSeverity:
    return FlagSeverity.critical if confidence > CRITICAL_CONFIDENCE_THRESHOLD else FlagSeverity.warning


def should_flag_low_rating(question_type: QuestionType, score: Optional[int]) -> bool:
    return question_type == QuestionType.rating and isinstance(score, int) and score <= LOW_RATING_MAX_SCORE


def severity_for_score(score: int) -> FlagSeverity:
    return FlagSeverity.critical if score == 1 else FlagSeverity.warning


def description_parts(ai_summary: Optional[str], response_text: str) -> DescriptionParts:
    """Pick the theme and summary embedded in a negative-sentiment flag.

    The flag quotes the employee's own answer under the generic theme. Only a
    summary that carries a JSON object (the model nested its whole answer in
    the summary field) overrides them with the embedded summary and first theme.
    """
    summary_text = str(ai_summary or "").strip()
    match = _JSON_BLOB_RE.search(summary_text)
    if match:
        try:
            embedded = _EmbeddedSummary.model_validate(json.loads(match.group(0)))
        except (ValueError, ValidationError):
            return DescriptionParts(theme=DEFAULT_THEME, summary=response_text, source=DescriptionSource.fallback)
        return DescriptionParts(
            theme=embedded.key_themes[0] if embedded.key_themes else DEFAULT_THEME,
            summary=embedded.summary or response_text,
            source=DescriptionSource.parsed,
        )
    return DescriptionParts(theme=DEFAULT_THEME, summary=response_text, source=DescriptionSource.fallback)


def format_negative_description(parts: DescriptionParts) -> str:
    return f"Analysis detected an issue in {parts.theme}: {parts.summary}"[:FLAG_DESCRIPTION_MAX_CHARS]


def negative_sentiment_flag(
    *,
    sentiment: str,
    confidence: Optional[float],
    ai_summary: Optional[str],
    response_text: str,
) -> Optional[FlagDraft]:
    if not should_flag_negative(sentiment, confidence):
        return None
    parts = description_parts(ai_summary, response_text)
    return FlagDraft(
        severity=severity_for_confidence(float(confidence)),
        issue_type=FlagIssueType.negative_sentiment,
        description=format_negative_description(parts),
    )


def low_rating_flag(question_type: QuestionType, score: Optional[int]) -> Optional[FlagDraft]:
    if not should_flag_low_rating(question_type, score):
        return None
    return FlagDraft(
        severity=severity_for_score(score),
        issue_type=FlagIssueType.low_rating,
        description=f"Low rating submitted: {score}/{RATING_SCALE_MAX}",
    )


def negative_feedback_message(confidence: float, summary: Optional[str]) -> str:
    pct = round_half_up(float(confidence) * 100)
    return f"Negative feedback detected with {pct}% confidence: {str(summary or '')[:NOTIFICATION_SUMMARY_CHARS]}"
