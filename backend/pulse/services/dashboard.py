"""Read models behind the HR dashboard and analytics pages.

Every function here is a pure aggregation over rows already loaded from the
database; the API layer does the querying.
"""
from __future__ import annotations

import re
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pulse.services.scoring import average, normalized_percentage, round_half_up

UNKNOWN_DEPARTMENT = "Unknown"
RECENT_FLAGS_LIMIT = 5

_POSITIVE_WORDS = ("good", "great", "excellent", "love", "amazing", "positive")
_NEGATIVE_WORDS = ("bad", "terrible", "poor", "hate", "negative")
_CODE_BLOCK_RE = re.compile(r"```[\s\S]*?```")


def _department(value: Optional[str]) -> str:
    return value or UNKNOWN_DEPARTMENT


def department_tier(score_pct: int) -> str:
    if score_pct >= 70:
        return "success"
    if score_pct >= 50:
        return "warning"
    return "destructive"


def department_breakdown(rows: Iterable[Tuple[Optional[str], Optional[int]]]) -> List[Dict[str, Any]]:
    """Average rating per department, as a percentage of the 5-point scale.

    `rows` are (department, score) pairs; unscored rows are ignored.
    Departments keep the order in which they first appear.
    """
    grouped: "OrderedDict[str, List[int]]" = OrderedDict()
    for department, score in rows:
        if score is None:
            continue
        grouped.setdefault(_department(department), []).append(int(score))

    breakdown = []
    for name, scores in grouped.items():
        pct = normalized_percentage(scores)
        breakdown.append(
            {
                "department": name,
                "score": pct,
                "avg_score": average(scores),
                "responses": len(scores),
                "tier": department_tier(pct),
            }
        )
    return breakdown


def engagement_trend(rows: Iterable[Tuple[datetime, Optional[int]]]) -> List[Dict[str, Any]]:
    """Average normalized score per calendar day, oldest first."""
    by_day: Dict[date, List[int]] = {}
    for created_at, score in rows:
        if score is None or created_at is None:
            continue
        by_day.setdefault(created_at.date(), []).append(int(score))
    return [
        {"date": day.isoformat(), "score": normalized_percentage(scores), "responses": len(scores)}
        for day, scores in sorted(by_day.items())
    ]


def negative_feedback_by_department(departments: Iterable[Optional[str]]) -> List[Dict[str, Any]]:
    """Rank departments by the number of pending flags (one entry per flag)."""
    counts: "OrderedDict[str, int]" = OrderedDict()
    for department in departments:
        key = _department(department)
        counts[key] = counts.get(key, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"department": name, "negative_count": count} for name, count in ranked]


def sentiment_tier(positive_pct: int) -> str:
    if positive_pct >= 60:
        return "positive"
    if positive_pct >= 40:
        return "neutral"
    return "negative"


def survey_metrics(
    responses: Sequence[Dict[str, Any]],
    pending_flag_count: int,
) -> Dict[str, Any]:
    """Headline numbers for one survey.

    `responses` carry `employee_id` and the stored `sentiment` (or None).
    Neutral verdicts are left out of the positive percentage.
    """
    if not responses:
        return {
            "respondents": 0,
            "total_responses": 0,
            "positive_sentiment_pct": 0,
            "sentiment_tier": "neutral",
            "flagged_count": pending_flag_count,
        }
    respondents = len({r.get("employee_id") for r in responses})
    polar = [r.get("sentiment") for r in responses if r.get("sentiment") in ("positive", "negative")]
    positive = sum(1 for s in polar if s == "positive")
    positive_pct = round_half_up(positive / len(polar) * 100) if polar else 0
    return {
        "respondents": respondents,
        "total_responses": len(responses),
        "positive_sentiment_pct": positive_pct,
        "sentiment_tier": sentiment_tier(positive_pct),
        "flagged_count": pending_flag_count,
    }


def sentiment_from_score(score: int) -> str:
    if score >= 4:
        return "positive"
    if score <= 2:
        return "negative"
    return "neutral"


def sentiment_distribution(rows: Iterable[Tuple[Optional[str], Optional[int]]]) -> Dict[str, Any]:
    """Count responses by stored sentiment, or by rating when no verdict exists."""
    counts = {"positive": 0, "neutral": 0, "negative": 0}
    for sentiment, score in rows:
        if sentiment:
            key = sentiment if sentiment in ("positive", "negative") else "neutral"
        elif score is not None:
            key = sentiment_from_score(int(score))
        else:
            continue
        counts[key] += 1
    total = sum(counts.values())
    percentages = {
        key: (round_half_up(value / total * 100) if total else 0)
        for key, value in counts.items()
    }
    return {"counts": counts, "percentages": percentages, "total": total}


def infer_sentiment_from_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    lowered = text.lower()
    if any(word in lowered for word in _POSITIVE_WORDS):
        return "positive"
    if any(word in lowered for word in _NEGATIVE_WORDS):
        return "negative"
    return "neutral"


def question_analysis(
    questions: Sequence[Dict[str, Any]],
    responses: Sequence[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    analysis = []
    for question in questions:
        rows = [r for r in responses if r.get("question_id") == question["id"]]
        scores = [r["response_score"] for r in rows if r.get("response_score") is not None]
        analysis.append(
            {
                "question_id": question["id"],
                "question_text": question["question_text"],
                "question_type": question["question_type"],
                "avg_score": average(scores),
                "response_count": len(rows),
                "responses": [
                    {
                        "response_value": r.get("response_value"),
                        "sentiment": r.get("sentiment") or infer_sentiment_from_text(r.get("response_value")),
                        "employee_name": r.get("employee_name"),
                        "department": r.get("department"),
                    }
                    for r in rows
                ],
            }
        )
    return analysis


def dedupe_flags_for_display(flags: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Collapse flags that read the same once fenced code blocks are removed."""
    unique: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for flag in flags:
        description = _CODE_BLOCK_RE.sub("", str(flag.get("description") or "")).strip()
        key = "-".join(
            str(part)
            for part in (
                flag.get("employee_id") if flag.get("employee_id") is not None else "none",
                flag.get("survey_id") if flag.get("survey_id") is not None else "none",
                flag.get("issue_type") or "issue",
                description,
            )
        )
        if key not in unique:
            unique[key] = {**flag, "description": description}
    return list(unique.values())
