from datetime import datetime

from pulse.services.dashboard import (
    dedupe_flags_for_display,
    department_breakdown,
    engagement_trend,
    infer_sentiment_from_text,
    negative_feedback_by_department,
    question_analysis,
    sentiment_distribution,
    survey_metrics,
)


def test_department_breakdown_normalizes_to_percent_and_tiers():
    rows = [
        ("Engineering", 4),
        ("Engineering", 5),
        ("Sales", 2),
        ("Sales", 3),
        (None, 3),
        ("Sales", None),
    ]
    breakdown = department_breakdown(rows)

    assert [d["department"] for d in breakdown] == ["Engineering", "Sales", "Unknown"]
    engineering, sales, unknown = breakdown
    assert (engineering["score"], engineering["avg_score"], engineering["responses"]) == (90, 4.5, 2)
    assert engineering["tier"] == "success"
    assert (sales["score"], sales["tier"]) == (50, "warning")
    assert (unknown["score"], unknown["tier"]) == (60, "warning")


def test_department_breakdown_rounds_half_up_and_marks_low_scores():
    # avg 2.25 -> 45%
    breakdown = department_breakdown([("Ops", 2), ("Ops", 2), ("Ops", 2), ("Ops", 3)])
    assert breakdown[0]["score"] == 45
    assert breakdown[0]["tier"] == "destructive"

    # avg 3.5 -> 70% sits on the success boundary
    assert department_breakdown([("HR", 3), ("HR", 4)])[0]["tier"] == "success"


def test_engagement_trend_groups_by_day_oldest_first():
    rows = [
        (datetime(2024, 3, 2, 9, 0), 5),
        (datetime(2024, 3, 1, 17, 30), 3),
        (datetime(2024, 3, 2, 18, 0), 4),
        (datetime(2024, 3, 3, 8, 0), None),
    ]
    assert engagement_trend(rows) == [
        {"date": "2024-03-01", "score": 60, "responses": 1},
        {"date": "2024-03-02", "score": 90, "responses": 2},
    ]


def test_negative_feedback_by_department_ranks_by_count():
    ranked = negative_feedback_by_department(["Sales", "Engineering", "Sales", None, "Sales", None])
    assert ranked == [
        {"department": "Sales", "negative_count": 3},
        {"department": "Unknown", "negative_count": 2},
        {"department": "Engineering", "negative_count": 1},
    ]


def test_survey_metrics_counts_respondents_and_positive_share():
    responses = [
        {"employee_id": 1, "sentiment": "positive"},
        {"employee_id": 1, "sentiment": None},
        {"employee_id": 2, "sentiment": "negative"},
        {"employee_id": 3, "sentiment": "positive"},
        {"employee_id": 3, "sentiment": "neutral"},
    ]
    metrics = survey_metrics(responses, pending_flag_count=4)
    assert metrics == {
        "respondents": 3,
        "total_responses": 5,
        "positive_sentiment_pct": 67,
        "sentiment_tier": "positive",
        "flagged_count": 4,
    }


def test_survey_metrics_empty_survey():
    metrics = survey_metrics([], pending_flag_count=0)
    assert metrics["respondents"] == 0
    assert metrics["positive_sentiment_pct"] == 0
    assert metrics["sentiment_tier"] == "neutral"


def test_sentiment_distribution_prefers_stored_verdicts_over_scores():
    rows = [
        ("positive", None),
        ("negative", 5),
        (None, 5),
        (None, 3),
        (None, 1),
        (None, None),
    ]
    distribution = sentiment_distribution(rows)
    assert distribution["counts"] == {"positive": 2, "neutral": 1, "negative": 2}
    assert distribution["total"] == 5
    assert distribution["percentages"] == {"positive": 40, "neutral": 20, "negative": 40}


def test_sentiment_distribution_empty():
    distribution = sentiment_distribution([])
    assert distribution["total"] == 0
    assert distribution["percentages"] == {"positive": 0, "neutral": 0, "negative": 0}


def test_infer_sentiment_from_text_keywords():
    assert infer_sentiment_from_text("The team is great") == "positive"
    assert infer_sentiment_from_text("Terrible tooling") == "negative"
    assert infer_sentiment_from_text("It was fine") == "neutral"
    assert infer_sentiment_from_text("") is None


def test_question_analysis_averages_scores_and_labels_text_answers():
    questions = [
        {"id": 1, "question_text": "Rate your week", "question_type": "rating"},
        {"id": 2, "question_text": "Anything else?", "question_type": "text"},
        {"id": 3, "question_text": "Unanswered", "question_type": "text"},
    ]
    responses = [
        {"question_id": 1, "response_value": "4", "response_score": 4, "employee_name": "A", "department": "Ops"},
        {"question_id": 1, "response_value": "2", "response_score": 2, "employee_name": "B", "department": "Ops"},
        {
            "question_id": 2,
            "response_value": "I love the new office",
            "response_score": None,
            "sentiment": None,
            "employee_name": "A",
            "department": "Ops",
        },
        {
            "question_id": 2,
            "response_value": "meh",
            "response_score": None,
            "sentiment": "negative",
            "employee_name": "B",
            "department": "Ops",
        },
    ]
    rating, text, unanswered = question_analysis(questions, responses)

    assert rating["avg_score"] == 3.0
    assert rating["response_count"] == 2
    assert text["avg_score"] is None
    assert [r["sentiment"] for r in text["responses"]] == ["positive", "negative"]
    assert unanswered["response_count"] == 0
    assert unanswered["responses"] == []


def test_dedupe_flags_for_display_strips_code_blocks_and_collapses_repeats():
    flags = [
        {"id": 9, "employee_id": 1, "survey_id": 1, "issue_type": "negative_sentiment",
         "description": "Analysis detected an issue in pay: underpaid ```json\n{}\n```"},
        {"id": 8, "employee_id": 1, "survey_id": 1, "issue_type": "negative_sentiment",
         "description": "Analysis detected an issue in pay: underpaid"},
        {"id": 7, "employee_id": 2, "survey_id": 1, "issue_type": "negative_sentiment",
         "description": "Analysis detected an issue in pay: underpaid"},
    ]
    unique = dedupe_flags_for_display(flags)

    assert [f["id"] for f in unique] == [9, 7]
    assert unique[0]["description"] == "Analysis detected an issue in pay: underpaid"
