from pulse.models.flag import FlagIssueType, FlagSeverity
from pulse.models.survey import QuestionType
from pulse.services.flagging import (
    DescriptionSource,
    description_parts,
    low_rating_flag,
    negative_feedback_message,
    negative_sentiment_flag,
    should_flag_negative,
)


def _flag(sentiment="negative", confidence=0.9, summary="Too much work.", text="raw"):
    return negative_sentiment_flag(
        sentiment=sentiment,
        confidence=confidence,
        ai_summary=summary,
        response_text=text,
    )


def test_no_negative_flag_at_or_below_half_confidence_or_for_other_labels():
    for confidence in (0.0, 0.3, 0.5):
        assert _flag(confidence=confidence) is None
    for sentiment in ("positive", "neutral"):
        assert _flag(sentiment=sentiment, confidence=0.99) is None
    assert should_flag_negative("negative", None) is False


def test_severity_tiers_follow_confidence():
    assert _flag(confidence=0.51).severity == FlagSeverity.warning
    assert _flag(confidence=0.8).severity == FlagSeverity.warning
    assert _flag(confidence=0.81).severity == FlagSeverity.critical
    assert _flag(confidence=0.92).severity == FlagSeverity.critical


def test_negative_flag_description_quotes_the_answer_under_the_generic_theme():
    flag = _flag(
        confidence=0.92,
        summary="Employee reports a hostile manager and unsustainable workload.",
        text="I hate my manager and the workload is unbearable",
    )
    assert flag.issue_type == FlagIssueType.negative_sentiment
    assert flag.severity == FlagSeverity.critical
    assert flag.description == (
        "Analysis detected an issue in general feedback: I hate my manager and the workload is unbearable"
    )


def test_plain_summary_does_not_replace_the_answer_text():
    parts = description_parts("Employee reports a hostile manager.", "I hate my manager")
    assert parts.source == DescriptionSource.fallback
    assert (parts.theme, parts.summary) == ("general feedback", "I hate my manager")


def test_description_is_truncated_to_250_characters():
    flag = _flag(text="s" * 400)
    assert len(flag.description) == 250


def test_json_blob_summary_is_unpacked():
    parts = description_parts(
        'Here you go: {"summary": "Burnout risk", "key_themes": ["overtime", "stress"]}',
        "raw answer",
    )
    assert parts.source == DescriptionSource.parsed
    assert parts.theme == "overtime"
    assert parts.summary == "Burnout risk"

    flag = _flag(summary='{"summary": "Burnout risk", "key_themes": ["overtime"]}', text="raw answer")
    assert flag.description == "Analysis detected an issue in overtime: Burnout risk"


def test_json_blob_without_fields_keeps_answer_and_generic_theme():
    parts = description_parts('{"note": "nothing useful"}', "raw answer")
    assert parts.source == DescriptionSource.parsed
    assert (parts.theme, parts.summary) == ("general feedback", "raw answer")


def test_unparsable_json_blob_falls_back_to_raw_text():
    broken = description_parts('{"summary": oops}', "raw answer")
    assert broken.source == DescriptionSource.fallback
    assert broken.theme == "general feedback"
    assert broken.summary == "raw answer"


def test_empty_summary_uses_raw_text_and_generic_theme():
    parts = description_parts("", "raw answer")
    assert parts.source == DescriptionSource.fallback
    assert (parts.theme, parts.summary) == ("general feedback", "raw answer")



def test_low_rating_flags_scores_of_two_or_less():
    critical = low_rating_flag(QuestionType.rating, 1)
    assert critical.issue_type == FlagIssueType.low_rating
    assert critical.severity == FlagSeverity.critical
    assert critical.description == "Low rating submitted: 1/5"

    warning = low_rating_flag(QuestionType.rating, 2)
    assert warning.severity == FlagSeverity.warning
    assert warning.description == "Low rating submitted: 2/5"

    assert low_rating_flag(QuestionType.rating, 3) is None
    assert low_rating_flag(QuestionType.rating, None) is None
    assert low_rating_flag(QuestionType.text, 1) is None


def test_negative_feedback_message_rounds_half_up_and_trims_summary():
    message = negative_feedback_message(0.925, "y" * 150)
    assert message == f"Negative feedback detected with 93% confidence: {'y' * 100}"
