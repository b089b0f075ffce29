from pulse.models.base import Base
from pulse.models.survey import Survey, SurveyQuestion, SurveyStatus, QuestionType
from pulse.models.profile import Profile, UserRole, AppRole
from pulse.models.response import SurveyResponse, SentimentAnalysis
from pulse.models.flag import (
    ResponseFlag,
    FlagSeverity,
    FlagIssueType,
    FlagStatus,
    FLAG_DESCRIPTION_MAX_CHARS,
)
from pulse.models.notification import Notification

__all__ = [
    "Base",
    "Survey", "SurveyQuestion", "SurveyStatus", "QuestionType",
    "Profile", "UserRole", "AppRole",
    "SurveyResponse", "SentimentAnalysis",
    "ResponseFlag", "FlagSeverity", "FlagIssueType", "FlagStatus", "FLAG_DESCRIPTION_MAX_CHARS",
    "Notification",
]
