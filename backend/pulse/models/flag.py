"""Response flags surfaced to HR reviewers."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from pulse.models.base import Base


class FlagSeverity(enum.Enum):
    warning = "warning"
    critical = "critical"


class FlagIssueType(enum.Enum):
    negative_sentiment = "negative_sentiment"
    low_rating = "low_rating"


class FlagStatus(enum.Enum):
    pending = "pending"
    reviewed = "reviewed"


FLAG_DESCRIPTION_MAX_CHARS = 250

# Only one pending negative-sentiment flag per employee and survey.
PENDING_NEGATIVE_WHERE = text("issue_type = 'negative_sentiment' AND status = 'pending'")


class ResponseFlag(Base):
    __tablename__ = "response_flags"
    __table_args__ = (
        Index(
            "uq_response_flags_pending_negative",
            "employee_id",
            "survey_id",
            unique=True,
            postgresql_where=PENDING_NEGATIVE_WHERE,
            sqlite_where=PENDING_NEGATIVE_WHERE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("profiles.id"), nullable=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=True, index=True)

    severity = Column(Enum(FlagSeverity), nullable=False)
    issue_type = Column(Enum(FlagIssueType), nullable=False)
    description = Column(String(FLAG_DESCRIPTION_MAX_CHARS), nullable=False)
    flagged_by = Column(String(50), nullable=False, default="system")
    status = Column(Enum(FlagStatus), nullable=False, default=FlagStatus.pending)

    # Set by the reviewer when the flag is resolved
    reviewed_by = Column(String(255), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    survey = relationship("Survey", back_populates="flags")
    employee = relationship("Profile")
