"""Survey responses and their AI sentiment verdicts."""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Text, ForeignKey, Float
from sqlalchemy.orm import relationship
from datetime import datetime

from pulse.models.base import Base


class SurveyResponse(Base):
    """One employee's answer to one question. Never updated after insert."""
    __tablename__ = "survey_responses"

    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("survey_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    response_value = Column(Text, nullable=False)
    response_score = Column(Integer, nullable=True)  # 1-5 for rating questions
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    survey = relationship("Survey", back_populates="responses")
    question = relationship("SurveyQuestion")
    employee = relationship("Profile")
    sentiment_analysis = relationship(
        "SentimentAnalysis",
        back_populates="response",
        uselist=False,
        cascade="all, delete-orphan",
    )


class SentimentAnalysis(Base):
    __tablename__ = "sentiment_analysis"

    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(
        Integer,
        ForeignKey("survey_responses.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    sentiment = Column(String(20), nullable=False)  # positive | negative | neutral
    confidence = Column(Float, nullable=True)
    key_themes = Column(JSON, default=list)
    ai_summary = Column(Text, nullable=True)
    verdict_source = Column(String(20), nullable=False, default="parsed")  # parsed | fallback
    analyzed_at = Column(DateTime, default=datetime.utcnow)

    response = relationship("SurveyResponse", back_populates="sentiment_analysis")
