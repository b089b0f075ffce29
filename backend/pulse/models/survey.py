"""Survey definitions - surveys authored by HR managers and their questions."""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Text, ForeignKey, Enum, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from pulse.models.base import Base


class SurveyStatus(enum.Enum):
    draft = "draft"
    active = "active"
    closed = "closed"


class QuestionType(enum.Enum):
    rating = "rating"
    text = "text"


class Survey(Base):
    __tablename__ = "surveys"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(SurveyStatus), nullable=False, default=SurveyStatus.active)
    survey_type = Column(String(50), nullable=False, default="engagement")
    created_by = Column(String(255), nullable=True)  # auth user id of the author
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    questions = relationship(
        "SurveyQuestion",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="SurveyQuestion.order_index",
    )
    responses = relationship("SurveyResponse", back_populates="survey", cascade="all, delete-orphan")
    flags = relationship("ResponseFlag", back_populates="survey", cascade="all, delete-orphan")


class SurveyQuestion(Base):
    __tablename__ = "survey_questions"

    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(String(500), nullable=False)
    question_type = Column(Enum(QuestionType), nullable=False, default=QuestionType.rating)
    required = Column(Boolean, nullable=False, default=True)
    options = Column(JSON, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    survey = relationship("Survey", back_populates="questions")
