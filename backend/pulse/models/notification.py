from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean
from datetime import datetime

from pulse.models.base import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(String(255), nullable=False, index=True)  # auth user id
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(64), nullable=False)  # negative_feedback | survey_submission
    related_id = Column(Integer, nullable=True)  # e.g. the flag that triggered it
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
