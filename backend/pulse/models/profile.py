"""Employee profiles and application roles."""
from sqlalchemy import Column, Integer, String, DateTime, Enum, UniqueConstraint
from datetime import datetime
import enum

from pulse.models.base import Base


class AppRole(enum.Enum):
    hr_manager = "hr_manager"
    employee = "employee"


class Profile(Base):
    """Directory record for an authenticated user (keyed by the auth user id)."""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    department = Column(String(120), nullable=False, default="General")
    role = Column(String(50), nullable=False, default="employee")
    manager_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    role = Column(Enum(AppRole), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
