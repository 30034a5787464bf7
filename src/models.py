"""SQLAlchemy database models.

Routines, logs and the active session are stored as JSON snapshots of their
pydantic types, keyed by id plus owning user id.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB

from database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (e.g. SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(UTC)


class UserDB(Base):
    """Local user record linked to a Firebase identity.

    ``profile`` stays NULL until onboarding completes.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    firebase_uid = Column(String, nullable=False, unique=True, index=True)
    email = Column(String, nullable=False)
    profile = Column(JSONType, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<UserDB(id={self.id}, email={self.email})>"


class RoutineDB(Base):
    __tablename__ = "routines"

    id = Column(String, primary_key=True)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String, nullable=False)
    is_favorite = Column(Boolean, nullable=False, default=False)
    data = Column(JSONType, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<RoutineDB(id={self.id}, name={self.name})>"


class WorkoutLogDB(Base):
    """Append-only history of finished and aborted sessions."""

    __tablename__ = "workout_logs"

    id = Column(String, primary_key=True)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False)
    data = Column(JSONType, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<WorkoutLogDB(id={self.id}, status={self.status})>"


class ActiveSessionDB(Base):
    """The in-progress session of a user. One row per user at most."""

    __tablename__ = "active_sessions"

    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    session_id = Column(String, nullable=False, unique=True)
    data = Column(JSONType, nullable=False)
    started_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ActiveSessionDB(user_id={self.user_id}, session_id={self.session_id})>"
