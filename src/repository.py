"""Persistence for profiles, routines, logs and the active session.

Reads return pydantic values (or None when absent). Writes return True on
success; a failed write is rolled back, logged, and reported as False so the
caller can surface a warning without losing its in-memory state.
"""

import logging
from typing import List
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import ActiveSessionDB, RoutineDB, UserDB, WorkoutLogDB
from typedefs import Routine, UserProfile, WorkoutLog, WorkoutSession

logger = logging.getLogger(__name__)


def _commit(db: Session, action: str) -> bool:
    try:
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Failed to %s: %s", action, e)
        return False


class ProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: UUID) -> UserProfile | None:
        """Return the stored profile, or None when onboarding is still needed."""
        user = self.db.get(UserDB, user_id)
        if user is None or not user.profile:
            return None
        try:
            return UserProfile.model_validate(user.profile)
        except ValidationError as e:
            logger.warning("Ignoring unreadable profile for user %s: %s", user_id, e)
            return None

    def upsert(self, user_id: UUID, profile: UserProfile) -> bool:
        user = self.db.get(UserDB, user_id)
        if user is None:
            logger.warning("Cannot save profile for unknown user %s", user_id)
            return False
        user.profile = profile.model_dump(mode="json")
        return _commit(self.db, "save profile")


class RoutineRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self, user_id: UUID):
        return self.db.query(RoutineDB).filter(RoutineDB.user_id == user_id)

    def list(self, user_id: UUID) -> List[Routine]:
        rows = self._query(user_id).order_by(RoutineDB.created_at).all()
        return [Routine.model_validate(row.data) for row in rows]

    def get(self, user_id: UUID, routine_id: str) -> Routine | None:
        row = self._query(user_id).filter(RoutineDB.id == routine_id).first()
        return Routine.model_validate(row.data) if row else None

    def _stage(self, user_id: UUID, routine: Routine) -> None:
        row = self._query(user_id).filter(RoutineDB.id == routine.id).first()
        if row is None:
            row = RoutineDB(id=routine.id, user_id=user_id)
            self.db.add(row)
        row.name = routine.name
        row.is_favorite = routine.is_favorite
        row.data = routine.model_dump(mode="json")

    def upsert(self, user_id: UUID, routine: Routine) -> bool:
        self._stage(user_id, routine)
        return _commit(self.db, f"save routine {routine.id}")

    def upsert_many(self, user_id: UUID, routines: List[Routine]) -> bool:
        """Save several routines in one transaction (e.g. a favorite change)."""
        for routine in routines:
            self._stage(user_id, routine)
        return _commit(self.db, "save routines")

    def delete(self, user_id: UUID, routine_id: str) -> bool:
        row = self._query(user_id).filter(RoutineDB.id == routine_id).first()
        if row is None:
            return False
        self.db.delete(row)
        return _commit(self.db, f"delete routine {routine_id}")


class LogRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self, user_id: UUID):
        return self.db.query(WorkoutLogDB).filter(WorkoutLogDB.user_id == user_id)

    def list(self, user_id: UUID, skip: int = 0, limit: int = 100) -> List[WorkoutLog]:
        """Return logs newest first."""
        rows = (
            self._query(user_id)
            .order_by(WorkoutLogDB.date.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return [WorkoutLog.model_validate(row.data) for row in rows]

    def get(self, user_id: UUID, log_id: str) -> WorkoutLog | None:
        row = self._query(user_id).filter(WorkoutLogDB.id == log_id).first()
        return WorkoutLog.model_validate(row.data) if row else None

    def append(self, user_id: UUID, log: WorkoutLog) -> bool:
        """Insert a log. Existing logs are never overwritten."""
        self.db.add(
            WorkoutLogDB(
                id=log.id,
                user_id=user_id,
                date=log.date,
                status=log.status.value,
                data=log.model_dump(mode="json"),
            )
        )
        return _commit(self.db, f"save workout log {log.id}")


class SessionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: UUID) -> WorkoutSession | None:
        row = self.db.get(ActiveSessionDB, user_id)
        return WorkoutSession.model_validate(row.data) if row else None

    def save(self, user_id: UUID, session: WorkoutSession) -> bool:
        row = self.db.get(ActiveSessionDB, user_id)
        if row is None:
            row = ActiveSessionDB(user_id=user_id)
            self.db.add(row)
        row.session_id = session.id
        row.started_at = session.start_time
        row.data = session.model_dump(mode="json")
        return _commit(self.db, f"save session {session.id}")

    def delete(self, user_id: UUID) -> bool:
        row = self.db.get(ActiveSessionDB, user_id)
        if row is None:
            return True
        self.db.delete(row)
        return _commit(self.db, "clear active session")
