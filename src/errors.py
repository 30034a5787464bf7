"""Named failures for invalid workout state transitions.

Every error carries a machine-readable ``kind`` and a ``context`` dict so
callers can tell a bad state transition apart from bad data. The HTTP layer
turns them into JSON responses in ``main.py``.
"""

from enum import Enum


class ErrorKind(str, Enum):
    SESSION_ALREADY_ACTIVE = "session_already_active"
    NO_ACTIVE_SESSION = "no_active_session"
    SESSION_PAUSED = "session_paused"
    SESSION_NOT_PAUSED = "session_not_paused"
    EXERCISE_NOT_FOUND = "exercise_not_found"
    SET_NOT_FOUND = "set_not_found"
    ROUTINE_NOT_FOUND = "routine_not_found"
    NO_ACTIVE_ROUTINE = "no_active_routine"


class WorkoutStateError(Exception):
    """Base class for precondition violations in the workout core."""

    kind: ErrorKind
    status_code: int = 409

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "detail": self.message,
            "context": self.context,
        }


class SessionAlreadyActiveError(WorkoutStateError):
    kind = ErrorKind.SESSION_ALREADY_ACTIVE


class NoActiveSessionError(WorkoutStateError):
    kind = ErrorKind.NO_ACTIVE_SESSION


class SessionPausedError(WorkoutStateError):
    kind = ErrorKind.SESSION_PAUSED


class SessionNotPausedError(WorkoutStateError):
    kind = ErrorKind.SESSION_NOT_PAUSED


class ExerciseNotFoundError(WorkoutStateError):
    kind = ErrorKind.EXERCISE_NOT_FOUND
    status_code = 404


class SetNotFoundError(WorkoutStateError):
    kind = ErrorKind.SET_NOT_FOUND
    status_code = 404


class RoutineNotFoundError(WorkoutStateError):
    kind = ErrorKind.ROUTINE_NOT_FOUND
    status_code = 404


class NoActiveRoutineError(WorkoutStateError):
    """Raised when an implicit add has no favorite routine to target.

    This is a user-actionable condition, not a server fault.
    """

    kind = ErrorKind.NO_ACTIVE_ROUTINE
    status_code = 422
