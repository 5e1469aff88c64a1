# triclub/errors/workout_errors.py

class WorkoutError(Exception):
    """Base exception for workout signup errors."""
    pass

class WorkoutNotFound(WorkoutError):
    """Raised when a workout is missing, soft-deleted or not a workout post."""
    pass

class PostNotFound(WorkoutError):
    """Raised when a forum post is missing or soft-deleted."""
    pass

class AlreadySignedUp(WorkoutError):
    """Raised when a user tries to join the waitlist of a workout they are signed up for."""
    pass

class AlreadyOnWaitlist(WorkoutError):
    """Raised when a user is already on the waitlist of a workout."""
    pass

class NotOnWaitlist(WorkoutError):
    """Raised when a user withdraws from a waitlist they are not on."""
    pass

class NotAuthorizedToEdit(WorkoutError):
    """Raised when a user who is neither the author nor staff edits a post."""
    pass

class AttendanceAlreadySubmitted(WorkoutError):
    """Raised when staff attendance was already recorded for a workout."""
    pass
