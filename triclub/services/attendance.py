import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from triclub.crud import workout as crud
from triclub.database import transactional
from triclub.errors.workout_errors import WorkoutNotFound, AttendanceAlreadySubmitted

logger = logging.getLogger(__name__)


class AttendanceService:
    def __init__(self, db: Session, now_provider: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.db = db
        self.now_provider = now_provider

    def submit_attendance(
        self,
        workout_id: int,
        attendance: Dict[int, bool],
        recorded_by_id: int,
        late: Optional[Dict[int, bool]] = None,
    ) -> dict:
        """
        Records staff attendance for a workout, once.

        Every signed-up user who is not marked present gets one absence.
        Records synthesized from late cancellations are left untouched.
        """
        late = late or {}
        with transactional(self.db) as session:
            workout = crud.get_workout(session, workout_id, for_update=True)
            if not workout:
                raise WorkoutNotFound("Workout not found")
            if crud.has_staff_attendance(session, workout_id):
                raise AttendanceAlreadySubmitted(
                    "Attendance has already been submitted for this workout and cannot be modified"
                )

            now = self.now_provider()
            recorded = 0
            for user_id, attended in attendance.items():
                existing = crud.get_attendance_record(session, workout_id, user_id)
                if existing is not None and existing.recorded_by_id is None:
                    logger.info(f"Keeping synthesized absence of user {user_id} on workout {workout_id}")
                    continue
                crud.upsert_attendance(
                    session,
                    workout_id,
                    user_id,
                    attended=bool(attended),
                    late=bool(late.get(user_id, False)),
                    recorded_by_id=recorded_by_id,
                    recorded_at=now,
                )
                recorded += 1

            absences = 0
            for signup in crud.get_signups(session, workout_id):
                if not attendance.get(signup.user_id, False):
                    crud.increment_absences(session, signup.user_id)
                    absences += 1

            logger.info(
                f"Attendance for workout {workout_id} recorded by user {recorded_by_id}: "
                f"{recorded} record(s), {absences} absence(s)"
            )
            return {"recorded": recorded, "absences_added": absences}
