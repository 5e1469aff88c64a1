import logging
from datetime import timezone

from sqlalchemy.orm import Session

from triclub.config import config
from triclub.crud import workout as crud
from triclub.database import transactional
from triclub.models import ForumPost
from triclub.services.cancellation import classify
from triclub.services.time_resolver import resolve_start

logger = logging.getLogger(__name__)


class CancellationAuditService:
    """
    Recomputes within_12hrs of stored cancellations with the same time
    resolution the live signup path uses, and repairs the absence bookkeeping
    of every record whose classification changes.
    """

    def __init__(self, db: Session, civil_timezone: str = config.CLUB_TIMEZONE):
        self.db = db
        self.civil_timezone = civil_timezone

    def reclassify_all(self) -> dict:
        summary = {"processed": 0, "updated": 0, "absences_added": 0, "absences_removed": 0, "skipped": 0}

        with transactional(self.db) as session:
            for cancellation in crud.get_all_workout_cancellations(session):
                summary["processed"] += 1
                workout = session.get(ForumPost, cancellation.post_id)
                start = resolve_start(workout.workout_date, workout.workout_time, self.civil_timezone)
                if start is None:
                    logger.warning(
                        f"Skipping cancellation {cancellation.post_id}/{cancellation.user_id}: "
                        f"workout has no resolvable start"
                    )
                    summary["skipped"] += 1
                    continue

                cancelled_at = cancellation.cancelled_at
                if cancelled_at.tzinfo is None:
                    cancelled_at = cancelled_at.replace(tzinfo=timezone.utc)
                is_late = classify(start, cancelled_at).is_late
                if is_late == cancellation.within_12hrs:
                    continue

                logger.info(
                    f"Reclassifying cancellation of user {cancellation.user_id} on workout "
                    f"{cancellation.post_id}: within_12hrs {cancellation.within_12hrs} -> {is_late}"
                )
                cancellation.within_12hrs = is_late
                cancellation.marked_absent = is_late

                if is_late:
                    existing = crud.get_attendance_record(session, cancellation.post_id, cancellation.user_id)
                    if existing is not None and existing.recorded_by_id is not None:
                        logger.info(
                            f"Keeping staff attendance of user {cancellation.user_id} on workout {cancellation.post_id}"
                        )
                    else:
                        crud.upsert_attendance(
                            session,
                            cancellation.post_id,
                            cancellation.user_id,
                            attended=False,
                            recorded_at=cancelled_at,
                        )
                    crud.increment_absences(session, cancellation.user_id)
                    summary["absences_added"] += 1
                else:
                    crud.delete_synthesized_attendance(session, cancellation.post_id, cancellation.user_id)
                    crud.decrement_absences(session, cancellation.user_id)
                    summary["absences_removed"] += 1
                summary["updated"] += 1

            session.flush()

        logger.info(f"Cancellation reclassification finished: {summary}")
        return summary
