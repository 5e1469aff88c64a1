from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Integer, DateTime, case, func, insert, literal, select
from sqlalchemy.orm import Session, joinedload
import logging

from triclub.models import (
    ForumPost,
    PostType,
    User,
    WorkoutSignup,
    WorkoutWaitlistEntry,
    WorkoutCancellation,
    WorkoutAttendance,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Workouts

def get_workout(db: Session, workout_id: int, *, for_update: bool = False) -> Optional[ForumPost]:
    """
    Active (not deleted) workout post by ID.
    With for_update=True the row stays locked until the transaction ends, which
    serializes every signup operation on the same workout.
    """
    query = db.query(ForumPost).filter(
        ForumPost.id == workout_id,
        ForumPost.type == PostType.WORKOUT.value,
        ForumPost.is_deleted.is_(False),
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_post(db: Session, post_id: int, *, for_update: bool = False) -> Optional[ForumPost]:
    """Active (not deleted) forum post of any type."""
    query = db.query(ForumPost).filter(
        ForumPost.id == post_id,
        ForumPost.is_deleted.is_(False),
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


# Signups

def count_signups(db: Session, workout_id: int) -> int:
    return db.query(func.count(WorkoutSignup.id)).filter(WorkoutSignup.post_id == workout_id).scalar() or 0


def get_signup(db: Session, workout_id: int, user_id: int) -> Optional[WorkoutSignup]:
    return db.query(WorkoutSignup).filter(
        WorkoutSignup.post_id == workout_id,
        WorkoutSignup.user_id == user_id,
    ).first()


def get_signups(db: Session, workout_id: int) -> List[WorkoutSignup]:
    return (
        db.query(WorkoutSignup)
        .options(joinedload(WorkoutSignup.user))
        .filter(WorkoutSignup.post_id == workout_id)
        .order_by(WorkoutSignup.signup_time, WorkoutSignup.id)
        .all()
    )


def insert_signup_if_capacity(
    db: Session,
    workout_id: int,
    user_id: int,
    capacity: Optional[int],
    signup_time: Optional[datetime] = None,
) -> bool:
    """
    Inserts the signup only if the workout still has a free slot, as a single
    INSERT ... SELECT ... WHERE statement. Returns True when a row was inserted.
    """
    signup_time = signup_time or _utcnow()
    source = select(
        literal(workout_id, Integer),
        literal(user_id, Integer),
        literal(signup_time, DateTime(timezone=True)),
    )
    if capacity is not None:
        current_count = (
            select(func.count(WorkoutSignup.id))
            .where(WorkoutSignup.post_id == workout_id)
            .correlate(None)
            .scalar_subquery()
        )
        source = source.where(current_count < capacity)

    statement = insert(WorkoutSignup).from_select(
        ["post_id", "user_id", "signup_time"], source
    )
    result = db.execute(statement)
    return result.rowcount == 1


def add_signup(db: Session, workout_id: int, user_id: int) -> WorkoutSignup:
    signup = WorkoutSignup(post_id=workout_id, user_id=user_id, signup_time=_utcnow())
    db.add(signup)
    db.flush()
    return signup


def delete_signup(db: Session, workout_id: int, user_id: int) -> int:
    return db.query(WorkoutSignup).filter(
        WorkoutSignup.post_id == workout_id,
        WorkoutSignup.user_id == user_id,
    ).delete(synchronize_session=False)


def delete_all_signups(db: Session, workout_id: int) -> int:
    return db.query(WorkoutSignup).filter(
        WorkoutSignup.post_id == workout_id
    ).delete(synchronize_session=False)


# Waitlist

def get_waitlist_entry(db: Session, workout_id: int, user_id: int) -> Optional[WorkoutWaitlistEntry]:
    return db.query(WorkoutWaitlistEntry).filter(
        WorkoutWaitlistEntry.post_id == workout_id,
        WorkoutWaitlistEntry.user_id == user_id,
    ).first()


def get_waitlist(db: Session, workout_id: int) -> List[WorkoutWaitlistEntry]:
    return (
        db.query(WorkoutWaitlistEntry)
        .options(joinedload(WorkoutWaitlistEntry.user))
        .filter(WorkoutWaitlistEntry.post_id == workout_id)
        .order_by(WorkoutWaitlistEntry.joined_at, WorkoutWaitlistEntry.id)
        .all()
    )


def count_waitlist(db: Session, workout_id: int) -> int:
    return db.query(func.count(WorkoutWaitlistEntry.id)).filter(
        WorkoutWaitlistEntry.post_id == workout_id
    ).scalar() or 0


def get_waitlist_head(db: Session, workout_id: int) -> Optional[WorkoutWaitlistEntry]:
    """
    Earliest waitlist entry, read with FOR UPDATE SKIP LOCKED so two concurrent
    promoters never pick the same entry.
    """
    return (
        db.query(WorkoutWaitlistEntry)
        .filter(WorkoutWaitlistEntry.post_id == workout_id)
        .order_by(WorkoutWaitlistEntry.joined_at, WorkoutWaitlistEntry.id)
        .limit(1)
        .with_for_update(skip_locked=True)
        .first()
    )


def add_waitlist_entry(db: Session, workout_id: int, user_id: int) -> WorkoutWaitlistEntry:
    entry = WorkoutWaitlistEntry(post_id=workout_id, user_id=user_id, joined_at=_utcnow())
    db.add(entry)
    db.flush()
    return entry


def delete_waitlist_entry(db: Session, workout_id: int, user_id: int) -> int:
    return db.query(WorkoutWaitlistEntry).filter(
        WorkoutWaitlistEntry.post_id == workout_id,
        WorkoutWaitlistEntry.user_id == user_id,
    ).delete(synchronize_session=False)


def delete_waitlist_entry_by_id(db: Session, entry_id: int) -> int:
    return db.query(WorkoutWaitlistEntry).filter(
        WorkoutWaitlistEntry.id == entry_id
    ).delete(synchronize_session=False)


def delete_all_waitlist_entries(db: Session, workout_id: int) -> int:
    return db.query(WorkoutWaitlistEntry).filter(
        WorkoutWaitlistEntry.post_id == workout_id
    ).delete(synchronize_session=False)


# Cancellations

def get_cancellation(db: Session, workout_id: int, user_id: int) -> Optional[WorkoutCancellation]:
    return db.query(WorkoutCancellation).filter(
        WorkoutCancellation.post_id == workout_id,
        WorkoutCancellation.user_id == user_id,
    ).first()


def upsert_cancellation(
    db: Session,
    workout_id: int,
    user_id: int,
    *,
    cancelled_at: datetime,
    within_12hrs: bool,
    marked_absent: bool,
) -> WorkoutCancellation:
    """Latest cancellation overwrites the previous one for the same user and workout."""
    cancellation = get_cancellation(db, workout_id, user_id)
    if cancellation is None:
        cancellation = WorkoutCancellation(post_id=workout_id, user_id=user_id)
        db.add(cancellation)
    cancellation.cancelled_at = cancelled_at
    cancellation.within_12hrs = within_12hrs
    cancellation.marked_absent = marked_absent
    db.flush()
    return cancellation


def get_all_workout_cancellations(db: Session) -> List[WorkoutCancellation]:
    return (
        db.query(WorkoutCancellation)
        .join(ForumPost, ForumPost.id == WorkoutCancellation.post_id)
        .filter(ForumPost.type == PostType.WORKOUT.value)
        .order_by(WorkoutCancellation.cancelled_at.desc())
        .all()
    )


# Attendance

def get_attendance_record(db: Session, workout_id: int, user_id: int) -> Optional[WorkoutAttendance]:
    return db.query(WorkoutAttendance).filter(
        WorkoutAttendance.post_id == workout_id,
        WorkoutAttendance.user_id == user_id,
    ).first()


def get_attendance(db: Session, workout_id: int) -> List[WorkoutAttendance]:
    return (
        db.query(WorkoutAttendance)
        .options(joinedload(WorkoutAttendance.user))
        .filter(WorkoutAttendance.post_id == workout_id)
        .order_by(WorkoutAttendance.recorded_at.desc(), WorkoutAttendance.id)
        .all()
    )


def has_staff_attendance(db: Session, workout_id: int) -> bool:
    return db.query(WorkoutAttendance.id).filter(
        WorkoutAttendance.post_id == workout_id,
        WorkoutAttendance.recorded_by_id.isnot(None),
    ).first() is not None


def upsert_attendance(
    db: Session,
    workout_id: int,
    user_id: int,
    *,
    attended: bool,
    late: bool = False,
    recorded_by_id: Optional[int] = None,
    recorded_at: Optional[datetime] = None,
) -> WorkoutAttendance:
    record = get_attendance_record(db, workout_id, user_id)
    if record is None:
        record = WorkoutAttendance(post_id=workout_id, user_id=user_id)
        db.add(record)
    record.attended = attended
    record.late = late
    record.recorded_by_id = recorded_by_id
    record.recorded_at = recorded_at or _utcnow()
    db.flush()
    return record


def delete_synthesized_attendance(db: Session, workout_id: int, user_id: int) -> int:
    """Removes an attendance record only if no staff member recorded it."""
    return db.query(WorkoutAttendance).filter(
        WorkoutAttendance.post_id == workout_id,
        WorkoutAttendance.user_id == user_id,
        WorkoutAttendance.recorded_by_id.is_(None),
    ).delete(synchronize_session=False)


# Users

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def increment_absences(db: Session, user_id: int) -> None:
    db.query(User).filter(User.id == user_id).update(
        {User.absences: User.absences + 1}, synchronize_session=False
    )


def decrement_absences(db: Session, user_id: int) -> None:
    """Decrements the absence counter, never below zero."""
    db.query(User).filter(User.id == user_id).update(
        {User.absences: case((User.absences > 0, User.absences - 1), else_=0)},
        synchronize_session=False,
    )
