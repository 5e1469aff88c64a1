from datetime import datetime
from sqlalchemy import Column, Integer, ForeignKey, Boolean, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from triclub.database import Base


class WorkoutSignup(Base):
    """Confirmed slot of one user on one workout."""
    __tablename__ = "workout_signups"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_workout_signups_post_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    signup_time = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    # Relationships
    workout = relationship("ForumPost", back_populates="signups")
    user = relationship("User")


class WorkoutWaitlistEntry(Base):
    """FIFO request for a slot; ordered by joined_at, then id."""
    __tablename__ = "workout_waitlist"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_workout_waitlist_post_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    # Relationships
    workout = relationship("ForumPost", back_populates="waitlist")
    user = relationship("User")


class WorkoutCancellation(Base):
    """Latest cancellation of a user on a workout. Kept as history, never deleted."""
    __tablename__ = "workout_cancellations"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_workout_cancellations_post_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    within_12hrs = Column(Boolean, nullable=False, default=False)
    marked_absent = Column(Boolean, nullable=False, default=False)

    user = relationship("User")


class WorkoutAttendance(Base):
    """
    Attendance of a user on a workout.

    recorded_by_id is NULL for records synthesized from a late cancellation.
    """
    __tablename__ = "workout_attendance"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_workout_attendance_post_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    attended = Column(Boolean, nullable=False, default=False)
    late = Column(Boolean, nullable=False, default=False)
    recorded_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])
    recorded_by = relationship("User", foreign_keys=[recorded_by_id])
