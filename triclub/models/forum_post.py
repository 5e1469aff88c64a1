from datetime import datetime
from sqlalchemy import Column, Integer, Date, Time, ForeignKey, Boolean, String, Text, DateTime
from sqlalchemy.orm import relationship

from triclub.database import Base
from enum import Enum


class PostType(str, Enum):
    POST = "post"
    WORKOUT = "workout"
    EVENT = "event"


class ForumPost(Base):
    """
    Forum post. A workout is a post with type == "workout"; only workouts carry
    a schedule (local date and wall-clock time in the club timezone) and an
    optional capacity (NULL means unlimited).
    """
    __tablename__ = "forum_posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False, default=PostType.POST.value)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False, default="")
    workout_type = Column(String(100), nullable=True)
    workout_date = Column(Date, nullable=True)
    workout_time = Column(Time, nullable=True)
    capacity = Column(Integer, nullable=True)
    event_date = Column(Date, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    author = relationship("User", back_populates="posts")
    signups = relationship("WorkoutSignup", back_populates="workout", order_by="WorkoutSignup.signup_time")
    waitlist = relationship(
        "WorkoutWaitlistEntry",
        back_populates="workout",
        order_by="WorkoutWaitlistEntry.joined_at",
    )

    @property
    def is_workout(self) -> bool:
        return self.type == PostType.WORKOUT.value
