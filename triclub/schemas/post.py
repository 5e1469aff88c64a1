from datetime import time, date
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from triclub.schemas.workout import UserBrief, WorkoutBase


class PostUpdate(BaseModel):
    """
    Partial update of a forum post. Only fields present in the request are
    changed; an explicit null capacity removes the limit.
    """
    title: Optional[str] = None
    content: Optional[str] = None
    workout_type: Optional[str] = Field(default=None, alias="workoutType")
    workout_date: Optional[date] = Field(default=None, alias="workoutDate")
    workout_time: Optional[time] = Field(default=None, alias="workoutTime")
    capacity: Optional[int] = Field(default=None, ge=0)
    event_date: Optional[date] = Field(default=None, alias="eventDate")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("content")
    def validate_content(cls, v: Optional[str]) -> str:
        # forum_posts.content is NOT NULL; clearing it means sending ""
        if v is None:
            raise ValueError("content cannot be null, send an empty string to clear it")
        return v


class PostUpdateResponse(BaseModel):
    message: str
    post: WorkoutBase
    promoted_users: List[UserBrief] = Field(alias="promotedUsers")

    model_config = ConfigDict(populate_by_name=True)
