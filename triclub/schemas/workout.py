from datetime import time, date, datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field

from triclub.models.user import UserRole


class UserBrief(BaseModel):
    id: int
    name: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class WorkoutBase(BaseModel):
    id: int
    title: Optional[str]
    content: str
    workout_type: Optional[str]
    workout_date: Optional[date]
    workout_time: Optional[time]
    capacity: Optional[int]
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class SignupResponse(BaseModel):
    id: int
    user_id: int
    signup_time: datetime
    user: UserBrief

    model_config = ConfigDict(from_attributes=True)


class WaitlistEntryResponse(BaseModel):
    id: int
    user_id: int
    joined_at: datetime
    user: UserBrief

    model_config = ConfigDict(from_attributes=True)


class AttendanceResponse(BaseModel):
    id: int
    user_id: int
    attended: bool
    late: bool
    recorded_by_id: Optional[int]
    recorded_at: datetime
    user: UserBrief

    model_config = ConfigDict(from_attributes=True)


class WorkoutDetailResponse(BaseModel):
    workout: WorkoutBase
    signups: List[SignupResponse]
    waitlist: List[WaitlistEntryResponse]


class SignupsList(BaseModel):
    signups: List[SignupResponse]


class WaitlistList(BaseModel):
    waitlist: List[WaitlistEntryResponse]


class AttendanceList(BaseModel):
    attendance: List[AttendanceResponse]


class SignupToggleResponse(BaseModel):
    """Result of the signup toggle; optional flags are omitted when not applicable."""
    message: str
    signed_up: bool = Field(alias="signedUp")
    within_12hrs: Optional[bool] = Field(default=None, alias="within12hrs")
    marked_absent: Optional[bool] = Field(default=None, alias="markedAbsent")
    joined_waitlist: Optional[bool] = Field(default=None, alias="joinedWaitlist")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    message: str


class AttendanceSubmission(BaseModel):
    """Attendance per user id; `late` marks users who arrived late."""
    attendance: Dict[int, bool]
    late: Dict[int, bool] = {}


class AttendanceSubmissionResponse(BaseModel):
    message: str
    recorded: int
    absences_added: int
