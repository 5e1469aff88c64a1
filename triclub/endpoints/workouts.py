import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from triclub.auth.permissions import get_current_user
from triclub.crud import workout as crud
from triclub.dependencies import get_db, get_notification_dispatcher
from triclub.errors.workout_errors import (
    WorkoutNotFound,
    AlreadySignedUp,
    AlreadyOnWaitlist,
    NotOnWaitlist,
    AttendanceAlreadySubmitted,
)
from triclub.models import MEMBER_ROLES, STAFF_ROLES
from triclub.schemas.workout import (
    AttendanceList,
    AttendanceSubmission,
    AttendanceSubmissionResponse,
    MessageResponse,
    SignupToggleResponse,
    SignupsList,
    WaitlistList,
    WorkoutDetailResponse,
)
from triclub.services.attendance import AttendanceService
from triclub.services.notifications import NotificationDispatcher, dispatch_notifications
from triclub.services.signup import SignupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workouts", tags=["Workouts"])


def _get_workout_or_404(db: Session, workout_id: int):
    workout = crud.get_workout(db, workout_id)
    if not workout:
        raise HTTPException(status_code=404, detail="Workout not found")
    return workout


# Toggle signup: sign up, join the waitlist when full, or cancel
@router.post(
    "/{workout_id}/signup",
    response_model=SignupToggleResponse,
    response_model_exclude_none=True,
)
def toggle_signup_endpoint(
    workout_id: int,
    background_tasks: BackgroundTasks,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Toggles the current user's signup on a workout.

    - not signed up, slot free: signs up
    - not signed up, workout full: joins the waitlist
    - signed up: cancels; within 12 hours of the start the cancellation is
      recorded as an absence and the waitlist is only offered the spot
    """
    service = SignupService(db)
    try:
        result = service.toggle_signup(workout_id, current_user["id"])
    except WorkoutNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    if result.notifications:
        background_tasks.add_task(dispatch_notifications, dispatcher, result.notifications)

    return SignupToggleResponse(
        message=result.message,
        signed_up=result.signed_up,
        within_12hrs=result.within_12hrs,
        marked_absent=result.marked_absent,
        joined_waitlist=True if result.joined_waitlist else None,
    )


# Explicit waitlist join
@router.post("/{workout_id}/waitlist", response_model=MessageResponse)
def join_waitlist_endpoint(
    workout_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    service = SignupService(db)
    try:
        service.join_waitlist(workout_id, current_user["id"])
    except WorkoutNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (AlreadyOnWaitlist, AlreadySignedUp) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Added to waitlist successfully"}


# Explicit waitlist withdrawal
@router.delete("/{workout_id}/waitlist", response_model=MessageResponse)
def leave_waitlist_endpoint(
    workout_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    service = SignupService(db)
    try:
        service.leave_waitlist(workout_id, current_user["id"])
    except (WorkoutNotFound, NotOnWaitlist) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Removed from waitlist successfully"}


# Workout with its signups and waitlist
@router.get("/{workout_id}", response_model=WorkoutDetailResponse)
def get_workout_endpoint(
    workout_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    workout = _get_workout_or_404(db, workout_id)
    return {
        "workout": workout,
        "signups": crud.get_signups(db, workout_id),
        "waitlist": crud.get_waitlist(db, workout_id),
    }


@router.get("/{workout_id}/signups", response_model=SignupsList)
def get_signups_endpoint(
    workout_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    _get_workout_or_404(db, workout_id)
    return {"signups": crud.get_signups(db, workout_id)}


@router.get("/{workout_id}/waitlist", response_model=WaitlistList)
def get_waitlist_endpoint(
    workout_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    _get_workout_or_404(db, workout_id)
    return {"waitlist": crud.get_waitlist(db, workout_id)}


@router.get("/{workout_id}/attendance", response_model=AttendanceList)
def get_attendance_endpoint(
    workout_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    _get_workout_or_404(db, workout_id)
    return {"attendance": crud.get_attendance(db, workout_id)}


# Staff attendance submission
@router.post("/{workout_id}/attendance", response_model=AttendanceSubmissionResponse)
def submit_attendance_endpoint(
    workout_id: int,
    submission: AttendanceSubmission,
    current_user = Depends(get_current_user(STAFF_ROLES)),
    db: Session = Depends(get_db),
):
    """
    Records who attended. Signed-up members not marked present get an absence.
    Attendance can be submitted once per workout.
    """
    service = AttendanceService(db)
    try:
        summary = service.submit_attendance(
            workout_id,
            submission.attendance,
            recorded_by_id=current_user["id"],
            late=submission.late,
        )
    except WorkoutNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AttendanceAlreadySubmitted as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Attendance saved successfully", **summary}
