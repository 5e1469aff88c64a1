import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from triclub.config import config
from triclub.crud import workout as crud
from triclub.database import transactional
from triclub.errors.workout_errors import (
    WorkoutNotFound,
    PostNotFound,
    AlreadySignedUp,
    AlreadyOnWaitlist,
    NotOnWaitlist,
    NotAuthorizedToEdit,
)
from triclub.models import ForumPost, User, STAFF_ROLES
from triclub.services.cancellation import CancellationClassification, classify
from triclub.services.capacity import CapacityGate, SlotDecision, decide, slots_freed
from triclub.services.notifications import (
    NotificationKind,
    PendingNotification,
    notified_user_from,
    workout_summary_from,
)
from triclub.services.time_resolver import resolve_start
from triclub.services.waitlist import VacancyOutcomeKind, VacancyReason, WaitlistPromoter

logger = logging.getLogger(__name__)

# Fields of a post an editor may change
EDITABLE_POST_FIELDS = ("title", "content", "workout_type", "workout_date", "workout_time", "capacity", "event_date")


class SignupState(str, Enum):
    NOT_SIGNED_UP = "NOT_SIGNED_UP"
    SIGNED_UP = "SIGNED_UP"
    WAITLISTED = "WAITLISTED"


@dataclass
class ToggleResult:
    state: SignupState
    message: str
    within_12hrs: Optional[bool] = None
    marked_absent: Optional[bool] = None
    hours_until_start: Optional[float] = None
    notifications: List[PendingNotification] = field(default_factory=list)

    @property
    def signed_up(self) -> bool:
        return self.state == SignupState.SIGNED_UP

    @property
    def joined_waitlist(self) -> bool:
        return self.state == SignupState.WAITLISTED


@dataclass
class PostUpdateResult:
    post: ForumPost
    promoted_users: List[User] = field(default_factory=list)
    notifications: List[PendingNotification] = field(default_factory=list)


class SignupService:
    """
    Signup state machine of a workout: NOT_SIGNED_UP -> SIGNED_UP | WAITLISTED.

    Every public method runs as one transaction that starts by locking the
    workout row, so operations on the same workout are serialized while
    different workouts proceed in parallel. Notifications are only collected
    here; callers dispatch them after the transaction has committed.
    """

    def __init__(
        self,
        db: Session,
        civil_timezone: str = config.CLUB_TIMEZONE,
        now_provider: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.db = db
        self.civil_timezone = civil_timezone
        self.now_provider = now_provider
        self.capacity_gate = CapacityGate(db)
        self.promoter = WaitlistPromoter(db)

    # --- Public Methods (Transactional) ---

    def toggle_signup(self, workout_id: int, user_id: int) -> ToggleResult:
        """
        Signs the user up, or cancels their signup if they already hold one.
        A full workout puts the user on the waitlist instead.
        """
        with transactional(self.db) as session:
            workout = self._lock_workout(session, workout_id)
            if crud.get_signup(session, workout_id, user_id):
                return self._cancel_signup_logic(session, workout, user_id)
            return self._signup_logic(session, workout, user_id)

    def join_waitlist(self, workout_id: int, user_id: int) -> None:
        with transactional(self.db) as session:
            self._lock_workout(session, workout_id)
            if crud.get_waitlist_entry(session, workout_id, user_id):
                raise AlreadyOnWaitlist("Already on waitlist")
            if crud.get_signup(session, workout_id, user_id):
                raise AlreadySignedUp("Already signed up for this workout")
            crud.add_waitlist_entry(session, workout_id, user_id)
            logger.info(f"User {user_id} joined the waitlist of workout {workout_id}")

    def leave_waitlist(self, workout_id: int, user_id: int) -> None:
        with transactional(self.db) as session:
            self._lock_workout(session, workout_id)
            removed = crud.delete_waitlist_entry(session, workout_id, user_id)
            if not removed:
                raise NotOnWaitlist("Not on waitlist")
            logger.info(f"User {user_id} left the waitlist of workout {workout_id}")

    def get_state(self, workout_id: int, user_id: int) -> SignupState:
        if crud.get_signup(self.db, workout_id, user_id):
            return SignupState.SIGNED_UP
        if crud.get_waitlist_entry(self.db, workout_id, user_id):
            return SignupState.WAITLISTED
        return SignupState.NOT_SIGNED_UP

    def update_post(self, post_id: int, editor: dict, changes: dict) -> PostUpdateResult:
        """
        Applies an author/staff edit to a post. Raising the capacity of a
        workout lets the waitlist in, in FIFO order, inside the same transaction.
        """
        with transactional(self.db) as session:
            post = crud.get_post(session, post_id, for_update=True)
            if not post:
                raise PostNotFound("Post not found")
            self._check_can_edit(post, editor)

            old_capacity = post.capacity
            for key, value in changes.items():
                if key in EDITABLE_POST_FIELDS:
                    setattr(post, key, value)
            session.flush()

            result = PostUpdateResult(post=post)
            if post.is_workout and "capacity" in changes and self._capacity_increased(old_capacity, post.capacity):
                signup_count = crud.count_signups(session, post.id)
                slots = slots_freed(post.capacity, signup_count, crud.count_waitlist(session, post.id))
                logger.info(
                    f"Capacity of workout {post.id} changed {old_capacity} -> {post.capacity}; "
                    f"{slots} slot(s) available for the waitlist"
                )
                promoted = self.promoter.promote_for_capacity_increase(post, slots)
                result.promoted_users = promoted
                result.notifications = [
                    PendingNotification(
                        NotificationKind.WAITLIST_PROMOTION,
                        notified_user_from(user),
                        workout_summary_from(post),
                    )
                    for user in promoted
                ]
            return result

    def delete_post(self, post_id: int, editor: dict) -> None:
        """
        Soft-deletes a post. A deleted workout drops every signup and waitlist
        entry; cancellation and attendance history stays.
        """
        with transactional(self.db) as session:
            post = crud.get_post(session, post_id, for_update=True)
            if not post:
                raise PostNotFound("Post not found")
            self._check_can_edit(post, editor)

            post.is_deleted = True
            if post.is_workout:
                signups = crud.delete_all_signups(session, post.id)
                waitlisted = crud.delete_all_waitlist_entries(session, post.id)
                logger.info(f"Workout {post.id} deleted: removed {signups} signup(s) and {waitlisted} waitlist entr(ies)")

    # --- Private Logic Methods (Non-Transactional) ---

    def _lock_workout(self, session: Session, workout_id: int) -> ForumPost:
        workout = crud.get_workout(session, workout_id, for_update=True)
        if not workout:
            raise WorkoutNotFound("Workout not found")
        return workout

    def _check_can_edit(self, post: ForumPost, editor: dict) -> None:
        if post.user_id != editor["id"] and editor.get("role") not in STAFF_ROLES:
            raise NotAuthorizedToEdit("Not authorized to edit this post")

    @staticmethod
    def _capacity_increased(old_capacity: Optional[int], new_capacity: Optional[int]) -> bool:
        if new_capacity is None:
            return old_capacity is not None
        return old_capacity is not None and new_capacity > old_capacity

    def _classify_now(self, workout: ForumPost) -> CancellationClassification:
        start = resolve_start(workout.workout_date, workout.workout_time, self.civil_timezone)
        return classify(start, self.now_provider())

    def _signup_logic(self, session: Session, workout: ForumPost, user_id: int) -> ToggleResult:
        decision = self.capacity_gate.try_reserve_slot(workout.id, user_id, workout.capacity)

        if decision == SlotDecision.RESERVED:
            # A waitlisted user claiming a freed spot leaves the waitlist
            if crud.delete_waitlist_entry(session, workout.id, user_id):
                logger.info(f"User {user_id} claimed a spot on workout {workout.id} from the waitlist")
            logger.info(f"User {user_id} signed up for workout {workout.id}")
            return ToggleResult(state=SignupState.SIGNED_UP, message="Signed up successfully")

        if crud.get_waitlist_entry(session, workout.id, user_id) is None:
            crud.add_waitlist_entry(session, workout.id, user_id)
            logger.info(f"Workout {workout.id} is full; user {user_id} added to the waitlist")
        return ToggleResult(state=SignupState.WAITLISTED, message="Workout is full, added to waitlist")

    def _cancel_signup_logic(self, session: Session, workout: ForumPost, user_id: int) -> ToggleResult:
        now = self.now_provider()
        classification = self._classify_now(workout)
        is_late = classification.is_late

        crud.upsert_cancellation(
            session,
            workout.id,
            user_id,
            cancelled_at=now,
            within_12hrs=is_late,
            marked_absent=is_late,
        )
        if is_late:
            crud.upsert_attendance(session, workout.id, user_id, attended=False, recorded_at=now)
            crud.increment_absences(session, user_id)
            logger.warning(
                f"Late cancellation by user {user_id} on workout {workout.id} "
                f"({classification.hours_until_start:.2f}h before start): absence recorded"
            )
        else:
            logger.info(f"User {user_id} cancelled signup for workout {workout.id}")

        crud.delete_signup(session, workout.id, user_id)

        result = ToggleResult(
            state=SignupState.NOT_SIGNED_UP,
            message="Signup cancelled",
            within_12hrs=is_late,
            marked_absent=is_late,
            hours_until_start=classification.hours_until_start,
        )

        # Only a real free slot is handed to the waitlist
        if decide(workout.capacity, crud.count_signups(session, workout.id)) == SlotDecision.FULL:
            return result

        reason = VacancyReason.LATE_CANCELLATION if is_late else VacancyReason.NORMAL_CANCELLATION
        outcome = self.promoter.on_vacancy(workout, reason)
        if outcome.kind == VacancyOutcomeKind.PROMOTED:
            result.notifications.append(PendingNotification(
                NotificationKind.WAITLIST_PROMOTION,
                notified_user_from(outcome.user),
                workout_summary_from(workout),
            ))
        elif outcome.kind == VacancyOutcomeKind.OFFERED:
            result.notifications.append(PendingNotification(
                NotificationKind.LAST_MINUTE_OPPORTUNITY,
                notified_user_from(outcome.user),
                workout_summary_from(workout),
            ))
        return result
