"""
Boundary to the notification collaborator (email / SMS / push).

Delivery itself belongs to the club's notification service. The signup service
only collects what should be sent while its transaction runs and hands it over
here once the transaction has committed.
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    WAITLIST_PROMOTION = "WAITLIST_PROMOTION"
    LAST_MINUTE_OPPORTUNITY = "LAST_MINUTE_OPPORTUNITY"


@dataclass(frozen=True)
class NotifiedUser:
    id: int
    name: str
    email: str
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class WorkoutSummary:
    id: int
    title: str
    workout_date: Optional[date] = None
    workout_time: Optional[time] = None


@dataclass(frozen=True)
class PendingNotification:
    kind: NotificationKind
    user: NotifiedUser
    workout: WorkoutSummary


def notified_user_from(user) -> NotifiedUser:
    return NotifiedUser(id=user.id, name=user.name, email=user.email, phone_number=user.phone_number)


def workout_summary_from(workout) -> WorkoutSummary:
    return WorkoutSummary(
        id=workout.id,
        title=workout.title or "Workout",
        workout_date=workout.workout_date,
        workout_time=workout.workout_time,
    )


class NotificationDispatcher:
    """
    Default dispatcher: logs the message that the delivery service would send.
    Deployments plug in a dispatcher that talks to the real delivery service.
    """

    def notify_waitlist_promotion(self, user: NotifiedUser, workout: WorkoutSummary) -> None:
        logger.info(
            f"Waitlist promotion for user {user.id} ({user.email}): "
            f"you are now signed up for '{workout.title}' on {workout.workout_date} {workout.workout_time or ''}".rstrip()
        )

    def notify_last_minute_opportunity(self, user: NotifiedUser, workout: WorkoutSummary) -> None:
        logger.info(
            f"Last-minute opportunity for user {user.id} ({user.email}): "
            f"a spot opened in '{workout.title}' on {workout.workout_date}; sign up to claim it"
        )


def dispatch_notifications(dispatcher: NotificationDispatcher, notifications: Iterable[PendingNotification]) -> int:
    """
    Sends notifications after commit. Every failure is logged and swallowed:
    a failed delivery never affects the committed signup state.
    Returns the number of notifications handed over successfully.
    """
    sent = 0
    for notification in notifications:
        try:
            if notification.kind == NotificationKind.WAITLIST_PROMOTION:
                dispatcher.notify_waitlist_promotion(notification.user, notification.workout)
            elif notification.kind == NotificationKind.LAST_MINUTE_OPPORTUNITY:
                dispatcher.notify_last_minute_opportunity(notification.user, notification.workout)
            else:
                logger.warning(f"Unknown notification kind: {notification.kind}")
                continue
            sent += 1
        except Exception as e:
            logger.exception(
                f"Failed to send {notification.kind.value} notification to user "
                f"{notification.user.id} for workout {notification.workout.id}: {e}"
            )
    return sent
