import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from sqlalchemy.orm import Session

from triclub.crud import workout as crud
from triclub.models import ForumPost, User

logger = logging.getLogger(__name__)


class VacancyReason(str, Enum):
    NORMAL_CANCELLATION = "NORMAL_CANCELLATION"
    LATE_CANCELLATION = "LATE_CANCELLATION"
    CAPACITY_INCREASE = "CAPACITY_INCREASE"


class VacancyOutcomeKind(str, Enum):
    PROMOTED = "PROMOTED"    # moved from the waitlist into a signup
    OFFERED = "OFFERED"      # told about the spot, still on the waitlist
    NO_ONE = "NO_ONE"        # waitlist empty


@dataclass
class VacancyOutcome:
    kind: VacancyOutcomeKind
    user: Optional[User] = None


class WaitlistPromoter:
    """
    Resolves a freed slot against the FIFO waitlist.

    A late cancellation does not promote anybody: the member who cancelled may
    still show up, so the head of the waitlist is only offered the spot and
    keeps their position until they sign up themselves.
    """

    def __init__(self, db: Session):
        self.db = db

    def on_vacancy(self, workout: ForumPost, reason: VacancyReason) -> VacancyOutcome:
        head = crud.get_waitlist_head(self.db, workout.id)
        if head is None:
            logger.info(f"Vacancy on workout {workout.id} ({reason.value}): waitlist is empty")
            return VacancyOutcome(VacancyOutcomeKind.NO_ONE)

        user = crud.get_user(self.db, head.user_id)

        if reason == VacancyReason.LATE_CANCELLATION:
            logger.info(f"Late vacancy on workout {workout.id}: offering the spot to user {head.user_id} without promotion")
            return VacancyOutcome(VacancyOutcomeKind.OFFERED, user)

        crud.delete_waitlist_entry_by_id(self.db, head.id)
        crud.add_signup(self.db, workout.id, head.user_id)
        logger.info(f"Promoted user {head.user_id} from the waitlist of workout {workout.id} ({reason.value})")
        return VacancyOutcome(VacancyOutcomeKind.PROMOTED, user)

    def promote_for_capacity_increase(self, workout: ForumPost, slots: int) -> List[User]:
        """Promotes up to `slots` waitlisted users in FIFO order."""
        promoted = []
        for _ in range(slots):
            outcome = self.on_vacancy(workout, VacancyReason.CAPACITY_INCREASE)
            if outcome.kind != VacancyOutcomeKind.PROMOTED:
                break
            promoted.append(outcome.user)
        return promoted
