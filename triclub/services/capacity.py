import logging
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from triclub.crud import workout as crud

logger = logging.getLogger(__name__)


class SlotDecision(str, Enum):
    RESERVED = "RESERVED"
    FULL = "FULL"


def decide(capacity: Optional[int], current_signup_count: int) -> SlotDecision:
    """NULL capacity means unlimited."""
    if capacity is None or current_signup_count < capacity:
        return SlotDecision.RESERVED
    return SlotDecision.FULL


def slots_freed(new_capacity: Optional[int], current_signup_count: int, waitlist_size: int) -> int:
    """
    Number of waitlisted users a capacity change can let in.
    Removing the limit frees a slot for everyone on the waitlist.
    """
    if new_capacity is None:
        return waitlist_size
    return max(0, new_capacity - current_signup_count)


class CapacityGate:
    def __init__(self, db: Session):
        self.db = db

    def try_reserve_slot(self, workout_id: int, user_id: int, capacity: Optional[int]) -> SlotDecision:
        """
        Check and reserve in one conditional INSERT so that two concurrent
        requests that both see one free slot cannot both get it.
        """
        inserted = crud.insert_signup_if_capacity(self.db, workout_id, user_id, capacity)
        decision = SlotDecision.RESERVED if inserted else SlotDecision.FULL
        logger.debug(f"Slot decision for user {user_id} on workout {workout_id} (capacity={capacity}): {decision.value}")
        return decision
