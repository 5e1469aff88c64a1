from triclub.services.capacity import SlotDecision, decide, slots_freed


def test_unlimited_capacity_always_reserves():
    assert decide(None, 0) == SlotDecision.RESERVED
    assert decide(None, 500) == SlotDecision.RESERVED


def test_free_slot_reserves():
    assert decide(3, 2) == SlotDecision.RESERVED


def test_full_workout():
    assert decide(3, 3) == SlotDecision.FULL
    # capacity lowered below the current signups
    assert decide(2, 3) == SlotDecision.FULL


def test_zero_capacity_is_always_full():
    assert decide(0, 0) == SlotDecision.FULL


def test_slots_freed_by_increase():
    assert slots_freed(3, 1, 5) == 2
    assert slots_freed(5, 5, 2) == 0


def test_slots_freed_never_negative():
    assert slots_freed(1, 3, 4) == 0


def test_removing_the_limit_frees_the_whole_waitlist():
    assert slots_freed(None, 10, 4) == 4
