from .workout import (
    # Workouts and posts
    get_workout,
    get_post,

    # Signups
    count_signups,
    get_signup,
    get_signups,
    insert_signup_if_capacity,

    # Waitlist
    get_waitlist_entry,
    get_waitlist,
    get_waitlist_head,

    # History
    get_cancellation,
    get_attendance,
)
