import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns the signup service reads or writes, per table
REQUIRED_COLUMNS = {
    "users": {"id", "name", "email", "phone_number", "role", "absences"},
    "forum_posts": {
        "id", "user_id", "type", "title", "content", "workout_date",
        "workout_time", "capacity", "is_deleted",
    },
    "workout_signups": {"id", "post_id", "user_id", "signup_time"},
    "workout_waitlist": {"id", "post_id", "user_id", "joined_at"},
    "workout_cancellations": {"id", "post_id", "user_id", "cancelled_at", "within_12hrs", "marked_absent"},
    "workout_attendance": {"id", "post_id", "user_id", "attended", "late", "recorded_by_id", "recorded_at"},
}


class SchemaMismatch(RuntimeError):
    """Raised at startup when the database is missing a table or column."""
    pass


def verify_schema(engine: Engine) -> None:
    """
    Check once, at startup, that the database has every table and column the
    application uses. Fails fast instead of falling back per request.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    problems = []
    for table, columns in REQUIRED_COLUMNS.items():
        if table not in existing_tables:
            problems.append(f"missing table '{table}'")
            continue
        present = {column["name"] for column in inspector.get_columns(table)}
        for column in sorted(columns - present):
            problems.append(f"missing column '{table}.{column}'")

    if problems:
        logger.error(f"Database schema check failed: {problems}")
        raise SchemaMismatch("Database schema is out of date: " + "; ".join(problems))

    logger.info("Database schema check passed.")
