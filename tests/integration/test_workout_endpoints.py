from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from triclub.config import config
from triclub.crud import workout as crud
from triclub.models import UserRole


def local_schedule(hours_from_now):
    """Club-local date and time of an instant `hours_from_now` from now."""
    start = datetime.now(ZoneInfo("America/Toronto")) + timedelta(hours=hours_from_now)
    return start.date(), start.time().replace(microsecond=0)


@pytest.fixture
def upcoming_workout(create_workout):
    """Factory for a workout starting some hours from now."""

    def _upcoming_workout(capacity, hours_from_now=24 * 10):
        workout_date, workout_time = local_schedule(hours_from_now)
        return create_workout(capacity=capacity, workout_date=workout_date, workout_time=workout_time)

    return _upcoming_workout


# --- Signup toggle ---

def test_signup_endpoint(client, upcoming_workout, member_a, auth_headers_for):
    workout = upcoming_workout(capacity=2)

    response = client.post(f"/workouts/{workout.id}/signup", headers=auth_headers_for(member_a))

    assert response.status_code == 200
    assert response.json() == {"message": "Signed up successfully", "signedUp": True}


def test_signup_endpoint_full_workout(client, upcoming_workout, add_signup, member_a, member_b, auth_headers_for):
    workout = upcoming_workout(capacity=1)
    add_signup(workout, member_a)

    response = client.post(f"/workouts/{workout.id}/signup", headers=auth_headers_for(member_b))

    assert response.status_code == 200
    assert response.json() == {
        "message": "Workout is full, added to waitlist",
        "signedUp": False,
        "joinedWaitlist": True,
    }


def test_cancel_endpoint_promotes_and_notifies(
    client, db_session, dispatcher, upcoming_workout, add_signup, add_to_waitlist, member_a, member_b, auth_headers_for
):
    workout = upcoming_workout(capacity=1)
    add_signup(workout, member_a)
    add_to_waitlist(workout, member_b)

    response = client.post(f"/workouts/{workout.id}/signup", headers=auth_headers_for(member_a))

    assert response.status_code == 200
    assert response.json() == {
        "message": "Signup cancelled",
        "signedUp": False,
        "within12hrs": False,
        "markedAbsent": False,
    }
    assert crud.get_signup(db_session, workout.id, member_b.id) is not None

    dispatcher.notify_waitlist_promotion.assert_called_once()
    notified_user, notified_workout = dispatcher.notify_waitlist_promotion.call_args.args
    assert notified_user.id == member_b.id
    assert notified_workout.id == workout.id


def test_late_cancel_endpoint_offers_spot(
    client, db_session, dispatcher, upcoming_workout, add_signup, add_to_waitlist, member_a, member_b, auth_headers_for
):
    workout = upcoming_workout(capacity=1, hours_from_now=3)
    add_signup(workout, member_a)
    add_to_waitlist(workout, member_b)

    response = client.post(f"/workouts/{workout.id}/signup", headers=auth_headers_for(member_a))

    assert response.status_code == 200
    body = response.json()
    assert body["within12hrs"] is True
    assert body["markedAbsent"] is True
    assert body["signedUp"] is False

    db_session.refresh(member_a)
    assert member_a.absences == 1
    assert crud.get_waitlist_entry(db_session, workout.id, member_b.id) is not None
    dispatcher.notify_last_minute_opportunity.assert_called_once()
    dispatcher.notify_waitlist_promotion.assert_not_called()


def test_failed_notification_does_not_fail_request(
    client, db_session, dispatcher, upcoming_workout, add_signup, add_to_waitlist, member_a, member_b, auth_headers_for
):
    dispatcher.notify_waitlist_promotion.side_effect = RuntimeError("SMS gateway down")
    workout = upcoming_workout(capacity=1)
    add_signup(workout, member_a)
    add_to_waitlist(workout, member_b)

    response = client.post(f"/workouts/{workout.id}/signup", headers=auth_headers_for(member_a))

    assert response.status_code == 200
    assert crud.get_signup(db_session, workout.id, member_b.id) is not None


def test_signup_missing_workout(client, member_a, auth_headers_for):
    response = client.post("/workouts/999/signup", headers=auth_headers_for(member_a))
    assert response.status_code == 404
    assert response.json()["detail"] == "Workout not found"


def test_signup_requires_token(client, upcoming_workout):
    workout = upcoming_workout(capacity=1)
    response = client.post(f"/workouts/{workout.id}/signup")
    assert response.status_code == 401


def test_pending_user_cannot_sign_up(client, upcoming_workout, create_user, auth_headers_for):
    workout = upcoming_workout(capacity=1)
    pending = create_user("New person", UserRole.PENDING)

    response = client.post(f"/workouts/{workout.id}/signup", headers=auth_headers_for(pending))

    assert response.status_code == 403
    assert response.json()["detail"] == "Your club membership is pending approval"


# --- Waitlist ---

def test_waitlist_endpoints(client, upcoming_workout, member_a, auth_headers_for):
    workout = upcoming_workout(capacity=3)
    headers = auth_headers_for(member_a)

    response = client.post(f"/workouts/{workout.id}/waitlist", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Added to waitlist successfully"}

    response = client.post(f"/workouts/{workout.id}/waitlist", headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Already on waitlist"

    response = client.delete(f"/workouts/{workout.id}/waitlist", headers=headers)
    assert response.status_code == 200

    response = client.delete(f"/workouts/{workout.id}/waitlist", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Not on waitlist"


def test_signed_up_user_cannot_join_waitlist(client, upcoming_workout, add_signup, member_a, auth_headers_for):
    workout = upcoming_workout(capacity=3)
    add_signup(workout, member_a)

    response = client.post(f"/workouts/{workout.id}/waitlist", headers=auth_headers_for(member_a))

    assert response.status_code == 400
    assert response.json()["detail"] == "Already signed up for this workout"


def test_waitlist_missing_workout(client, member_a, auth_headers_for):
    response = client.post("/workouts/999/waitlist", headers=auth_headers_for(member_a))
    assert response.status_code == 404


# --- Reads ---

def test_get_workout_with_signups_and_waitlist(
    client, upcoming_workout, add_signup, add_to_waitlist, member_a, member_b, member_c, auth_headers_for
):
    workout = upcoming_workout(capacity=1)
    add_signup(workout, member_a)
    add_to_waitlist(workout, member_b)
    add_to_waitlist(workout, member_c)

    response = client.get(f"/workouts/{workout.id}", headers=auth_headers_for(member_a))

    assert response.status_code == 200
    body = response.json()
    assert body["workout"]["id"] == workout.id
    assert body["workout"]["capacity"] == 1
    assert [s["user"]["name"] for s in body["signups"]] == ["Alice"]
    assert [w["user"]["name"] for w in body["waitlist"]] == ["Bob", "Carol"]
    assert body["waitlist"][0]["user"]["role"] == "member"

    response = client.get(f"/workouts/{workout.id}/waitlist", headers=auth_headers_for(member_a))
    assert [w["user_id"] for w in response.json()["waitlist"]] == [member_b.id, member_c.id]

    response = client.get(f"/workouts/{workout.id}/signups", headers=auth_headers_for(member_a))
    assert [s["user_id"] for s in response.json()["signups"]] == [member_a.id]


def test_get_missing_workout(client, member_a, auth_headers_for):
    response = client.get("/workouts/999", headers=auth_headers_for(member_a))
    assert response.status_code == 404


# --- Attendance ---

def test_submit_and_read_attendance(client, upcoming_workout, add_signup, admin, member_a, member_b, auth_headers_for):
    workout = upcoming_workout(capacity=4, hours_from_now=-2)
    add_signup(workout, member_a)
    add_signup(workout, member_b)
    payload = {"attendance": {str(member_a.id): True, str(member_b.id): False}}

    response = client.post(f"/workouts/{workout.id}/attendance", json=payload, headers=auth_headers_for(admin))

    assert response.status_code == 200
    assert response.json() == {"message": "Attendance saved successfully", "recorded": 2, "absences_added": 1}

    response = client.get(f"/workouts/{workout.id}/attendance", headers=auth_headers_for(member_a))
    assert response.status_code == 200
    attended = {row["user_id"]: row["attended"] for row in response.json()["attendance"]}
    assert attended == {member_a.id: True, member_b.id: False}

    response = client.post(f"/workouts/{workout.id}/attendance", json=payload, headers=auth_headers_for(admin))
    assert response.status_code == 400


def test_member_cannot_submit_attendance(client, upcoming_workout, member_a, auth_headers_for):
    workout = upcoming_workout(capacity=4)

    response = client.post(
        f"/workouts/{workout.id}/attendance",
        json={"attendance": {str(member_a.id): True}},
        headers=auth_headers_for(member_a),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only club roles exec, administrator can do this (you are member)"


# --- Cron and health ---

def test_reclassify_requires_api_key(client):
    response = client.post("/cron/reclassify-cancellations")
    assert response.status_code == 403


def test_reclassify_with_api_key(client, monkeypatch):
    monkeypatch.setattr(config, "CRON_API_KEY", "test-cron-key")

    response = client.post("/cron/reclassify-cancellations", headers={"X-API-Key": "test-cron-key"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Cancellations reclassified"
    assert body["processed"] == 0


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"message": "Healthy!"}


def test_health_reports_database(client):
    response = client.get("/health")
    assert response.json() == {"status": "healthy", "database": "connected"}
