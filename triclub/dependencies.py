from fastapi import Request

from triclub.services.notifications import NotificationDispatcher


# Session per request, taken from the factory the application was built with
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.notification_dispatcher
