import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from triclub.auth.permissions import get_current_user
from triclub.dependencies import get_db, get_notification_dispatcher
from triclub.errors.workout_errors import PostNotFound, NotAuthorizedToEdit
from triclub.models import MEMBER_ROLES
from triclub.schemas.post import PostUpdate, PostUpdateResponse
from triclub.schemas.workout import MessageResponse, UserBrief, WorkoutBase
from triclub.services.notifications import NotificationDispatcher, dispatch_notifications
from triclub.services.signup import SignupService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


# Update a post (author, exec or administrator)
@router.put("/{post_id}", response_model=PostUpdateResponse)
def update_post_endpoint(
    post_id: int,
    post_data: PostUpdate,
    background_tasks: BackgroundTasks,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """
    Updates a post. Raising a workout's capacity promotes waitlisted members in
    the order they joined; they are notified after the change is committed.
    """
    service = SignupService(db)
    try:
        result = service.update_post(post_id, current_user, post_data.model_dump(exclude_unset=True))
    except PostNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAuthorizedToEdit as e:
        raise HTTPException(status_code=403, detail=str(e))

    if result.notifications:
        background_tasks.add_task(dispatch_notifications, dispatcher, result.notifications)

    return PostUpdateResponse(
        message="Post updated successfully",
        post=WorkoutBase.model_validate(result.post),
        promoted_users=[UserBrief.model_validate(user) for user in result.promoted_users],
    )


# Soft delete a post
@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post_endpoint(
    post_id: int,
    current_user = Depends(get_current_user(MEMBER_ROLES)),
    db: Session = Depends(get_db),
):
    service = SignupService(db)
    try:
        service.delete_post(post_id, current_user)
    except PostNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAuthorizedToEdit as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"message": "Post deleted successfully"}
