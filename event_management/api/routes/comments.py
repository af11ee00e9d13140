"""
Event comment endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.db.session import get_db
from event_management.schemas.comment import CommentCreate, CommentResponse, CommentVisibility
from event_management.services import comment_service
from event_management.services.authorization_service import has_permission
from event_management.api.deps import require_permission
from event_management.core.permissions import Permission
from event_management.core.security import Principal, get_current_principal, get_current_user_id

router = APIRouter(tags=["Comments"])


@router.get("/events/{event_id}/comments", response_model=list[CommentResponse])
async def list_comments_endpoint(
    event_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Threaded comments. Moderators also see hidden ones."""
    moderator = await has_permission(db, principal, Permission.MANAGE_EVENTS.value)
    return await comment_service.list_comments(db, event_id, include_hidden=moderator)


@router.post(
    "/events/{event_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment_endpoint(
    event_id: int,
    data: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, event_id, principal, data)
    return CommentResponse.model_validate(comment)


@router.put("/comments/{comment_id}/visibility", response_model=CommentResponse)
async def set_comment_visibility_endpoint(
    comment_id: int,
    data: CommentVisibility,
    principal: Principal = Depends(require_permission(Permission.MANAGE_EVENTS)),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.set_hidden(db, comment_id, data.hidden)
    return CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, comment_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
