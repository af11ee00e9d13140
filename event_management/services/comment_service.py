"""
Event discussion threads.

Comments are flat rows; replies point at a top-level parent through
parent_id and are assembled into a two-level tree when listed. Authors holding
events.manage are flagged as admins on their comments, and moderators
with the same permission can hide or delete any comment.
"""

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from event_management.models.comment import Comment
from event_management.models.event import Event
from event_management.models.user import User
from event_management.schemas.comment import CommentCreate, CommentResponse
from event_management.core.logging import get_logger
from event_management.core.permissions import Permission
from event_management.core.security import Principal
from event_management.services.authorization_service import has_permission

logger = get_logger(__name__)


async def _require_comment(db: AsyncSession, comment_id: int) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Comment {comment_id} not found",
        )
    return comment


async def add_comment(
    db: AsyncSession,
    event_id: int,
    principal: Principal,
    data: CommentCreate,
) -> Comment:
    if await db.get(Event, event_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )

    user = await db.get(User, principal.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )

    if data.parent_id is not None:
        parent = await _require_comment(db, data.parent_id)
        if parent.event_id != event_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reply must belong to the same event as its parent",
            )
        if parent.parent_id is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Replies cannot be nested",
            )

    body = data.body.strip()
    if not body:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Comment body cannot be blank",
        )

    comment = Comment(
        event_id=event_id,
        parent_id=data.parent_id,
        user_id=user.id,
        user_display_name=user.display_name or user.email,
        body=body,
        from_admin=await has_permission(db, principal, Permission.MANAGE_EVENTS.value),
        is_hidden=False,
    )
    db.add(comment)
    await db.flush()
    await db.refresh(comment)

    logger.info(
        "comment_added",
        comment_id=comment.id,
        event_id=event_id,
        parent_id=data.parent_id,
        user_id=user.id,
    )
    return comment


async def list_comments(
    db: AsyncSession,
    event_id: int,
    include_hidden: bool = False,
) -> list[CommentResponse]:
    """
    Threaded comments for an event, oldest first at every level.
    A hidden comment is left out together with its replies.
    """
    query = select(Comment).where(Comment.event_id == event_id)
    if not include_hidden:
        query = query.where(Comment.is_hidden.is_(False))
    result = await db.execute(query.order_by(Comment.created_at.asc(), Comment.id.asc()))

    nodes: dict[int, CommentResponse] = {}
    roots: list[CommentResponse] = []
    for row in result.scalars().all():
        node = CommentResponse.model_validate(row)
        nodes[row.id] = node
        if row.parent_id is None:
            roots.append(node)
        elif row.parent_id in nodes:
            nodes[row.parent_id].replies.append(node)
        # Orphans (parent hidden) are dropped along with their parent

    return roots


async def set_hidden(db: AsyncSession, comment_id: int, hidden: bool) -> Comment:
    comment = await _require_comment(db, comment_id)
    comment.is_hidden = hidden
    await db.flush()
    logger.info("comment_visibility_changed", comment_id=comment_id, hidden=hidden)
    return comment


async def delete_comment(db: AsyncSession, comment_id: int, principal: Principal) -> None:
    """Authors may delete their own comments; moderators may delete any."""
    comment = await _require_comment(db, comment_id)

    is_author = comment.user_id is not None and comment.user_id == principal.user_id
    if not is_author and not await has_permission(db, principal, Permission.MANAGE_EVENTS.value):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to delete this comment",
        )

    await db.delete(comment)
    await db.flush()
    logger.info("comment_deleted", comment_id=comment_id, user_id=principal.user_id)
