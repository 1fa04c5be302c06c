# File: app/routers/comments.py
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from app.core.errors import NotFound
from app.core.policy import Action, authorize
from app.core.security import get_current_user
from app.db.session import get_db
from app.models.comment import Comment
from app.models.user import User
from app.schemas.comment import CommentCreate, CommentOut, CommentUpdate
from app.services.notifications import notify_comment
from app.services.tickets import get_ticket

router = APIRouter(prefix="/comments", tags=["comments"])


def _comment_out(c: Comment) -> CommentOut:
    out = CommentOut.model_validate(c)
    out.author_name = c.author.username if c.author else None
    return out


def _get_comment(db: Session, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if not comment:
        raise NotFound("Comment not found")
    return comment


def attachment_path_for(name: str) -> str:
    """Reference path recorded for an attachment; the upload itself happens elsewhere."""
    safe = name.replace("/", "_").replace("\\", "_")
    return f"/uploads/{int(time.time() * 1000)}_{safe}"


@router.get("/ticket/{ticket_id}")
def list_comments(ticket_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    ticket = get_ticket(db, ticket_id)
    authorize(me, Action.read, ticket)
    rows = (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.ticket_id == ticket.id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )
    return {"comments": [_comment_out(c) for c in rows]}


@router.post("")
def add_comment(body: CommentCreate, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    ticket = get_ticket(db, body.ticket_id)
    # anyone who can see the ticket can join its discussion
    authorize(me, Action.read, ticket, "You cannot comment on this ticket")

    comment = Comment(
        ticket_id=ticket.id,
        author_id=me.id,
        content=body.content,
        attachment_name=body.attachment_name,
        attachment_path=attachment_path_for(body.attachment_name) if body.attachment_name else None,
    )
    db.add(comment)
    notify_comment(db, ticket, me, body.content)
    db.commit()
    db.refresh(comment)
    return {"message": "Comment added", "comment": _comment_out(comment)}


@router.put("/{comment_id}")
def edit_comment(
    comment_id: int,
    body: CommentUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    comment = _get_comment(db, comment_id)
    authorize(me, Action.update, comment, "Only the author can edit this comment")
    comment.content = body.content
    comment.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(comment)
    return {"message": "Comment updated", "comment": _comment_out(comment)}


@router.delete("/{comment_id}")
def delete_comment(comment_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    comment = _get_comment(db, comment_id)
    authorize(me, Action.delete, comment, "You cannot delete this comment")
    db.delete(comment)
    db.commit()
    return {"message": "Comment deleted"}
