# File: app/routers/notifications.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.core.policy import Action, authorize
from app.core.security import get_current_user
from app.db.session import get_db
from app.models.notification import Notification
from app.models.project import Project
from app.models.ticket import Ticket
from app.models.user import User
from app.schemas.notification import NotificationOut

router = APIRouter(prefix="/notifications", tags=["notifications"])

LATEST_LIMIT = 50


def _get_notification(db: Session, notification_id: int) -> Notification:
    n = db.get(Notification, notification_id)
    if not n:
        raise NotFound("Notification not found")
    return n


@router.get("/my")
def my_notifications(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    rows = db.execute(
        select(Notification, Ticket.ticket_number, Project.name)
        .outerjoin(Ticket, Notification.ticket_id == Ticket.id)
        .outerjoin(Project, Notification.project_id == Project.id)
        .where(Notification.user_id == me.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(LATEST_LIMIT)
    ).all()
    items = []
    for n, ticket_number, project_name in rows:
        out = NotificationOut.model_validate(n)
        out.related_item_name = ticket_number if n.ticket_id is not None else project_name
        items.append(out)
    return {"notifications": items}


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    count = (
        db.query(func.count(Notification.id))
        .filter(Notification.user_id == me.id, Notification.is_read.is_(False))
        .scalar()
    )
    return {"unreadCount": count}


@router.put("/read-all")
def read_all(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == me.id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return {"message": "All notifications marked as read", "updated": result.rowcount}


@router.put("/{notification_id}/read")
def mark_read(notification_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    n = _get_notification(db, notification_id)
    authorize(me, Action.update, n)
    if not n.is_read:
        n.is_read = True
        n.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(n)
    return {"message": "Notification marked as read", "notification": NotificationOut.model_validate(n)}


@router.delete("/delete-all")
def delete_all(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    deleted = db.query(Notification).filter(Notification.user_id == me.id).delete(synchronize_session=False)
    db.commit()
    return {"message": "All notifications deleted", "deleted": deleted}


@router.delete("/{notification_id}")
def delete_notification(notification_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    n = _get_notification(db, notification_id)
    authorize(me, Action.delete, n)
    db.delete(n)
    db.commit()
    return {"message": "Notification deleted"}
