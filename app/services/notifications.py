# app/services/notifications.py
"""In-app notifications raised by ticket and account events.

Helpers only add rows to the session; the caller's commit persists them
together with the change that triggered them.
"""
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.models.notification import Notification, NotificationKind
from app.models.ticket import Ticket
from app.models.user import User


def notify(
    db: Session,
    user_id: int,
    kind: NotificationKind,
    title: str,
    message: Optional[str] = None,
    ticket_id: Optional[int] = None,
    project_id: Optional[int] = None,
) -> Notification:
    n = Notification(
        user_id=user_id,
        kind=kind.value,
        title=title,
        message=message,
        ticket_id=ticket_id,
        project_id=project_id,
    )
    db.add(n)
    return n


def notify_many(db: Session, user_ids: Iterable[int], kind: NotificationKind, title: str, **kwargs) -> None:
    for uid in dict.fromkeys(user_ids):
        notify(db, uid, kind, title, **kwargs)


def notify_approval_requested(db: Session, account: User, approvers: Iterable[User]) -> None:
    notify_many(
        db,
        [a.id for a in approvers],
        NotificationKind.approval_requested,
        f"{account.username} is waiting for approval",
        message=f"{account.role.value} account {account.username} ({account.email}) verified its email.",
    )


def notify_assignment(db: Session, ticket: Ticket, engineer: User, assigner: User) -> None:
    notify(
        db,
        engineer.id,
        NotificationKind.ticket_assigned,
        f"Ticket {ticket.ticket_number} assigned to you",
        message=f"Assigned by {assigner.username}: {ticket.title}",
        ticket_id=ticket.id,
        project_id=ticket.project_id,
    )


def notify_status_change(db: Session, ticket: Ticket, changer: User) -> None:
    recipients = [ticket.creator_id]
    if ticket.assigned_engineer_id:
        recipients.append(ticket.assigned_engineer_id)
    notify_many(
        db,
        [uid for uid in recipients if uid != changer.id],
        NotificationKind.ticket_status,
        f"Ticket {ticket.ticket_number} is now {ticket.status.value.replace('_', ' ')}",
        ticket_id=ticket.id,
        project_id=ticket.project_id,
    )


def notify_ticket_approved(db: Session, ticket: Ticket, approver: User) -> None:
    if ticket.creator_id == approver.id:
        return
    notify(
        db,
        ticket.creator_id,
        NotificationKind.ticket_approved,
        f"Ticket {ticket.ticket_number} approved",
        message=f"Approved by {approver.username} ({approver.role.value})",
        ticket_id=ticket.id,
        project_id=ticket.project_id,
    )


def notify_comment(db: Session, ticket: Ticket, author: User, content: str) -> None:
    recipients = [ticket.creator_id]
    if ticket.assigned_engineer_id:
        recipients.append(ticket.assigned_engineer_id)
    preview = content[:200] + ("..." if len(content) > 200 else "")
    notify_many(
        db,
        [uid for uid in recipients if uid != author.id],
        NotificationKind.ticket_comment,
        f"New comment on {ticket.ticket_number}",
        message=f"{author.username}: {preview}",
        ticket_id=ticket.id,
        project_id=ticket.project_id,
    )
