# app/services/tickets.py
"""
Ticket creation, numbering and lifecycle changes.

Ticket numbers look like ``BITM-{project code}-{0001}``. The sequence is kept
per project code in ``ticket_sequences`` and advanced with a single
``UPDATE ... SET last_value = last_value + 1`` inside the same transaction as
the ticket insert. The update locks the counter row (PostgreSQL) or the
database (SQLite) until commit, so concurrent creations for one code are
serialized and never share a number.
"""
import logging
import re
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from app.core.policy import Action, authorize
from app.models.project import Project, TicketSequence
from app.models.ticket import Ticket, TicketStatus
from app.models.user import User, UserRole
from app.services import notifications

log = logging.getLogger(__name__)

TICKET_PREFIX = "BITM"


def format_ticket_number(project_code: str, sequence: int) -> str:
    return f"{TICKET_PREFIX}-{project_code}-{sequence:04d}"


def _highest_issued(db: Session, project_code: str) -> int:
    """Largest sequence already used by tickets of this code (0 if none)."""
    pattern = re.compile(rf"^{re.escape(TICKET_PREFIX)}-{re.escape(project_code)}-(\d+)$")
    numbers = db.execute(
        select(Ticket.ticket_number)
        .join(Project, Ticket.project_id == Project.id)
        .where(Project.code == project_code)
    ).scalars()
    best = 0
    for number in numbers:
        m = pattern.match(number)
        if m:
            best = max(best, int(m.group(1)))
    return best


def ensure_sequence(db: Session, project_code: str) -> None:
    """Create the counter row for a project code if it does not exist yet."""
    if db.get(TicketSequence, project_code) is None:
        db.add(TicketSequence(project_code=project_code, last_value=_highest_issued(db, project_code)))
        db.flush()


def next_ticket_number(db: Session, project_code: str) -> str:
    bump = (
        update(TicketSequence)
        .where(TicketSequence.project_code == project_code)
        .values(last_value=TicketSequence.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    if db.execute(bump).rowcount == 0:
        ensure_sequence(db, project_code)
        db.execute(bump)
    value = db.execute(
        select(TicketSequence.last_value).where(TicketSequence.project_code == project_code)
    ).scalar_one()
    return format_ticket_number(project_code, value)


def create_ticket(db: Session, creator: User, project_id: int, **fields) -> Ticket:
    project = db.get(Project, project_id)
    if not project:
        raise NotFound("Project not found")
    authorize(creator, Action.file_ticket, project, "You cannot file tickets on this project")

    # seeding a missing counter can collide with a concurrent request too
    try:
        ticket = Ticket(
            ticket_number=next_ticket_number(db, project.code),
            project_id=project.id,
            creator_id=creator.id,
            status=TicketStatus.new,
            **fields,
        )
        db.add(ticket)
        db.commit()
    except IntegrityError:
        db.rollback()
        log.error("ticket number collision on project %s", project.code, exc_info=True)
        raise Conflict("Ticket number already issued, please retry")
    db.refresh(ticket)
    log.info("ticket %s created by user %s", ticket.ticket_number, creator.id)
    return ticket


def get_ticket(db: Session, ticket_id: int) -> Ticket:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise NotFound("Ticket not found")
    return ticket


def parse_status(value: str) -> TicketStatus:
    try:
        return TicketStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TicketStatus)
        raise ValidationFailed(f"Invalid status. Allowed: {allowed}")


def change_status(db: Session, actor: User, ticket_id: int, status: str) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    authorize(actor, Action.set_status, ticket, "Only the assigned engineer or a Super Admin can change the status")
    new_status = parse_status(status)

    ticket.status = new_status
    ticket.updated_at = datetime.now(timezone.utc)
    if new_status == TicketStatus.complete:
        ticket.actual_end_date = date.today()
    notifications.notify_status_change(db, ticket, actor)
    db.commit()
    db.refresh(ticket)
    return ticket


def assign_engineer(db: Session, actor: User, ticket_id: int, engineer_id: int) -> Ticket:
    ticket = get_ticket(db, ticket_id)
    authorize(actor, Action.assign, ticket, "Only a Super Admin can assign engineers")
    engineer = db.get(User, engineer_id)
    if not engineer or engineer.role != UserRole.engineer:
        raise ValidationFailed("Target account is not an engineer")

    ticket.assigned_engineer_id = engineer.id
    ticket.status = TicketStatus.assigned
    ticket.updated_at = datetime.now(timezone.utc)
    notifications.notify_assignment(db, ticket, engineer, actor)
    db.commit()
    db.refresh(ticket)
    return ticket


APPROVAL_ACTIONS = {
    "user_master": (Action.approve_as_user_master, "is_approved_by_user_master"),
    "super_admin": (Action.approve_as_super_admin, "is_approved_by_super_admin"),
}


def approve_ticket(db: Session, actor: User, ticket_id: int, approval_type: Optional[str]) -> Ticket:
    # the approval flag must belong to the actor's own role
    if approval_type not in APPROVAL_ACTIONS or approval_type != actor.role.value:
        log.info("user %s (%s) tried approval_type=%s", actor.id, actor.role.value, approval_type)
        raise Forbidden("You cannot grant this approval")
    ticket = get_ticket(db, ticket_id)
    action, flag = APPROVAL_ACTIONS[approval_type]
    authorize(actor, action, ticket, "You cannot approve this ticket")

    setattr(ticket, flag, True)
    ticket.updated_at = datetime.now(timezone.utc)
    notifications.notify_ticket_approved(db, ticket, actor)
    db.commit()
    db.refresh(ticket)
    return ticket


def awaiting_approval(db: Session, actor: User, *options) -> list:
    """Tickets still missing the actor's own approval flag.

    A user_master sees tickets filed by itself or its users, a super_admin
    sees every ticket. This is the only listing a user_master gets, since
    ticket read access does not extend to its users' tickets.
    """
    if actor.role not in (UserRole.user_master, UserRole.super_admin):
        raise Forbidden("You have no ticket approval authority")
    _, flag = APPROVAL_ACTIONS[actor.role.value]
    q = db.query(Ticket).options(*options).filter(getattr(Ticket, flag).is_(False))
    if actor.role == UserRole.user_master:
        q = q.join(User, Ticket.creator_id == User.id).filter(
            or_(Ticket.creator_id == actor.id, User.user_master_id == actor.id)
        )
    return q.order_by(Ticket.created_at.asc(), Ticket.id.asc()).all()
