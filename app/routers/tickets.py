# File: app/routers/tickets.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

from app.core.policy import Action, authorize
from app.core.security import get_current_user
from app.db.session import get_db
from app.models.ticket import Ticket
from app.models.user import User, UserRole
from app.schemas.ticket import ApproveIn, AssignIn, StatusIn, TicketCreate, TicketOut
from app.services import tickets as ticket_service

router = APIRouter(prefix="/tickets", tags=["tickets"])

_JOINED = (
    joinedload(Ticket.project),
    joinedload(Ticket.creator),
    joinedload(Ticket.assigned_engineer),
)


def _ticket_out(t: Ticket) -> TicketOut:
    """Ticket row plus the display names the UI shows next to it."""
    out = TicketOut.model_validate(t)
    if t.project is not None:
        out.project_name = t.project.name
        out.project_code = t.project.code
    out.creator_name = t.creator.username if t.creator else None
    out.assigned_engineer_name = t.assigned_engineer.username if t.assigned_engineer else None
    return out


@router.post("")
def create_ticket(body: TicketCreate, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    fields = body.model_dump(exclude={"project_id"})
    ticket = ticket_service.create_ticket(db, me, body.project_id, **fields)
    return {"message": "Ticket created", "ticket": _ticket_out(ticket)}


@router.get("/my")
def my_tickets(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    q = db.query(Ticket).options(*_JOINED)
    # engineers work from their assignments, everyone else from what they filed
    if me.role == UserRole.engineer:
        q = q.filter(Ticket.assigned_engineer_id == me.id)
    else:
        q = q.filter(Ticket.creator_id == me.id)
    rows = q.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()
    return {"tickets": [_ticket_out(t) for t in rows]}


@router.get("")
def list_tickets(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.list_all, Ticket)
    rows = db.query(Ticket).options(*_JOINED).order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()
    return {"tickets": [_ticket_out(t) for t in rows]}


@router.get("/awaiting-approval")
def awaiting_approval(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    rows = ticket_service.awaiting_approval(db, me, *_JOINED)
    return {"tickets": [_ticket_out(t) for t in rows]}


@router.get("/{ticket_id}")
def get_ticket(ticket_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    ticket = ticket_service.get_ticket(db, ticket_id)
    authorize(me, Action.read, ticket)
    return {"ticket": _ticket_out(ticket)}


@router.put("/{ticket_id}/status")
def update_status(ticket_id: int, body: StatusIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    ticket = ticket_service.change_status(db, me, ticket_id, body.status)
    return {"message": "Ticket status updated", "ticket": _ticket_out(ticket)}


@router.put("/{ticket_id}/assign")
def assign(ticket_id: int, body: AssignIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    ticket = ticket_service.assign_engineer(db, me, ticket_id, body.engineer_id)
    return {"message": "Engineer assigned", "ticket": _ticket_out(ticket)}


@router.put("/{ticket_id}/approve")
def approve(ticket_id: int, body: ApproveIn, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    ticket = ticket_service.approve_ticket(db, me, ticket_id, body.approval_type)
    return {"message": "Ticket approved", "ticket": _ticket_out(ticket)}
