# File: app/routers/projects.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import Conflict, NotFound
from app.core.policy import Action, authorize
from app.core.security import get_current_user
from app.db.session import get_db
from app.models.project import Project
from app.models.ticket import Ticket
from app.models.user import User
from app.schemas.project import ProjectCreate, ProjectOut, ProjectUpdate
from app.services.tickets import ensure_sequence

log = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


def _get_project(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise NotFound("Project not found")
    return project


def _project_out(project: Project, ticket_count: int | None = None) -> ProjectOut:
    out = ProjectOut.model_validate(project)
    out.owner_name = project.owner.username if project.owner else None
    out.ticket_count = ticket_count
    return out


@router.post("")
def create_project(body: ProjectCreate, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.create, Project)
    if db.query(Project).filter(Project.code == body.code).first():
        raise Conflict("This project code already exists")

    project = Project(name=body.name, code=body.code, description=body.description, owner_id=me.id)
    db.add(project)
    try:
        db.flush()
        # the counter row outlives the project so its ticket numbers are never reissued
        ensure_sequence(db, project.code)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("This project code already exists")
    db.refresh(project)
    log.info("project %s (%s) created by user %s", project.id, project.code, me.id)
    return {"message": "Project created", "project": _project_out(project)}


@router.get("/my")
def my_projects(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    rows = (
        db.query(Project)
        .options(joinedload(Project.owner))
        .filter(Project.owner_id == me.id)
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )
    return {"projects": [_project_out(p) for p in rows]}


@router.get("")
def list_projects(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.list_all, Project)
    rows = (
        db.query(Project)
        .options(joinedload(Project.owner))
        .order_by(Project.created_at.desc(), Project.id.desc())
        .all()
    )
    return {"projects": [_project_out(p) for p in rows]}


@router.get("/{project_id}")
def get_project(project_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    project = _get_project(db, project_id)
    authorize(me, Action.read, project)
    count = db.query(func.count(Ticket.id)).filter(Ticket.project_id == project.id).scalar()
    return {"project": _project_out(project, count)}


@router.put("/{project_id}")
def update_project(
    project_id: int,
    body: ProjectUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    project = _get_project(db, project_id)
    authorize(me, Action.update, project, "You cannot modify this project")
    for key, value in body.model_dump(exclude_unset=True).items():
        if key in ("name", "status") and value is None:
            continue
        setattr(project, key, value)
    project.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(project)
    return {"message": "Project updated", "project": _project_out(project)}


@router.delete("/{project_id}")
def delete_project(project_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    project = _get_project(db, project_id)
    authorize(me, Action.delete, project, "You cannot delete this project")
    tickets = db.query(func.count(Ticket.id)).filter(Ticket.project_id == project.id).scalar()
    if tickets:
        raise Conflict("This project has tickets and cannot be deleted")
    db.delete(project)
    db.commit()
    log.info("project %s deleted by user %s", project_id, me.id)
    return {"message": "Project deleted"}
