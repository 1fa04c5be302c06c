# File: app/routers/users.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import Conflict, NotFound, ValidationFailed
from app.core.policy import Action, authorize
from app.core.security import get_current_user, get_settings, hash_password, verify_password
from app.db.session import get_db
from app.models.comment import Comment
from app.models.project import Project
from app.models.ticket import Ticket
from app.models.user import User, UserRole
from app.schemas.user import AdminUserUpdate, PasswordChange, ProfileUpdate, UserOut
from app.services.approvals import is_login_eligible
from app.services.identity import ensure_unique

log = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


def _member_count(db: Session, user_master_id: int) -> int:
    return db.query(func.count(User.id)).filter(User.user_master_id == user_master_id).scalar()


@router.get("")
def list_users(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.list_all, User)
    rows = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    return {"users": [UserOut.model_validate(u) for u in rows]}


@router.get("/me/profile")
def get_profile(me: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(me)}


@router.put("/me/profile")
def update_profile(body: ProfileUpdate, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    username = body.username or me.username
    email = body.email or me.email
    ensure_unique(db, username, email, exclude_id=me.id)
    me.username = username
    me.email = email
    me.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(me)
    return {"message": "Profile updated", "user": UserOut.model_validate(me)}


@router.put("/me/password")
def change_password(
    body: PasswordChange,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    me: User = Depends(get_current_user),
):
    if not verify_password(body.current_password, me.password):
        raise ValidationFailed("Current password does not match")
    me.password = hash_password(body.new_password, settings.bcrypt_rounds)
    me.updated_at = datetime.now(timezone.utc)
    db.commit()
    log.info("user %s changed password", me.id)
    return {"message": "Password changed"}


@router.get("/engineers/list")
def list_engineers(db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.list_all, User)
    rows = (
        db.query(User)
        .filter(User.role == UserRole.engineer, User.is_verified.is_(True))
        .order_by(User.username)
        .all()
    )
    return {"engineers": [UserOut.model_validate(u) for u in rows]}


@router.get("/user-master/{user_master_id}/users")
def list_members(user_master_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.list_members, User(id=user_master_id))
    rows = (
        db.query(User)
        .filter(User.user_master_id == user_master_id)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return {"users": [UserOut.model_validate(u) for u in rows]}


@router.get("/{user_id}")
def get_user(user_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    authorize(me, Action.read, User(id=user_id))
    return {"user": UserOut.model_validate(_get_user(db, user_id))}


@router.put("/{user_id}")
def update_user(
    user_id: int,
    body: AdminUserUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    target = _get_user(db, user_id)
    authorize(me, Action.update, target)
    fields = body.model_dump(exclude_unset=True)

    ensure_unique(db, fields.get("username") or target.username, fields.get("email") or target.email, exclude_id=target.id)

    role = fields.get("role") or target.role
    if target.role == UserRole.user_master and role != UserRole.user_master and _member_count(db, target.id):
        raise Conflict("This User Master still has users; move them to another User Master first")
    master_id = fields["user_master_id"] if "user_master_id" in fields else target.user_master_id
    if role == UserRole.user:
        if master_id is None:
            raise ValidationFailed("A user account must belong to a User Master")
        master = db.get(User, master_id)
        if not master or master.role != UserRole.user_master or not is_login_eligible(master):
            raise ValidationFailed("user_master_id must reference an approved User Master")
    elif "user_master_id" in fields and fields["user_master_id"] is not None:
        raise ValidationFailed("Only user accounts can belong to a User Master")
    else:
        master_id = None

    for key in ("username", "email", "level"):
        if fields.get(key) is not None:
            setattr(target, key, fields[key])
    target.role = role
    target.user_master_id = master_id
    if role == UserRole.user_master:
        target.level = 2
    target.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(target)
    log.info("user %s updated account %s", me.id, target.id)
    return {"message": "User updated", "user": UserOut.model_validate(target)}


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    if user_id == me.id and me.role == UserRole.super_admin:
        raise ValidationFailed("You cannot delete your own account")
    target = _get_user(db, user_id)
    authorize(me, Action.delete, target)

    owned = (
        db.query(func.count(Project.id)).filter(Project.owner_id == target.id).scalar()
        + db.query(func.count(Ticket.id))
        .filter(or_(Ticket.creator_id == target.id, Ticket.assigned_engineer_id == target.id))
        .scalar()
        + db.query(func.count(Comment.id)).filter(Comment.author_id == target.id).scalar()
    )
    if owned:
        raise Conflict("This account has related projects, tickets or comments and cannot be deleted")
    if _member_count(db, target.id):
        raise Conflict("This User Master still has users and cannot be deleted")

    db.delete(target)
    db.commit()
    log.info("user %s deleted account %s", me.id, user_id)
    return {"message": "User deleted"}
