# app/services/approvals.py
"""
Account approval chain.

    user_master: Unverified -> PendingApproval(by=super_admin) -> Active
    user:        Unverified -> PendingApproval(by=user_master) -> Active
    engineer / super_admin: Unverified -> Active

The stored row keeps one boolean per approver. Roles that never need a given
approval carry that flag as ``True`` from creation, so only the step that
matters for the role is ever pending.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Union

from sqlalchemy.orm import Session

from app.core.errors import Forbidden, NotFound
from app.models.notification import NotificationKind
from app.models.user import User, UserRole
from app.services.notifications import notify

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unverified:
    name = "unverified"


@dataclass(frozen=True)
class PendingApproval:
    by: UserRole
    name = "pending_approval"


@dataclass(frozen=True)
class Active:
    name = "active"


AccountState = Union[Unverified, PendingApproval, Active]

# which superior must approve each role, and the flag recording it
REQUIRED_APPROVAL = {
    UserRole.user: (UserRole.user_master, "is_approved_by_user_master"),
    UserRole.user_master: (UserRole.super_admin, "is_approved_by_super_admin"),
}


def initial_approval_flags(role: UserRole) -> dict:
    """Flags for a fresh account: only the role's own chain step starts False."""
    flags = {"is_approved_by_user_master": True, "is_approved_by_super_admin": True}
    required = REQUIRED_APPROVAL.get(role)
    if required:
        flags[required[1]] = False
    return flags


def account_state(user: User) -> AccountState:
    if not user.is_verified:
        return Unverified()
    required = REQUIRED_APPROVAL.get(user.role)
    if required and not getattr(user, required[1]):
        return PendingApproval(by=required[0])
    return Active()


def is_login_eligible(user: User) -> bool:
    return isinstance(account_state(user), Active)


def approvers_for(db: Session, user: User) -> List[User]:
    """Accounts that can move ``user`` out of PendingApproval."""
    state = account_state(user)
    if not isinstance(state, PendingApproval):
        return []
    if state.by == UserRole.super_admin:
        return (
            db.query(User)
            .filter(User.role == UserRole.super_admin, User.is_verified.is_(True))
            .order_by(User.id)
            .all()
        )
    if user.user_master_id is None:
        return []
    master = db.get(User, user.user_master_id)
    return [master] if master else []


def _approve(db: Session, target: User, flag: str, actor: User) -> User:
    setattr(target, flag, True)
    target.updated_at = datetime.now(timezone.utc)
    notify(
        db,
        target.id,
        NotificationKind.account_approved,
        "Your account has been approved",
        f"{actor.username} approved your account. You can now sign in.",
    )
    db.commit()
    db.refresh(target)
    log.info("user %s approved %s account %s", actor.id, target.role.value, target.id)
    return target


def approve_user_master(db: Session, actor: User, target_id: int) -> User:
    if actor.role != UserRole.super_admin:
        raise Forbidden("Super Admin permission is required")
    target = db.get(User, target_id)
    if (
        target is None
        or target.role != UserRole.user_master
        or account_state(target) != PendingApproval(by=UserRole.super_admin)
    ):
        raise NotFound("No User Master awaiting approval with this id")
    return _approve(db, target, "is_approved_by_super_admin", actor)


def approve_user(db: Session, actor: User, target_id: int) -> User:
    if actor.role != UserRole.user_master or not is_login_eligible(actor):
        raise Forbidden("An approved User Master is required")
    target = db.get(User, target_id)
    if target is None or target.role != UserRole.user:
        raise NotFound("No User awaiting approval with this id")
    # approval authority only covers one's own users
    if target.user_master_id != actor.id:
        raise Forbidden("This user belongs to a different User Master")
    if account_state(target) != PendingApproval(by=UserRole.user_master):
        raise NotFound("No User awaiting approval with this id")
    return _approve(db, target, "is_approved_by_user_master", actor)


def list_pending(db: Session, actor: User) -> List[User]:
    if actor.role == UserRole.super_admin:
        q = db.query(User).filter(
            User.role == UserRole.user_master,
            User.is_verified.is_(True),
            User.is_approved_by_super_admin.is_(False),
        )
    elif actor.role == UserRole.user_master and is_login_eligible(actor):
        q = db.query(User).filter(
            User.role == UserRole.user,
            User.user_master_id == actor.id,
            User.is_verified.is_(True),
            User.is_approved_by_user_master.is_(False),
        )
    else:
        raise Forbidden("You have no approval authority")
    return q.order_by(User.created_at.asc(), User.id.asc()).all()
