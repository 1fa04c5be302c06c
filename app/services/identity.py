# app/services/identity.py
"""
Account registration, email verification, login and session resolution.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import (
    AccountNotFound,
    ApprovalPending,
    Conflict,
    InvalidCredential,
    InvalidToken,
    InvalidVerificationToken,
    NotFound,
    UpstreamFailure,
    ValidationFailed,
    VerificationRequired,
)
from app.core.security import decode_access_token, hash_password, make_access_token, verify_password
from app.models.user import User, UserRole
from app.services.approvals import (
    PendingApproval,
    Unverified,
    account_state,
    approvers_for,
    initial_approval_flags,
)
from app.services.notifications import notify_approval_requested
from app.services.notify_email import EmailSender

log = logging.getLogger(__name__)

SELF_SERVICE_ROLES = (UserRole.user, UserRole.engineer, UserRole.user_master)


def ensure_unique(db: Session, username: str, email: str, exclude_id: Optional[int] = None):
    q = db.query(User).filter(or_(User.username == username, User.email == email))
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    clash = q.first()
    if clash:
        field = "username" if clash.username == username else "email"
        raise Conflict(f"This {field} is already registered")


def find_approved_user_master(db: Session, ref: str) -> User:
    """Look up an active user_master by email or username."""
    master = (
        db.query(User)
        .filter(
            or_(User.email == ref, User.username == ref),
            User.role == UserRole.user_master,
            User.is_verified.is_(True),
            User.is_approved_by_super_admin.is_(True),
        )
        .first()
    )
    if not master:
        raise NotFound("User Master does not exist or is not approved")
    return master


def register(
    db: Session,
    mailer: EmailSender,
    settings: Settings,
    *,
    username: str,
    password: str,
    email: str,
    role: UserRole = UserRole.user,
    level: Optional[int] = None,
    user_master_username: Optional[str] = None,
) -> User:
    if role not in SELF_SERVICE_ROLES:
        raise ValidationFailed("This role cannot be registered")

    ensure_unique(db, username, email)

    user_master_id = None
    if role == UserRole.user:
        if not user_master_username:
            raise ValidationFailed("user_master_username is required for user accounts")
        user_master_id = find_approved_user_master(db, user_master_username).id

    if role == UserRole.user_master:
        level = 2

    token = secrets.token_urlsafe(32)
    user = User(
        username=username,
        email=email,
        password=hash_password(password, settings.bcrypt_rounds),
        role=role,
        level=level or 1,
        is_verified=False,
        user_master_id=user_master_id,
        verification_token=token,
        **initial_approval_flags(role),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise Conflict("Username or email is already registered")

    try:
        mailer.send_email_verification(email, token)
    except Exception as e:
        db.rollback()
        log.error("Failed to send verification email to %s: %s", email, e, exc_info=True)
        raise UpstreamFailure("Could not send the verification email. Please try again later.") from e

    db.commit()
    db.refresh(user)
    log.info("registered %s account %s (%s)", role.value, user.id, username)
    return user


def verify_email(db: Session, token: str) -> User:
    user = db.query(User).filter(User.verification_token == token).first() if token else None
    if not user:
        raise InvalidVerificationToken()

    user.is_verified = True
    user.verification_token = None
    user.updated_at = datetime.now(timezone.utc)
    if isinstance(account_state(user), PendingApproval):
        notify_approval_requested(db, user, approvers_for(db, user))
    db.commit()
    db.refresh(user)
    return user


def login(db: Session, settings: Settings, username: str, password: str) -> Tuple[str, User]:
    user = db.query(User).filter(User.username == username).first()
    if not user:
        log.info("rejected login for %r: unknown username", username)
        raise AccountNotFound()

    state = account_state(user)
    if isinstance(state, Unverified):
        log.info("rejected login for user %s: email not verified", user.id)
        raise VerificationRequired()
    if isinstance(state, PendingApproval):
        log.info("rejected login for user %s: awaiting %s approval", user.id, state.by.value)
        raise ApprovalPending(state.by.value)

    if not verify_password(password, user.password):
        log.warning("rejected login for user %s: bad password", user.id)
        raise InvalidCredential()

    return make_access_token(user, settings), user


def resolve_session(db: Session, token: str, settings: Settings) -> User:
    payload = decode_access_token(token, settings)
    user = db.get(User, payload["id"])
    if not user:
        raise InvalidToken("User no longer exists")
    return user


def provision_super_admin(db: Session, settings: Settings, username: str, email: str, password: str) -> User:
    """Create a verified super_admin directly; self-registration never yields one."""
    ensure_unique(db, username, email)
    user = User(
        username=username,
        email=email,
        password=hash_password(password, settings.bcrypt_rounds),
        role=UserRole.super_admin,
        is_verified=True,
        **initial_approval_flags(UserRole.super_admin),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
