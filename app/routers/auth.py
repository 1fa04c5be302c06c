# File: app/routers/auth.py

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import InvalidVerificationToken
from app.core.ratelimit import limiter
from app.core.security import get_current_user, get_settings
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import LoginIn, RegisterIn
from app.schemas.user import UserBrief, UserOut
from app.services import approvals, identity
from app.services.notify_email import EmailSender, get_mailer

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register")
@limiter.limit("10/minute")
def register(
    request: Request,
    body: RegisterIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: EmailSender = Depends(get_mailer),
):
    identity.register(db, mailer, settings, **body.model_dump())
    return {"message": "Registration complete. Check your email to verify your account."}


@router.get("/verify", response_class=PlainTextResponse)
def verify(token: str = "", db: Session = Depends(get_db)):
    # opened from the mail client, so answer in plain text
    try:
        user = identity.verify_email(db, token)
    except InvalidVerificationToken as e:
        return PlainTextResponse(e.message, status_code=400)
    if isinstance(approvals.account_state(user), approvals.PendingApproval):
        return "Email verified. Your account is now waiting for approval."
    return "Email verified. You can now sign in."


@router.post("/login")
@limiter.limit("20/minute")
def login(
    request: Request,
    body: LoginIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    token, user = identity.login(db, settings, body.username, body.password)
    return {"token": token, "user": UserBrief.model_validate(user)}


@router.get("/me")
def me(current: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(current)}


@router.post("/approve-user-master/{user_id}")
def approve_user_master(user_id: int, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    user = approvals.approve_user_master(db, current, user_id)
    return {"message": "User Master approved", "user": UserOut.model_validate(user)}


@router.post("/approve-user/{user_id}")
def approve_user(user_id: int, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    user = approvals.approve_user(db, current, user_id)
    return {"message": "User approved", "user": UserOut.model_validate(user)}


@router.get("/pending-approvals")
def pending_approvals(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    pending = approvals.list_pending(db, current)
    return {"pendingUsers": [UserOut.model_validate(u) for u in pending]}
