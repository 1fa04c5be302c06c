# app/core/security.py
import time
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.hash import bcrypt_sha256
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.errors import InvalidToken, TokenExpired, Unauthenticated
from app.db.session import get_db
from app.models.user import User

ALGO = "HS256"
bearer = HTTPBearer(auto_error=False)

def hash_password(raw: str, rounds: int = 12) -> str:
    return bcrypt_sha256.using(rounds=rounds).hash(raw)

def verify_password(raw: str, hashed: str) -> bool:
    return bcrypt_sha256.verify(raw, hashed)

def make_access_token(user: User, settings: Settings) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "id": user.id,
        "role": user.role.value,
        "level": user.level,
        "iat": now,
        "exp": now + settings.jwt_ttl_hours * 3600,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)

def decode_access_token(token: str, settings: Settings) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError:
        raise InvalidToken()
    if not isinstance(payload.get("id"), int):
        raise InvalidToken("Invalid token payload")
    return payload

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                     settings: Settings = Depends(get_settings),
                     db: Session = Depends(get_db)) -> User:
    from app.services.identity import resolve_session

    if not creds or not creds.credentials:
        raise Unauthenticated()
    return resolve_session(db, creds.credentials, settings)
