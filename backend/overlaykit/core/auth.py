"""
Session resolution.

Identity is owned by an external provider; this module only maps the token it
issued (``Authorization: Bearer <token>`` or the session cookie) to a user.
"""
from dataclasses import dataclass
from datetime import datetime

from fastapi import Request
from sqlalchemy.orm import Session

from overlaykit.core.config import get_settings
from overlaykit.models.user import SessionToken, User

settings = get_settings()


@dataclass(frozen=True)
class UserSession:
    user_id: str
    display_name: str


def extract_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


def get_session(request: Request, db: Session) -> UserSession | None:
    token = extract_token(request)
    if not token:
        return None

    row = db.query(SessionToken).filter(SessionToken.token == token).first()
    if row is None:
        return None
    if row.expires_at is not None and row.expires_at < datetime.utcnow():
        return None

    user = db.query(User).filter(User.id == row.user_id).first()
    if user is None:
        return None
    return UserSession(user_id=user.id, display_name=user.name)
