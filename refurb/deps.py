# refurb/deps.py
from fastapi import Depends, HTTPException, Request, status
from jose import jwt, JWTError
from sqlalchemy.orm import Session

from .settings import SECRET_KEY, ALGORITHM
from .database import SessionLocal
from .errors import SessionExpired, PermissionDenied
from . import models

SESSION_COOKIE = "access_token"


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise SessionExpired("Invalid token") from e

def wants_json(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    # Do not treat "*/*" as JSON so HTML pages still redirect to login.
    return request.url.path.startswith("/api") or "application/json" in accept


def _token_from_request(request: Request) -> str | None:
    raw = request.cookies.get(SESSION_COOKIE) or request.headers.get("authorization")
    if not raw:
        return None
    parts = raw.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise SessionExpired("Invalid token format")
    return parts[1]


def get_current_user(request: Request, db: Session = Depends(get_db)) -> models.User:
    """Hydrate the session from the token and re-check the user against the store."""
    token = _token_from_request(request)
    if not token:
        if wants_json(request):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        raise HTTPException(status_code=status.HTTP_303_SEE_OTHER, detail="Please log in first")

    payload = decode_token(token)
    email = payload.get("sub")
    if not email:
        raise SessionExpired("Invalid token (no sub)")

    user = db.query(models.User).filter(models.User.email == email).first()
    # a deleted or un-approved account ends the session
    if not user or not user.is_approved:
        raise SessionExpired()
    return user

def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    if user.role != "admin":
        raise PermissionDenied("Administrator access required")
    return user
