# refurb/accounts.py
"""Signup, login and the admin-only approval/role gate."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models
from .errors import (
    AccountNotApproved,
    EmailInUse,
    InvalidCredentials,
    NotFound,
    PermissionDenied,
    SelfDeletion,
    UserNotFound,
    ValidationError,
)
from .settings import SECRET_KEY, ALGORITHM, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

MIN_PASSWORD_LENGTH = 6


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _check_role(role: str) -> str:
    r = (role or "").strip().lower()
    if r not in models.ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(models.ROLES)}")
    return r


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == _normalize_email(email)).first()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _create_user(db: Session, email: str, password: str, full_name: str, role: str, is_approved: bool) -> models.User:
    email = _normalize_email(email)
    full_name = (full_name or "").strip()
    if not email or not full_name or not password:
        raise ValidationError("Email, password and full name are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    role = _check_role(role)
    if get_user_by_email(db, email):
        raise EmailInUse()

    user = models.User(
        email=email,
        full_name=full_name,
        role=role,
        is_approved=is_approved,
        password_hash=pwd_context.hash(password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        db.rollback()
        raise EmailInUse() from None
    db.refresh(user)
    return user


def signup(db: Session, email: str, password: str, full_name: str, role: str = "operator") -> models.User:
    """New accounts wait for an admin before they can log in."""
    user = _create_user(db, email, password, full_name, role, is_approved=False)
    logger.info("Signup %s (%s), awaiting approval", user.email, user.role)
    return user


def authenticate(db: Session, email: str, password: str) -> models.User:
    user = get_user_by_email(db, email)
    if not user:
        raise UserNotFound()
    if not pwd_context.verify(password or "", user.password_hash):
        raise InvalidCredentials()
    if not user.is_approved:
        raise AccountNotApproved()
    return user


def require_admin(actor: models.User) -> None:
    if actor.role != "admin":
        raise PermissionDenied("Administrator access required")


def create_user(db: Session, actor: models.User, email: str, password: str, full_name: str, role: str) -> models.User:
    require_admin(actor)
    user = _create_user(db, email, password, full_name, role, is_approved=True)
    logger.info("Admin %s created user %s (%s)", actor.email, user.email, user.role)
    return user


def _get_user(db: Session, user_id: str) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def update_user(db: Session, actor: models.User, user_id: str, is_approved: Optional[bool] = None, role: Optional[str] = None) -> models.User:
    require_admin(actor)
    user = _get_user(db, user_id)
    if role is not None:
        user.role = _check_role(role)
    if is_approved is not None:
        user.is_approved = bool(is_approved)
    db.commit()
    db.refresh(user)
    logger.info("Admin %s updated user %s: approved=%s role=%s", actor.email, user.email, user.is_approved, user.role)
    return user


def toggle_approval(db: Session, actor: models.User, user_id: str) -> models.User:
    require_admin(actor)
    user = _get_user(db, user_id)
    return update_user(db, actor, user_id, is_approved=not user.is_approved)


def delete_user(db: Session, actor: models.User, user_id: str) -> None:
    require_admin(actor)
    # checked before anything touches the store
    if user_id == actor.id:
        raise SelfDeletion()
    user = _get_user(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("Admin %s deleted user %s", actor.email, user.email)


def seed_default_admin(db: Session) -> models.User:
    user = get_user_by_email(db, DEFAULT_ADMIN_EMAIL)
    if user:
        logger.info("Default admin '%s' already exists", user.email)
        return user
    user = _create_user(db, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, "Administrator", "admin", is_approved=True)
    logger.info("Default admin '%s' created", user.email)
    return user
