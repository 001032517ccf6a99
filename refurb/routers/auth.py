# refurb/routers/auth.py
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import accounts, models
from ..deps import get_db, get_current_user, SESSION_COOKIE
from ..schemas import SignupRequest, LoginRequest
from ..serializers import user_dict
from ..settings import ACCESS_TOKEN_EXPIRE_MINUTES, COOKIE_SECURE

router = APIRouter()


def set_session_cookie(resp, user: models.User) -> str:
    token = accounts.create_access_token(
        data={"sub": user.email, "role": user.role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    resp.set_cookie(
        SESSION_COOKIE,
        f"Bearer {token}",
        httponly=True,
        samesite="lax",
        secure=COOKIE_SECURE,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return token


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    user = accounts.signup(db, payload.email, payload.password, payload.full_name, payload.role)
    return {
        "message": "Signup successful. You can log in once an administrator approves your account.",
        "user": user_dict(user),
    }


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, payload.email, payload.password)
    resp = JSONResponse({"message": "Login ok", "user": user_dict(user)})
    token = set_session_cookie(resp, user)
    resp.headers["X-Access-Token"] = token
    return resp


@router.post("/logout")
def logout():
    resp = JSONResponse({"message": "Logged out"})
    resp.delete_cookie(SESSION_COOKIE)
    return resp


@router.get("/me")
def me(user: models.User = Depends(get_current_user)):
    return user_dict(user)
