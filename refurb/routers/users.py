# refurb/routers/users.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import accounts, models
from ..deps import get_db, require_admin
from ..schemas import UserCreate, UserUpdate
from ..serializers import user_dict

router = APIRouter()


@router.get("/users")
def list_users(db: Session = Depends(get_db), _: models.User = Depends(require_admin)):
    users = db.query(models.User).order_by(models.User.created_at.desc()).all()
    return [user_dict(u) for u in users]


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db), admin: models.User = Depends(require_admin)):
    u = accounts.create_user(db, admin, payload.email, payload.password, payload.full_name, payload.role)
    return user_dict(u)


@router.put("/users/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db), admin: models.User = Depends(require_admin)):
    u = accounts.update_user(db, admin, user_id, is_approved=payload.is_approved, role=payload.role)
    return user_dict(u)


@router.post("/users/{user_id}/toggle-approval")
def toggle_approval(user_id: str, db: Session = Depends(get_db), admin: models.User = Depends(require_admin)):
    u = accounts.toggle_approval(db, admin, user_id)
    return {
        "message": "User approved" if u.is_approved else "User approval revoked",
        "user": user_dict(u),
    }


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), admin: models.User = Depends(require_admin)):
    accounts.delete_user(db, admin, user_id)
    return {"message": "deleted"}
