from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from clinic.api.deps import get_db, owner_user
from clinic.core.security import hash_password
from clinic.models.user import User, UserRole
from clinic.schemas.auth import UserCreate, UserOut, UserUpdate

router = APIRouter()


def _get_user(db: Session, clinic_id: int, user_id: int) -> User:
    u = db.query(User).filter(User.id == user_id,
                              User.clinic_id == clinic_id).first()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db), me: User = Depends(owner_user)):
    return (db.query(User).filter(
        User.clinic_id == me.clinic_id,
        User.role != UserRole.PATIENT.value,
    ).order_by(User.name.asc()).all())


@router.post("", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate,
                db: Session = Depends(get_db),
                me: User = Depends(owner_user)):
    email = str(payload.email).strip().lower()
    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    u = User(
        clinic_id=me.clinic_id,
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        role=payload.role,
        is_active=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: int,
                payload: UserUpdate,
                db: Session = Depends(get_db),
                me: User = Depends(owner_user)):
    u = _get_user(db, me.clinic_id, user_id)
    if u.id == me.id and (payload.is_active is False or
                          (payload.role and payload.role != UserRole.OWNER.value)):
        raise HTTPException(status_code=400,
                            detail="You cannot deactivate or demote yourself")

    data = payload.model_dump(exclude_unset=True)
    password = data.pop("password", None)
    for k, v in data.items():
        setattr(u, k, v)
    if password:
        u.password_hash = hash_password(password)
    db.commit()
    db.refresh(u)
    return u


@router.delete("/{user_id}")
def delete_user(user_id: int,
                db: Session = Depends(get_db),
                me: User = Depends(owner_user)):
    u = _get_user(db, me.clinic_id, user_id)
    if u.id == me.id:
        raise HTTPException(status_code=400,
                            detail="You cannot delete your own account")
    if u.staff:
        u.staff.user_id = None
    if u.patient:
        u.patient.user_id = None
    db.delete(u)
    db.commit()
    return {"message": "User deleted"}
