from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import uuid
import logging
from datetime import datetime

from intellicode.core.security import create_access_token, verify_password, get_password_hash, get_current_user
from intellicode.db.base import get_db
from intellicode.models.user import User
from intellicode.schemas.user import UserCreate, UserLogin, Token, RegisterResponse, User as UserSchema

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("auth")

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(*, db: Session = Depends(get_db), user_in: UserCreate) -> Any:
    user = db.query(User).filter(User.email == user_in.email).first()
    if user:
        raise HTTPException(
            status_code=400,
            detail="User already exists with this email",
        )

    db_user = User(
        id=str(uuid.uuid4()),
        email=user_in.email,
        name=user_in.name.strip(),
        password=get_password_hash(user_in.password),
        created_at=datetime.utcnow(),
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    logger.info(f"New user registered: {db_user.email}")
    return {
        "user": db_user,
        "access_token": create_access_token(db_user.id),
        "token_type": "bearer",
    }

@router.post("/login", response_model=Token)
def login(
    *,
    db: Session = Depends(get_db),
    user_data: UserLogin
) -> Any:
    user = db.query(User).filter(User.email == user_data.email).first()
    if not user or not user.password or not verify_password(user_data.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="User is not active")

    logger.info(f"User logged in: {user.email}")
    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
    }

@router.get("/me", response_model=UserSchema)
def me(current_user: User = Depends(get_current_user)) -> Any:
    return current_user

@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)) -> Any:
    # Tokens are stateless; the client discards its copy
    logger.info(f"User logged out: {current_user.email}")
    return {"message": "Logged out successfully"}
