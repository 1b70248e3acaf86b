# backend/routes/auth.py
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.users import User
from schemas import user as schemas
from services.unit_of_work import require_transaction, transaction
from utils.audit import write_log
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(tags=["Auth"])


# Register a new customer account
@router.post("/register", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    normalized_email = payload.email.strip().lower()

    if db.query(User).filter(func.lower(User.email) == normalized_email).first():
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=request.client.host, meta={"email": normalized_email, "reason": "Email exists"})
        raise HTTPException(status_code=400, detail="Email already registered")

    with transaction(db) as tx:
        user = User(
            email=normalized_email,
            password_hash=get_password_hash(payload.password),
            role="customer",
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        session = require_transaction(tx)
        session.add(user)
        session.flush()
        user_id = user.id

    write_log(db, user_id=user_id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=request.client.host, meta={"email": normalized_email})
    return db.get(User, user_id)


def _locked_until(user: User) -> Optional[datetime]:
    # SQLite hands back naive datetimes; they are stored as UTC
    until = user.locked_until
    if until is not None and until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    return until


def _register_failed_login(db: Session, user_id: int) -> bool:
    """Count a failed attempt; returns True when this attempt locks the account."""
    with transaction(db) as tx:
        user = require_transaction(tx).get(User, user_id)
        attempts = (user.failed_attempts or 0) + 1
        if attempts >= settings.MAX_LOGIN_ATTEMPTS:
            user.failed_attempts = 0
            user.locked_until = datetime.now(timezone.utc) + timedelta(minutes=settings.LOCKOUT_MINUTES)
            return True
        user.failed_attempts = attempts
        return False


# Authenticate user and issue JWT token
@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    db_user = db.query(User).filter(func.lower(User.email) == payload.email.strip().lower()).first()

    # Locked accounts are refused before the password is even checked
    if db_user:
        until = _locked_until(db_user)
        now = datetime.now(timezone.utc)
        if until and until > now:
            minutes_left = math.ceil((until - now).total_seconds() / 60)
            write_log(db, user_id=db_user.id, action="LOGIN", resource="auth", status="LOCKED",
                      ip=request.client.host, meta={"email": db_user.email})
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail=f"Account locked after too many failed logins, try again in {minutes_left} minute(s)",
            )

    if not db_user or not verify_password(payload.password, db_user.password_hash):
        locked = _register_failed_login(db, db_user.id) if db_user else False
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=request.client.host, meta={"email": payload.email, "locked": locked})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if db_user.failed_attempts or db_user.locked_until:
        with transaction(db):
            db_user.failed_attempts = 0
            db_user.locked_until = None

    access_token = create_access_token(data={"sub": db_user.email, "role": db_user.role})
    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=request.client.host, meta={"email": db_user.email})
    return {"access_token": access_token, "token_type": "bearer"}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
