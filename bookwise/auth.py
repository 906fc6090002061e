# bookwise/auth.py

import logging

from fastapi import APIRouter, Depends, Request
from passlib.hash import bcrypt
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .crud import SqlAlchemyStore
from .dependencies import get_current_user, get_db, get_settings, get_store
from .errors import AuthenticationFailed, DuplicateUser
from .models import User
from .schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Register (Signup)
@router.post("/register", status_code=201)
def register(
    request: Request,
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    if db.query(User).filter(User.username == payload.username).first():
        raise DuplicateUser("Username already taken")
    if db.query(User).filter(User.email == payload.email).first():
        raise DuplicateUser("Email already registered")

    hashed_password = bcrypt.using(rounds=settings.bcrypt_rounds).hash(payload.password)
    new_user = User(username=payload.username, email=payload.email, password=hashed_password)
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateUser("Username or email already registered") from e
    db.refresh(new_user)

    # Add default categories for new user, registration stands even if this fails
    try:
        store.create_default_categories(new_user.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Default categories failed for user %s: %s", new_user.id, e)

    logger.info("User %s registered (%s)", new_user.id, new_user.username)
    request.session["user_id"] = new_user.id
    request.session["name"] = new_user.username
    return {
        "success": True,
        "message": "Registered, default categories created",
        "data": {"user": new_user.to_dict()},
    }


@router.post("/login")
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user = (
        db.query(User)
        .filter(or_(User.username == payload.login_field, User.email == payload.login_field.lower()))
        .first()
    )
    if not user or not bcrypt.verify(payload.password, user.password):
        logger.warning("Failed login for %s", payload.login_field)
        raise AuthenticationFailed("Invalid username/email or password")

    request.session["user_id"] = user.id
    request.session["name"] = user.username
    logger.info("User %s logged in", user.id)
    return {"success": True, "message": "Logged in", "data": {"user": user.to_dict()}}


# Logout
@router.post("/logout")
def logout(request: Request, user: User = Depends(get_current_user)):
    request.session.clear()
    logger.info("User %s logged out", user.id)
    return {"success": True, "message": "Logged out"}


@router.get("/profile")
def profile(user: User = Depends(get_current_user)):
    return {"success": True, "message": "Profile loaded", "data": {"user": user.to_dict()}}
