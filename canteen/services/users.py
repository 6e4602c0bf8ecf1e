from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from canteen.core.constants import USER_ROLES
from canteen.core.errors import InvalidInput, NotAuthenticated, ReferenceNotFound
from canteen.models.user import User
from canteen.services.passwords import hash_password, password_looks_hashed, verify_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def ensure_user_exists(db: Session, user_id: int) -> None:
    if not db.query(User.id).filter(User.id == user_id).first():
        raise ReferenceNotFound("User not found", "USER_NOT_FOUND")


def create_user(db: Session, *, name: str, email: str, password: str, role: str = "student") -> User:
    clean_name = (name or "").strip()
    if not clean_name:
        raise InvalidInput("Name is required", "MISSING_NAME")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InvalidInput(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            "INVALID_PASSWORD",
        )
    if role not in USER_ROLES:
        raise InvalidInput(f"Role must be one of: {', '.join(USER_ROLES)}", "INVALID_ROLE")

    normalized_email = normalize_email(email)
    if get_user_by_email(db, normalized_email):
        raise InvalidInput("Email is already registered", "EMAIL_TAKEN")

    user = User(
        name=clean_name,
        email=normalized_email,
        password_hash=hash_password(password),
        role=role,
        active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidInput("Email is already registered", "EMAIL_TAKEN") from exc
    db.refresh(user)
    logger.info("User created id=%s role=%s", user.id, user.role)
    return user


def authenticate(db: Session, *, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if not user or not user.active or not verify_password(password, user.password_hash):
        logger.warning("Sign-in failed email=%s", normalize_email(email))
        raise NotAuthenticated("Invalid email or password", "INVALID_CREDENTIALS")
    return user


def upsert_admin(
    db: Session,
    *,
    email: str,
    name: str,
    password: str,
    reset_password: bool = False,
) -> tuple[User, bool]:
    """Create the admin account, or promote an existing user with that email.

    ``password`` may already be a bcrypt/pbkdf2 hash, in which case it is
    stored as-is. Returns ``(user, created)``.
    """
    password_hash = password if password_looks_hashed(password) else hash_password(password)

    user = get_user_by_email(db, email)
    created = user is None
    if created:
        user = User(
            name=name,
            email=normalize_email(email),
            password_hash=password_hash,
            role="admin",
            active=True,
        )
        db.add(user)
    else:
        user.role = "admin"
        user.active = True
        if reset_password:
            user.password_hash = password_hash

    db.commit()
    db.refresh(user)
    return user, created
