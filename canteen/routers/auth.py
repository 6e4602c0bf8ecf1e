from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from canteen.core.database import get_db
from canteen.deps import get_current_user
from canteen.models.user import User
from canteen.services.sessions import clear_session_cookie, create_session, set_session_cookie
from canteen.services.users import authenticate, create_user

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class SignUpPayload(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignInPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: str


def _user_read(user: User) -> UserRead:
    return UserRead(id=user.id, name=user.name, email=user.email, role=user.role)


@router.post("/sign-up", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def sign_up(payload: SignUpPayload, db: Session = Depends(get_db)):
    user = create_user(db, name=payload.name, email=payload.email, password=payload.password)
    return _user_read(user)


@router.post("/sign-in", response_model=UserRead)
def sign_in(
    payload: SignInPayload,
    response: Response,
    request: Request,
    db: Session = Depends(get_db),
):
    user = authenticate(db, email=payload.email, password=payload.password)
    token = create_session(user_id=user.id, role=user.role)
    set_session_cookie(response, token, request)
    request.state.user = user
    logger.info("Sign-in success user_id=%s role=%s", user.id, user.role)
    return _user_read(user)


@router.post("/sign-out")
def sign_out(response: Response, request: Request):
    clear_session_cookie(response, request)
    return {"ok": True}


@router.get("/session", response_model=UserRead)
def current_session(user: User = Depends(get_current_user)):
    return _user_read(user)
