# barberbook/routers/users_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from barberbook import store
from barberbook.auth import get_current_user, hash_password
from barberbook.db import get_session
from barberbook.models import User
from barberbook.schemas import UserCreate, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


@router.post("/users", status_code=201, response_model=UserPublic)
def register(payload: UserCreate, session: Session = Depends(get_session)):
    email = store.normalize_email(payload.email)
    if store.find_user(session, email) is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # Clients and barbers are shown by name; fall back to the mailbox part
    account = User(
        email=email,
        name=payload.name.strip() or email.split("@")[0],
        password_hash=hash_password(payload.password),
        role=payload.role.value,
    )
    session.add(account)
    session.commit()
    session.refresh(account)

    logger.info("Registered %s %s", account.role, account.id)
    return account
