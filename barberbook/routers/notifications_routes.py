# barberbook/routers/notifications_routes.py

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from barberbook import notifications
from barberbook.auth import get_current_user
from barberbook.db import get_session
from barberbook.schemas import NotificationPublic

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("/me", response_model=List[NotificationPublic])
def my_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    return notifications.list_for_user(session, current_user["id"], limit=limit)
