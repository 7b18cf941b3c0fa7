#!/usr/bin/env python

"""
    API routes for GearShare,
    covering equipment, reservations and their lifecycle, maintenance,
    notifications and damage reports.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from datetime import datetime
from typing import Optional, List
from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Request,
    Cookie,
    status,
)
from gearshare import __version__ as VERSION
from gearshare import schemas
from gearshare.core import auth
from gearshare.core.db import SessionLocal
from gearshare.core.api import GearShareAPI
from gearshare.core.models import ReservationStatus, ReportStatus
from gearshare.core.exceptions import (
    GearShareError,
    ValidationError,
    NotFoundError,
    BookingConflict,
    InvalidTransition,
    StaleWrite,
    ItemBusy,
    Forbidden,
    MaintenanceBlocked,
)
from gearshare.routes.schemas import (
    ItemRequest,
    ReservationRequest,
    TransitionRequest,
    NotesRequest,
    MaintenanceRequest,
    ReportRequest,
    ResolveRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# most specific first; the first isinstance match wins
ERROR_STATUS = [
    (ItemBusy, status.HTTP_503_SERVICE_UNAVAILABLE, "item_busy"),
    (StaleWrite, status.HTTP_409_CONFLICT, "stale_write"),
    (BookingConflict, status.HTTP_409_CONFLICT, "booking_conflict"),
    (InvalidTransition, status.HTTP_409_CONFLICT, "invalid_transition"),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation_error"),
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (Forbidden, status.HTTP_403_FORBIDDEN, "forbidden"),
    (MaintenanceBlocked, status.HTTP_423_LOCKED, "maintenance_blocked"),
]

def http_error(e: GearShareError) -> HTTPException:
    for exc_type, code, name in ERROR_STATUS:
        if isinstance(e, exc_type):
            detail = {"error": name, "message": str(e)}
            if isinstance(e, BookingConflict):
                detail["conflicts"] = sorted(e.conflict_ids)
            return HTTPException(status_code=code, detail=detail)
    logger.error(f"Unmapped engine error: {e!r}")
    return HTTPException(status_code=500, detail={"error": "internal", "message": str(e)})

def current_actor(request: Request, session: Optional[str] = Cookie(None)):
    """Resolves the caller from the `session` cookie or a Bearer token."""
    if not session:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            session = auth_header.split(" ")[1]
    with SessionLocal() as db:
        actor = auth.resolve_actor(db, session)
    if not actor:
        raise HTTPException(status_code=401, detail={"error": "unauthenticated"})
    return actor


@router.get('/', status_code=status.HTTP_200_OK)
async def home():
    return {"service": "gearshare", "version": VERSION}

@router.get("/profile", response_model=schemas.User)
def profile(actor=Depends(current_actor)):
    return GearShareAPI.get_user(actor.id)

@router.get("/items", response_model=List[schemas.Item])
def get_items(offset: Optional[int] = None, limit: Optional[int] = None):
    return GearShareAPI.get_items(offset=offset, limit=limit)

@router.post("/items", response_model=schemas.Item, status_code=status.HTTP_201_CREATED)
def create_item(body: ItemRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.create_item(actor, body.name, location=body.location, notes=body.notes)
    except GearShareError as e:
        raise http_error(e)

@router.get("/items/{item_id}", response_model=schemas.Item)
def get_item(item_id: int):
    try:
        return GearShareAPI.get_item(item_id)
    except GearShareError as e:
        raise http_error(e)

@router.put("/items/{item_id}/maintenance", response_model=schemas.Item)
def set_maintenance(item_id: int, body: MaintenanceRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.set_maintenance(item_id, body.on, actor)
    except GearShareError as e:
        raise http_error(e)

@router.post("/reservations", response_model=schemas.Reservation, status_code=status.HTTP_201_CREATED)
def create_reservation(body: ReservationRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.create_reservation(
            body.item_id, actor.id, body.start_date, body.return_date, notes=body.notes)
    except GearShareError as e:
        raise http_error(e)

@router.get("/reservations", response_model=List[schemas.Reservation])
def list_reservations(
        item_id: Optional[int] = None,
        user_id: Optional[str] = None,
        status: Optional[ReservationStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        actor=Depends(current_actor)):
    if not actor.is_admin:
        user_id = actor.id
    return GearShareAPI.list_reservations(
        item_id=item_id, user_id=user_id, status=status,
        date_from=date_from, date_to=date_to)

@router.get("/reservations/{reservation_id}", response_model=schemas.Reservation)
def get_reservation(reservation_id: int, actor=Depends(current_actor)):
    try:
        return GearShareAPI.get_reservation(reservation_id, actor=actor)
    except GearShareError as e:
        raise http_error(e)

@router.post("/reservations/{reservation_id}/transition", response_model=schemas.Reservation)
def transition(reservation_id: int, body: TransitionRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.transition(
            reservation_id, body.target_status, actor, body.version, reason=body.reason)
    except GearShareError as e:
        raise http_error(e)

@router.patch("/reservations/{reservation_id}/notes", response_model=schemas.Reservation)
def annotate(reservation_id: int, body: NotesRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.annotate(reservation_id, actor, body.notes)
    except GearShareError as e:
        raise http_error(e)

@router.get("/reservations/{reservation_id}/history", response_model=List[schemas.StatusHistoryRecord])
def history(reservation_id: int, actor=Depends(current_actor)):
    try:
        return GearShareAPI.history(reservation_id, actor=actor)
    except GearShareError as e:
        raise http_error(e)

@router.get("/notifications", response_model=List[schemas.NotificationEvent])
def notifications(undelivered: bool = False, actor=Depends(current_actor)):
    return GearShareAPI.notifications(actor.id, undelivered_only=undelivered)

@router.get("/reports", response_model=List[schemas.DamageReport])
def get_reports(status: Optional[ReportStatus] = None, item_id: Optional[int] = None,
                actor=Depends(current_actor)):
    return GearShareAPI.get_reports(actor, status=status, item_id=item_id)

@router.post("/reports", response_model=schemas.DamageReport, status_code=status.HTTP_201_CREATED)
def file_report(body: ReportRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.file_report(
            body.item_id, actor, body.description,
            severity=body.severity, report_type=body.report_type)
    except GearShareError as e:
        raise http_error(e)

@router.post("/reports/{report_id}/start", response_model=schemas.DamageReport)
def start_report(report_id: int, actor=Depends(current_actor)):
    try:
        return GearShareAPI.start_report(report_id, actor)
    except GearShareError as e:
        raise http_error(e)

@router.post("/reports/{report_id}/resolve", response_model=schemas.DamageReport)
def resolve_report(report_id: int, body: ResolveRequest, actor=Depends(current_actor)):
    try:
        return GearShareAPI.resolve_report(report_id, actor, body.notes)
    except GearShareError as e:
        raise http_error(e)
