from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from gearshare.core.models import ReservationStatus, ReportType, Severity

class ItemRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    location: Optional[str] = None
    notes: Optional[str] = None

class ReservationRequest(BaseModel):
    item_id: int
    start_date: datetime
    return_date: datetime
    notes: Optional[str] = None

class TransitionRequest(BaseModel):
    target_status: ReservationStatus
    version: int
    reason: Optional[str] = None

class NotesRequest(BaseModel):
    notes: str

class MaintenanceRequest(BaseModel):
    on: bool

class ReportRequest(BaseModel):
    item_id: int
    description: str = Field(..., min_length=1)
    severity: Severity = Severity.MEDIUM
    report_type: ReportType = ReportType.USER_DAMAGE

class ResolveRequest(BaseModel):
    notes: str = Field(..., min_length=1)
