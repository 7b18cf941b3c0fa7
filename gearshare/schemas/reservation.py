from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from gearshare.core.models import ReservationStatus

class Reservation(BaseModel):
    id: int
    item_id: int
    user_id: str
    start_date: datetime
    return_date: datetime
    status: ReservationStatus
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    approved_by: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
