from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from gearshare.core.models import ReservationStatus

class StatusHistoryRecord(BaseModel):
    id: int
    reservation_id: int
    from_status: Optional[ReservationStatus] = None
    to_status: ReservationStatus
    actor_id: str
    timestamp: datetime
    reason: Optional[str] = None

    class Config:
        from_attributes = True
