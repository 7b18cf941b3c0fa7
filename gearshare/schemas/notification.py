from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class NotificationEvent(BaseModel):
    id: str
    recipient_user_id: str = Field(..., min_length=1, max_length=50)
    reservation_id: int
    kind: str = Field(..., min_length=1, max_length=50)
    payload: dict = Field(default_factory=dict)
    created_at: datetime
    delivered: bool = Field(default=False)
    delivered_at: Optional[datetime] = None

    class Config:
        from_attributes = True
