from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime
from gearshare.core.models import Role

class User(BaseModel):
    user_id: str
    name: str
    email: EmailStr
    role: Role
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
