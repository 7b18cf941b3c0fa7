#!/usr/bin/env python
"""
    Item Schema for GearShare,
    including the definition of the Item model and its attributes.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from gearshare.core.models import ItemStatus

class Item(BaseModel):
    id: int
    name: str
    status: ItemStatus
    maintenance: bool = False
    location: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "name": "Canon EOS R6",
                "status": "available",
                "maintenance": False,
                "location": "Media lab, cabinet B",
                "notes": "Battery grip included",
                "created_at": "2023-10-01T12:00:00",
                "updated_at": "2023-10-01T12:00:00"
            }
        }
