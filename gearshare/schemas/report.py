from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from gearshare.core.models import ReportStatus, ReportType, Severity

class DamageReport(BaseModel):
    id: int
    item_id: int
    reported_by: str
    report_type: ReportType
    severity: Severity
    description: str
    status: ReportStatus
    resolution_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True
