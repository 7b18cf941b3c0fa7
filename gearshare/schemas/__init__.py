from gearshare.schemas.item import Item
from gearshare.schemas.reservation import Reservation
from gearshare.schemas.history import StatusHistoryRecord
from gearshare.schemas.notification import NotificationEvent
from gearshare.schemas.report import DamageReport
from gearshare.schemas.user import User

__all__ = [
    "Item", "Reservation", "StatusHistoryRecord",
    "NotificationEvent", "DamageReport", "User",
]
