import logging
from gearshare.core.models import StatusHistoryRecord
from gearshare.core.utils import utcnow

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Append-only audit trail of reservation status changes.

    There is no update or delete; a correction is a new record. Writes
    share the caller's transaction, so a failure to record aborts the
    transition that produced it.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def record(self, session, reservation, from_status, to_status, actor_id, reason=None):
        record = StatusHistoryRecord(
            reservation_id=reservation.id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            timestamp=utcnow(),
            reason=reason,
        )
        session.add(record)
        return record

    def history(self, reservation_id):
        with self.session_factory() as session:
            return session.query(StatusHistoryRecord).filter(
                StatusHistoryRecord.reservation_id == reservation_id
            ).order_by(StatusHistoryRecord.timestamp, StatusHistoryRecord.id).all()
