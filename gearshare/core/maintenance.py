import logging
from gearshare.core.models import Item, Reservation, ReservationStatus, Role
from gearshare.core.exceptions import Forbidden, NotFoundError, StaleWrite

logger = logging.getLogger(__name__)


class MaintenanceGate:
    """Takes items offline and clears their outstanding bookings.

    Switching maintenance on rejects every Pending request and cancels
    every Approved booking that has not started yet. Active use, and
    Approved bookings already past their start that the sweep has not
    picked up, carry on. Switching it off restores nothing.
    """

    REASON = "item under maintenance"
    RETRIES = 3

    def __init__(self, workflow):
        self.workflow = workflow

    def _outstanding(self, session, item_id):
        now = self.workflow.clock()
        pending = Reservation.with_status(session, ReservationStatus.PENDING, item_id)
        upcoming = [
            r for r in Reservation.with_status(session, ReservationStatus.APPROVED, item_id)
            if r.start_date > now
        ]
        return pending, upcoming

    def _still_outstanding(self, reservation, source):
        if reservation is None or reservation.status != source:
            return False
        return source == ReservationStatus.PENDING or reservation.start_date > self.workflow.clock()

    def _clear(self, reservation, target, actor):
        """Moves one reservation off the item, re-reading it if it changed underneath us."""
        source = reservation.status
        for attempt in range(1, self.RETRIES + 1):
            try:
                self.workflow.transition(
                    reservation.id, target, actor, reservation.version, reason=self.REASON)
                return True
            except StaleWrite:
                if attempt == self.RETRIES:
                    raise
                logger.info(f"Reservation {reservation.id} changed during maintenance cascade; retrying.")
            with self.workflow.session_factory() as session:
                reservation = Reservation.get(session, reservation.id)
            if not self._still_outstanding(reservation, source):
                return False
        return False

    def set_maintenance(self, item_id, on, actor):
        if actor.role != Role.ADMIN:
            raise Forbidden(f"{actor.id} may not change maintenance on item {item_id}.")

        # held for the whole cascade; transitions re-enter the same lock
        with self.workflow.locks.hold(item_id):
            with self.workflow.session_factory() as session:
                try:
                    item = Item.get(session, item_id, for_update=True)
                    if not item:
                        raise NotFoundError(f"Item {item_id} not found.")
                    item.maintenance = bool(on)
                    item.refresh_status(session)
                    session.commit()
                except Exception:
                    session.rollback()
                    raise
                pending, upcoming = self._outstanding(session, item_id) if on else ([], [])

            rejected = sum(self._clear(r, ReservationStatus.REJECTED, actor) for r in pending)
            cancelled = sum(self._clear(r, ReservationStatus.CANCELLED, actor) for r in upcoming)
            if on:
                logger.info(
                    f"Item {item_id} under maintenance: rejected {rejected}, "
                    f"cancelled {cancelled} reservations.")
            else:
                logger.info(f"Item {item_id} back from maintenance.")

            with self.workflow.session_factory() as session:
                return Item.get(session, item_id)
