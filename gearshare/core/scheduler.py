#!/usr/bin/env python

"""
    Scheduler sweep for GearShare.

    Advances the time-driven transitions (Approved -> Active at the start
    of a booking, Active -> Completed at its return) as the `system`
    actor, through the same `WorkflowEngine.transition` human callers
    use. A reservation that can't move right now is skipped and looked
    at again on the next tick. Notification delivery runs on its own
    loop (`NotificationDispatcher.start`) so a slow webhook never holds
    up a tick.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from gearshare.configs import SWEEP_INTERVAL
from gearshare.core.models import Reservation, ReservationStatus
from gearshare.core.utils import BackgroundLoop
from gearshare.core.workflow import SYSTEM
from gearshare.core.exceptions import (
    BookingConflict,
    InvalidTransition,
    MaintenanceBlocked,
    NotFoundError,
    StaleWrite,
)

logger = logging.getLogger(__name__)


class SchedulerSweep(BackgroundLoop):

    NOT_READY = (BookingConflict, StaleWrite, InvalidTransition, MaintenanceBlocked, NotFoundError)
    thread_name = "gearshare-sweep"

    def __init__(self, workflow, interval=SWEEP_INTERVAL):
        self.workflow = workflow
        self.interval = interval
        self._init_loop()

    def due(self, now):
        """(reservation_id, version, target) for everything whose time has come."""
        with self.workflow.session_factory() as session:
            ending = session.query(Reservation).filter(
                Reservation.status == ReservationStatus.ACTIVE,
                Reservation.return_date <= now,
            ).order_by(Reservation.return_date).all()
            starting = session.query(Reservation).filter(
                Reservation.status == ReservationStatus.APPROVED,
                Reservation.start_date <= now,
            ).order_by(Reservation.start_date).all()
        # completions first so a booking starting as another ends finds the slot free
        return (
            [(r.id, r.version, ReservationStatus.COMPLETED) for r in ending] +
            [(r.id, r.version, ReservationStatus.ACTIVE) for r in starting]
        )

    def tick(self, now=None):
        now = now or self.workflow.clock()
        counts = {"activated": 0, "completed": 0, "skipped": 0}
        for reservation_id, version, target in self.due(now):
            try:
                self.workflow.transition(
                    reservation_id, target, SYSTEM, version, reason="scheduled")
            except self.NOT_READY as e:
                logger.info(f"Sweep skipped reservation {reservation_id} -> {target.value}: {e}")
                counts["skipped"] += 1
                continue
            except Exception:
                logger.exception(f"Sweep failed on reservation {reservation_id} -> {target.value}")
                counts["skipped"] += 1
                continue
            if target == ReservationStatus.ACTIVE:
                counts["activated"] += 1
            else:
                counts["completed"] += 1
        return counts

    def run_once(self):
        counts = self.tick()
        if counts["activated"] or counts["completed"]:
            logger.info(f"Sweep tick: {counts}")
        return counts
