#!/usr/bin/env python

"""
    Reservation workflow for GearShare.

    Every status change goes through `WorkflowEngine.transition`, which
    enforces the transition table below, the role allowed on each edge,
    optimistic concurrency on `Reservation.version` and, for edges that
    claim the item, the absence of overlapping bookings.

    A transition runs inside the item's lock and commits the reservation,
    the derived item status, its history record and its notification
    events in one database transaction. The interval index is updated
    after the commit, before the lock is released.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import threading
from contextlib import contextmanager
from typing import NamedTuple
from sqlalchemy.orm.exc import StaleDataError
from gearshare.configs import LOCK_TIMEOUT
from gearshare.core.activity import ActivityRecorder
from gearshare.core.conflicts import ConflictDetector
from gearshare.core.intervals import IntervalIndex
from gearshare.core.notifications import NotificationDispatcher
from gearshare.core.models import (
    Item, Reservation, User, Role, ReservationStatus
)
from gearshare.core.utils import utcnow, to_utc
from gearshare.core.exceptions import (
    ValidationError,
    NotFoundError,
    InvalidTransition,
    StaleWrite,
    ItemBusy,
    BookingConflict,
    Forbidden,
    MaintenanceBlocked,
)

logger = logging.getLogger(__name__)


class Actor(NamedTuple):
    id: str
    role: Role

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

SYSTEM = Actor("system", Role.SYSTEM)

# Edge permission meaning "the user who made the reservation"
OWNER = "owner"

P, A, R, ACT, DONE, C = (
    ReservationStatus.PENDING,
    ReservationStatus.APPROVED,
    ReservationStatus.REJECTED,
    ReservationStatus.ACTIVE,
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
)

TRANSITIONS = {
    (P, A): {Role.ADMIN},
    (P, R): {Role.ADMIN},
    (P, C): {OWNER, Role.ADMIN},
    (A, ACT): {Role.SYSTEM},
    (A, C): {OWNER, Role.ADMIN},
    (ACT, DONE): {Role.SYSTEM},
    (ACT, C): {Role.ADMIN},
}


def allowed_targets(status):
    return {target for (source, target) in TRANSITIONS if source == status}


class ItemLocks:
    """Re-entrant lock per item, so transitions on one item run one at a time."""

    def __init__(self, timeout=LOCK_TIMEOUT):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks = {}

    def _get(self, item_id):
        with self._guard:
            return self._locks.setdefault(item_id, threading.RLock())

    @contextmanager
    def hold(self, item_id, timeout=None):
        lock = self._get(item_id)
        timeout = self.timeout if timeout is None else timeout
        if not lock.acquire(timeout=timeout):
            raise ItemBusy(f"Item {item_id} is busy; try again.")
        try:
            yield
        finally:
            lock.release()


class WorkflowEngine:

    def __init__(self, session_factory, index=None, recorder=None,
                 dispatcher=None, locks=None, clock=utcnow):
        self.session_factory = session_factory
        self.index = index if index is not None else IntervalIndex()
        self.detector = ConflictDetector(self.index)
        self.recorder = recorder or ActivityRecorder(session_factory)
        self.dispatcher = dispatcher or NotificationDispatcher(session_factory)
        self.locks = locks or ItemLocks()
        self.clock = clock

    def rebuild_index(self):
        with self.session_factory() as session:
            self.index.rebuild(Reservation.occupying(session))

    def create(self, item_id, user_id, start, end, notes=None):
        """Files a Pending reservation.

        Other Pending requests for the same window are not consulted;
        overlap is only enforced when a request is approved.
        """
        start, end = to_utc(start), to_utc(end)
        if start is None or end is None:
            raise ValidationError("start_date and return_date are required.")
        if not start < end:
            raise ValidationError("start_date must be before return_date.")

        with self.locks.hold(item_id):
            with self.session_factory() as session:
                try:
                    item = Item.get(session, item_id)
                    if not item:
                        raise NotFoundError(f"Item {item_id} not found.")
                    if not session.get(User, user_id):
                        raise NotFoundError(f"User {user_id} not found.")
                    if item.maintenance:
                        raise MaintenanceBlocked(f"Item {item_id} is under maintenance.")
                    reservation = Reservation(
                        item_id=item_id,
                        user_id=user_id,
                        start_date=start,
                        return_date=end,
                        status=P,
                        notes=notes,
                    )
                    session.add(reservation)
                    session.flush()
                    self.recorder.record(session, reservation, None, P, user_id)
                    self.dispatcher.enqueue(session, reservation, P, user_id)
                    session.commit()
                except Exception:
                    session.rollback()
                    raise
        logger.info(f"Reservation {reservation.id} created for item {item_id} by {user_id}.")
        return reservation

    def _item_of(self, reservation_id):
        with self.session_factory() as session:
            reservation = Reservation.get(session, reservation_id)
            if not reservation:
                raise NotFoundError(f"Reservation {reservation_id} not found.")
            return reservation.item_id

    def _raise_for_stored_conflict(self, session, reservation):
        clashes = Reservation.overlapping(
            session, reservation.item_id, reservation.start_date, reservation.return_date,
            exclude_reservation_id=reservation.id)
        if clashes:
            logger.warning(
                f"Interval index missed {sorted(clashes)} on item {reservation.item_id}; "
                f"is another process writing to this database?")
            raise BookingConflict(clashes)

    @staticmethod
    def _authorized(actor, allowed, reservation):
        if actor.role in allowed:
            return True
        return OWNER in allowed and actor.id == reservation.user_id

    def _apply(self, session, reservation_id, target, actor, version, reason):
        reservation = Reservation.get(session, reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found.")
        if reservation.version != version:
            raise StaleWrite(
                f"Reservation {reservation_id} is at version {reservation.version}, not {version}.")

        current = reservation.status
        edge = (current, target)
        allowed = TRANSITIONS.get(edge)
        if allowed is None:
            raise InvalidTransition(
                f"Reservation {reservation_id} cannot go from {current.value} to {target.value}.")
        if not self._authorized(actor, allowed, reservation):
            raise Forbidden(f"{actor.id} may not move reservation {reservation_id} to {target.value}.")
        if edge == (A, C) and self.clock() >= reservation.start_date:
            raise InvalidTransition(
                f"Reservation {reservation_id} has already started and can no longer be cancelled.")

        item = Item.get(session, reservation.item_id, for_update=True)
        if target == A and item.maintenance:
            raise MaintenanceBlocked(f"Item {item.id} is under maintenance.")
        if target.is_occupying:
            self.detector.raise_for_conflict(
                item.id, reservation.start_date, reservation.return_date,
                exclude_reservation_id=reservation.id)
            self._raise_for_stored_conflict(session, reservation)

        reservation.status = target
        if target == A:
            reservation.approved_by = actor.id
        elif target == R:
            reservation.rejection_reason = reason
        session.flush()
        item.refresh_status(session)
        self.recorder.record(session, reservation, current, target, actor.id, reason)
        self.dispatcher.enqueue(session, reservation, target, actor.id, reason)
        return reservation

    def _update_index(self, reservation):
        if reservation.status.is_occupying:
            self.index.insert(
                reservation.item_id, reservation.id,
                reservation.start_date, reservation.return_date)
        elif reservation.status.is_terminal:
            self.index.remove(reservation.item_id, reservation.id)

    def transition(self, reservation_id, target, actor, version, reason=None):
        """Moves a reservation to `target` on behalf of `actor`.

        `version` must be the version the caller last saw. Raises
        NotFoundError, StaleWrite, InvalidTransition, Forbidden,
        MaintenanceBlocked or BookingConflict; on any of them nothing
        is changed.
        """
        target = ReservationStatus(target)
        item_id = self._item_of(reservation_id)
        with self.locks.hold(item_id):
            with self.session_factory() as session:
                try:
                    reservation = self._apply(
                        session, reservation_id, target, actor, version, reason)
                    session.commit()
                except StaleDataError as e:
                    session.rollback()
                    raise StaleWrite(f"Reservation {reservation_id} was modified concurrently.") from e
                except Exception:
                    session.rollback()
                    raise
            self._update_index(reservation)
        logger.info(
            f"Reservation {reservation_id} -> {target.value} by {actor.id} (v{reservation.version}).")
        return reservation

    def annotate(self, reservation_id, actor, notes):
        """Replaces a reservation's notes; allowed in any status, terminal included."""
        item_id = self._item_of(reservation_id)
        # bumps the version, so it queues behind transitions on the same item
        with self.locks.hold(item_id):
            with self.session_factory() as session:
                try:
                    reservation = Reservation.get(session, reservation_id)
                    if not (actor.is_admin or actor.id == reservation.user_id):
                        raise Forbidden(f"{actor.id} may not edit reservation {reservation_id}.")
                    reservation.notes = notes
                    session.commit()
                except StaleDataError as e:
                    session.rollback()
                    raise StaleWrite(f"Reservation {reservation_id} was modified concurrently.") from e
                except Exception:
                    session.rollback()
                    raise
        return reservation
