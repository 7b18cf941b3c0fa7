from typing import Optional
from gearshare.core import (
    SessionLocal, workflow, gate, recorder, dispatcher, reports
)
from gearshare.core.models import Item, Reservation, ReservationStatus, User
from gearshare.core.utils import to_utc
from gearshare.core.exceptions import Forbidden, NotFoundError, ValidationError


class GearShareAPI:

    DEFAULT_LIMIT = 50

    @classmethod
    def create_item(cls, actor, name, location=None, notes=None):
        if not actor.is_admin:
            raise Forbidden("Only admins can register equipment.")
        if not name or not name.strip():
            raise ValidationError("An item name is required.")
        with SessionLocal() as session:
            item = Item(name=name.strip(), location=location, notes=notes)
            session.add(item)
            session.commit()
            return item

    @classmethod
    def get_item(cls, item_id):
        with SessionLocal() as session:
            if item := Item.get(session, item_id):
                return item
        raise NotFoundError(f"Item {item_id} not found.")

    @classmethod
    def get_items(cls, offset=None, limit=None):
        with SessionLocal() as session:
            return Item.get_many(session, offset=offset, limit=limit or cls.DEFAULT_LIMIT)

    @classmethod
    def create_reservation(cls, item_id, user_id, start, end, notes=None):
        return workflow.create(item_id, user_id, start, end, notes=notes)

    @classmethod
    def transition(cls, reservation_id, target, actor, version, reason=None):
        return workflow.transition(reservation_id, target, actor, version, reason=reason)

    @classmethod
    def annotate(cls, reservation_id, actor, notes):
        return workflow.annotate(reservation_id, actor, notes)

    @classmethod
    def get_reservation(cls, reservation_id, actor=None):
        with SessionLocal() as session:
            reservation = Reservation.get(session, reservation_id)
        if not reservation:
            raise NotFoundError(f"Reservation {reservation_id} not found.")
        if actor and not (actor.is_admin or actor.id == reservation.user_id):
            raise Forbidden(f"{actor.id} may not view reservation {reservation_id}.")
        return reservation

    @classmethod
    def list_reservations(cls, item_id: Optional[int] = None, user_id: Optional[str] = None,
                          status=None, date_from=None, date_to=None):
        """Reservations matching every given filter, newest first.

        A date range selects reservations whose window overlaps
        `[date_from, date_to)`; either bound may be left open.
        """
        with SessionLocal() as session:
            q = session.query(Reservation)
            if item_id is not None:
                q = q.filter(Reservation.item_id == item_id)
            if user_id is not None:
                q = q.filter(Reservation.user_id == user_id)
            if status is not None:
                q = q.filter(Reservation.status == ReservationStatus(status))
            if date_from is not None:
                q = q.filter(Reservation.return_date > to_utc(date_from))
            if date_to is not None:
                q = q.filter(Reservation.start_date < to_utc(date_to))
            return q.order_by(Reservation.created_at.desc(), Reservation.id.desc()).all()

    @classmethod
    def set_maintenance(cls, item_id, on, actor):
        return gate.set_maintenance(item_id, on, actor)

    @classmethod
    def history(cls, reservation_id, actor=None):
        cls.get_reservation(reservation_id, actor=actor)
        return recorder.history(reservation_id)

    @classmethod
    def notifications(cls, user_id, undelivered_only=False):
        return dispatcher.for_user(user_id, undelivered_only=undelivered_only)

    @classmethod
    def file_report(cls, item_id, actor, description, severity="medium", report_type="user-damage"):
        return reports.file(item_id, actor, description, severity=severity, report_type=report_type)

    @classmethod
    def resolve_report(cls, report_id, actor, notes):
        return reports.resolve(report_id, actor, notes)

    @classmethod
    def start_report(cls, report_id, actor):
        return reports.start(report_id, actor)

    @classmethod
    def get_reports(cls, actor, status=None, item_id=None):
        return reports.list(actor, status=status, item_id=item_id)

    @classmethod
    def get_user(cls, user_id):
        with SessionLocal() as session:
            return session.get(User, user_id)
