#!/usr/bin/env python

"""
    Models for GearShare,
    including the definition of the items, reservations and their
    append-only audit and notification tables.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import enum
import uuid
from sqlalchemy import (
    Column, String, Boolean, Integer, DateTime, Text, JSON,
    ForeignKey, Index, CheckConstraint, Enum as SQLAlchemyEnum
)
from gearshare.core.db import Base
from gearshare.core.utils import utcnow


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"
    SYSTEM = "system"

class ItemStatus(str, enum.Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"

class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self):
        return self in TERMINAL_STATUSES

    @property
    def is_occupying(self):
        """True for statuses that hold a slot in the interval index."""
        return self in OCCUPYING_STATUSES

TERMINAL_STATUSES = frozenset({
    ReservationStatus.REJECTED,
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
})
OCCUPYING_STATUSES = frozenset({
    ReservationStatus.APPROVED,
    ReservationStatus.ACTIVE,
})
NON_TERMINAL_STATUSES = frozenset(ReservationStatus) - TERMINAL_STATUSES

class ReportType(str, enum.Enum):
    USER_DAMAGE = "user-damage"
    ADMIN_INSPECTION = "admin-inspection"

class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class ReportStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class User(Base):
    __tablename__ = 'users'

    user_id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(SQLAlchemyEnum(Role), default=Role.USER, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @classmethod
    def admin_ids(cls, session):
        return [u.user_id for u in session.query(cls).filter(cls.role == Role.ADMIN)]


class Item(Base):
    __tablename__ = 'items'

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    status = Column(SQLAlchemyEnum(ItemStatus), default=ItemStatus.AVAILABLE, nullable=False)
    maintenance = Column(Boolean, default=False, nullable=False)
    location = Column(String(200))
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @classmethod
    def get(cls, session, item_id, for_update=False):
        if for_update:
            # row lock serializes writers across processes; a no-op on SQLite
            return session.query(cls).filter(cls.id == item_id).with_for_update().one_or_none()
        return session.get(cls, item_id)

    def derive_status(self, session):
        """The status this item should show given its reservations.

        Only Approved/Active reservations count; a Pending request does
        not claim the item. Callers must flush pending changes first.
        """
        if self.maintenance:
            return ItemStatus.MAINTENANCE
        statuses = {r.status for r in Reservation.occupying(session, self.id)}
        if ReservationStatus.ACTIVE in statuses:
            return ItemStatus.IN_USE
        if ReservationStatus.APPROVED in statuses:
            return ItemStatus.RESERVED
        return ItemStatus.AVAILABLE

    def refresh_status(self, session):
        self.status = self.derive_status(session)
        return self.status


class Reservation(Base):
    __tablename__ = 'reservations'

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey('items.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(String(50), ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    start_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=False)
    status = Column(SQLAlchemyEnum(ReservationStatus), default=ReservationStatus.PENDING, nullable=False)
    notes = Column(Text)
    rejection_reason = Column(Text)
    approved_by = Column(String(50))
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint('start_date < return_date', name='ck_reservation_window'),
        Index('ix_reservations_item_status', 'item_id', 'status', 'start_date'),
    )

    @classmethod
    def get(cls, session, reservation_id):
        return session.get(cls, reservation_id)

    @classmethod
    def occupying(cls, session, item_id=None):
        """Approved/Active reservations, optionally for one item."""
        q = session.query(cls).filter(cls.status.in_(OCCUPYING_STATUSES))
        if item_id is not None:
            q = q.filter(cls.item_id == item_id)
        return q.order_by(cls.start_date).all()

    @classmethod
    def overlapping(cls, session, item_id, start, end, exclude_reservation_id=None):
        """Ids of stored Approved/Active reservations overlapping `[start, end)`."""
        q = session.query(cls.id).filter(
            cls.item_id == item_id,
            cls.status.in_(OCCUPYING_STATUSES),
            cls.start_date < end,
            cls.return_date > start,
        )
        if exclude_reservation_id is not None:
            q = q.filter(cls.id != exclude_reservation_id)
        return {rid for (rid,) in q}

    @classmethod
    def with_status(cls, session, status, item_id=None):
        q = session.query(cls).filter(cls.status == status)
        if item_id is not None:
            q = q.filter(cls.item_id == item_id)
        return q.order_by(cls.start_date, cls.id).all()


class StatusHistoryRecord(Base):
    __tablename__ = 'status_history'

    id = Column(Integer, primary_key=True)
    reservation_id = Column(Integer, ForeignKey('reservations.id', ondelete='CASCADE'), nullable=False, index=True)
    from_status = Column(SQLAlchemyEnum(ReservationStatus), nullable=True)
    to_status = Column(SQLAlchemyEnum(ReservationStatus), nullable=False)
    actor_id = Column(String(50), nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    reason = Column(Text)


class NotificationEvent(Base):
    __tablename__ = 'notification_events'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_user_id = Column(String(50), nullable=False, index=True)
    reservation_id = Column(Integer, ForeignKey('reservations.id', ondelete='CASCADE'), nullable=False, index=True)
    kind = Column(String(50), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    delivered = Column(Boolean, default=False, nullable=False)
    delivered_at = Column(DateTime)
    attempts = Column(Integer, default=0, nullable=False)


class DamageReport(Base):
    __tablename__ = 'damage_reports'

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey('items.id', ondelete='CASCADE'), nullable=False, index=True)
    reported_by = Column(String(50), ForeignKey('users.user_id', ondelete='CASCADE'), nullable=False)
    report_type = Column(SQLAlchemyEnum(ReportType), default=ReportType.USER_DAMAGE, nullable=False)
    severity = Column(SQLAlchemyEnum(Severity), default=Severity.MEDIUM, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(SQLAlchemyEnum(ReportStatus), default=ReportStatus.OPEN, nullable=False)
    resolution_notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    resolved_at = Column(DateTime)
