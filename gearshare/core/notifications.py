#!/usr/bin/env python

"""
    Notification dispatch for GearShare.

    Events are written to the `notification_events` table inside the
    transaction of the status change that caused them, then delivered
    later by `deliver_pending`. An event is marked delivered only after
    its sender succeeds, so delivery is at-least-once and consumers
    deduplicate on the event id.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import httpx
import logging
from gearshare.configs import (
    NOTIFY_WEBHOOK_URL, NOTIFY_TIMEOUT, NOTIFY_BATCH_SIZE, NOTIFY_INTERVAL,
    GEARSHARE_HTTP_HEADERS,
)
from gearshare.core.models import NotificationEvent, ReservationStatus, User
from gearshare.core.utils import BackgroundLoop, utcnow

logger = logging.getLogger(__name__)


class LogSender:
    """Fallback sender when no webhook is configured."""

    def send(self, event):
        logger.info(f"[notify] {event.kind} -> {event.recipient_user_id} ({event.id})")


class WebhookSender:

    HTTP_HEADERS = GEARSHARE_HTTP_HEADERS

    def __init__(self, url, timeout=NOTIFY_TIMEOUT):
        self.url = url
        self.timeout = timeout

    def send(self, event):
        body = {
            "id": event.id,
            "recipient": event.recipient_user_id,
            "reservation_id": event.reservation_id,
            "kind": event.kind,
            "payload": event.payload,
            "created_at": event.created_at.isoformat() if event.created_at else None,
        }
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.url, json=body, headers=self.HTTP_HEADERS)
            response.raise_for_status()


def default_sender():
    return WebhookSender(NOTIFY_WEBHOOK_URL) if NOTIFY_WEBHOOK_URL else LogSender()


class NotificationDispatcher(BackgroundLoop):
    """Writes outbox events and, on its own thread, delivers them."""

    thread_name = "gearshare-notify"

    OWNER_ONLY = {
        ReservationStatus.APPROVED,
        ReservationStatus.REJECTED,
        ReservationStatus.ACTIVE,
        ReservationStatus.COMPLETED,
        ReservationStatus.CANCELLED,
    }

    def __init__(self, session_factory, sender=None, interval=NOTIFY_INTERVAL):
        self.session_factory = session_factory
        self.sender = sender or default_sender()
        self.interval = interval
        self._init_loop()

    @classmethod
    def recipients(cls, session, reservation, status):
        if status == ReservationStatus.PENDING:
            admins = User.admin_ids(session)
            return [reservation.user_id] + [a for a in admins if a != reservation.user_id]
        if status in cls.OWNER_ONLY:
            return [reservation.user_id]
        return []

    @staticmethod
    def make_payload(reservation, status, actor_id, reason=None):
        return {
            "reservation_id": reservation.id,
            "item_id": reservation.item_id,
            "status": status.value,
            "start_date": reservation.start_date.isoformat(),
            "return_date": reservation.return_date.isoformat(),
            "actor_id": actor_id,
            "reason": reason,
        }

    def enqueue(self, session, reservation, status, actor_id, reason=None):
        """Adds one event per recipient to the caller's transaction.

        Never raises: a notification problem must not undo the status
        change it describes.
        """
        try:
            events = [
                NotificationEvent(
                    recipient_user_id=recipient,
                    reservation_id=reservation.id,
                    kind=f"reservation.{status.value}",
                    payload=self.make_payload(reservation, status, actor_id, reason),
                    created_at=utcnow(),
                )
                for recipient in self.recipients(session, reservation, status)
            ]
            session.add_all(events)
            return events
        except Exception as e:
            logger.error(f"Failed to enqueue notifications for reservation {reservation.id}: {e}")
            return []

    def deliver_pending(self, limit=NOTIFY_BATCH_SIZE):
        """Sends undelivered events oldest first; returns how many went out."""
        delivered = 0
        with self.session_factory() as session:
            events = session.query(NotificationEvent).filter(
                NotificationEvent.delivered == False  # noqa: E712
            ).order_by(NotificationEvent.created_at).limit(limit).all()
            for event in events:
                event.attempts += 1
                try:
                    self.sender.send(event)
                except Exception as e:
                    logger.warning(
                        f"Delivery of notification {event.id} failed (attempt {event.attempts}): {e}")
                    continue
                event.delivered = True
                event.delivered_at = utcnow()
                delivered += 1
            session.commit()
        return delivered

    def run_once(self):
        delivered = self.deliver_pending()
        if delivered:
            logger.info(f"Delivered {delivered} notifications.")
        return delivered

    def for_user(self, user_id, undelivered_only=False):
        with self.session_factory() as session:
            q = session.query(NotificationEvent).filter(
                NotificationEvent.recipient_user_id == user_id)
            if undelivered_only:
                q = q.filter(NotificationEvent.delivered == False)  # noqa: E712
            return q.order_by(NotificationEvent.created_at.desc()).all()
