#!/usr/bin/env python

"""
    Interval index for GearShare.

    Keeps, per item, the `[start, end)` windows of every Approved or
    Active reservation sorted by start time. Terminal and Pending
    reservations never live here, so the structure stays as small as
    the set of current bookings rather than an item's whole history.

    Stored windows never overlap each other, which means their end
    times are sorted as well; an overlap query is a binary search for
    the last window starting before `end`, then a walk backwards while
    windows still end after `start`.

    :copyright: (c) 2015 by AUTHORS
    :license: see LICENSE for more details
"""

import bisect
import logging
import threading
from collections import defaultdict
from gearshare.core.exceptions import InvariantViolation

logger = logging.getLogger(__name__)


class IntervalIndex:

    def __init__(self):
        self._lock = threading.Lock()
        # item_id -> sorted list of (start, end, reservation_id)
        self._intervals = defaultdict(list)
        # reservation_id -> (item_id, entry)
        self._entries = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, reservation_id):
        return reservation_id in self._entries

    def _overlapping(self, item_id, start, end, exclude_reservation_id=None):
        entries = self._intervals.get(item_id, [])
        # first window whose start is >= end can't overlap; everything after it neither
        pos = bisect.bisect_left(entries, (end,))
        found = set()
        for s, e, rid in reversed(entries[:pos]):
            if e <= start:
                break
            if rid != exclude_reservation_id:
                found.add(rid)
        return found

    def query(self, item_id, start, end, exclude_reservation_id=None):
        """Returns ids of indexed reservations overlapping `[start, end)`."""
        with self._lock:
            return self._overlapping(item_id, start, end, exclude_reservation_id)

    def insert(self, item_id, reservation_id, start, end):
        if not start < end:
            raise InvariantViolation(f"Empty window for reservation {reservation_id}.")
        with self._lock:
            if reservation_id in self._entries:
                return
            clashes = self._overlapping(item_id, start, end)
            if clashes:
                raise InvariantViolation(
                    f"Reservation {reservation_id} overlaps {sorted(clashes)} on item {item_id}.")
            entry = (start, end, reservation_id)
            bisect.insort(self._intervals[item_id], entry)
            self._entries[reservation_id] = (item_id, entry)

    def remove(self, item_id, reservation_id):
        with self._lock:
            found = self._entries.pop(reservation_id, None)
            if not found:
                return
            indexed_item, entry = found
            if indexed_item != item_id:
                logger.warning(
                    f"Reservation {reservation_id} indexed under item {indexed_item}, not {item_id}.")
            entries = self._intervals[indexed_item]
            pos = bisect.bisect_left(entries, entry)
            if pos < len(entries) and entries[pos] == entry:
                del entries[pos]
            if not entries:
                del self._intervals[indexed_item]

    def intervals(self, item_id):
        """Snapshot of an item's windows, ordered by start."""
        with self._lock:
            return list(self._intervals.get(item_id, []))

    def clear(self):
        with self._lock:
            self._intervals.clear()
            self._entries.clear()

    def rebuild(self, reservations):
        """Replaces the contents with the given occupying reservations."""
        self.clear()
        for r in reservations:
            self.insert(r.item_id, r.id, r.start_date, r.return_date)
        logger.info(f"Interval index rebuilt with {len(self)} reservations.")
