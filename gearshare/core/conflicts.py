
from typing import NamedTuple, FrozenSet
from gearshare.core.exceptions import BookingConflict


class CheckResult(NamedTuple):
    conflicts: FrozenSet[int] = frozenset()

    @property
    def ok(self):
        return not self.conflicts


class ConflictDetector:
    """Read-only admission check for a booking window.

    Separating "can this succeed" from the commit keeps the check safe to
    repeat; it never touches the index it reads.
    """

    def __init__(self, index):
        self.index = index

    def check(self, item_id, start, end, exclude_reservation_id=None) -> CheckResult:
        return CheckResult(frozenset(
            self.index.query(item_id, start, end, exclude_reservation_id)))

    def raise_for_conflict(self, item_id, start, end, exclude_reservation_id=None):
        result = self.check(item_id, start, end, exclude_reservation_id)
        if not result.ok:
            raise BookingConflict(result.conflicts)
        return result
