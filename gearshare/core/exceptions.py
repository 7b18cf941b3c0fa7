
class GearShareError(Exception): pass

class ValidationError(GearShareError): pass

class NotFoundError(GearShareError): pass

class InvalidTransition(GearShareError): pass

class StaleWrite(GearShareError): pass

class ItemBusy(StaleWrite): pass

class Forbidden(GearShareError): pass

class MaintenanceBlocked(GearShareError): pass

class InvariantViolation(GearShareError): pass

class BookingConflict(GearShareError):

    def __init__(self, conflict_ids, message=None):
        self.conflict_ids = set(conflict_ids)
        super().__init__(
            message or f"Booking overlaps reservations {sorted(self.conflict_ids)}.")
