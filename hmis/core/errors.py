# hmis/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class HmisError(RuntimeError):
    """Base for every domain failure raised by the service layer.

    Carries a stable machine ``code`` and the HTTP status the API layer
    should answer with. Raising one inside ``atomic()`` rolls back the
    whole unit of work.
    """

    code = "HMIS_ERROR"
    status_code = 400
    default_msg = "Request failed"

    def __init__(self, msg: Optional[str] = None, *, details: Any = None):
        super().__init__(msg or self.default_msg)
        self.msg = msg or self.default_msg
        self.details = details


# ---------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------
class ValidationFailed(HmisError):
    code = "VALIDATION_FAILED"
    status_code = 400
    default_msg = "Invalid input"


class PreconditionFailed(HmisError):
    code = "PRECONDITION_FAILED"
    status_code = 409
    default_msg = "Precondition failed"


class NotFound(HmisError):
    code = "NOT_FOUND"
    status_code = 404
    default_msg = "Not found"


class Conflict(HmisError):
    code = "CONFLICT"
    status_code = 409
    default_msg = "Conflicting update, retry the request"


# ---------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------
class NoPendingBills(PreconditionFailed):
    code = "NO_PENDING_BILLS"
    default_msg = "Patient has no pending bills"


class NoPendingPrescriptions(PreconditionFailed):
    code = "NO_PENDING_PRESCRIPTIONS"
    default_msg = "Patient has no pending prescriptions"


class PendingBillsBlockCompletion(PreconditionFailed):
    code = "PENDING_BILLS_BLOCK_COMPLETION"
    default_msg = "Patient still has pending bills"


class CannotDeleteTerminalEntry(PreconditionFailed):
    code = "CANNOT_DELETE_TERMINAL_ENTRY"
    default_msg = "Completed or cancelled entries must be archived, not deleted"


class EntryNotTerminal(PreconditionFailed):
    code = "ENTRY_NOT_TERMINAL"
    default_msg = "Only completed or cancelled entries can be archived"


class InvalidStatusTransition(PreconditionFailed):
    code = "INVALID_STATUS_TRANSITION"
    default_msg = "Status transition not allowed"


class TerminalEntryImmutable(PreconditionFailed):
    code = "TERMINAL_ENTRY_IMMUTABLE"
    default_msg = "Entry is completed or cancelled and can no longer change"


class AdmissionNotActive(PreconditionFailed):
    code = "ADMISSION_NOT_ACTIVE"
    default_msg = "Admission is not active"


class WardHasActiveBeds(PreconditionFailed):
    code = "WARD_HAS_ACTIVE_BEDS"
    default_msg = "Cannot deactivate a ward that has active beds"


class InsufficientStock(PreconditionFailed):
    code = "INSUFFICIENT_STOCK"
    default_msg = "Insufficient stock"


# ---------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------
class QueueEntryNotFound(NotFound):
    code = "QUEUE_ENTRY_NOT_FOUND"
    default_msg = "Queue entry not found"


class PatientNotFound(NotFound):
    code = "PATIENT_NOT_FOUND"
    default_msg = "Patient not found"


class BedNotFound(NotFound):
    code = "BED_NOT_FOUND"
    default_msg = "Bed not found"


class WardNotFound(NotFound):
    code = "WARD_NOT_FOUND"
    default_msg = "Ward not found"


class AdmissionNotFound(NotFound):
    code = "ADMISSION_NOT_FOUND"
    default_msg = "Admission not found"


class MonitoringRecordNotFound(NotFound):
    code = "MONITORING_RECORD_NOT_FOUND"
    default_msg = "ICU monitoring record not found"


class ItemNotFound(NotFound):
    code = "ITEM_NOT_FOUND"
    default_msg = "Inventory item not found"


class TransactionNotFound(NotFound):
    code = "TRANSACTION_NOT_FOUND"
    default_msg = "Inventory transaction not found"


# ---------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------
class BedUnavailable(Conflict):
    code = "BED_UNAVAILABLE"
    default_msg = "Bed is not available"


class NumberSeriesConflict(Conflict):
    code = "NUMBER_SERIES_CONFLICT"
    default_msg = "Number series is busy, retry the request"


class DuplicateKey(Conflict):
    code = "DUPLICATE_KEY"
    default_msg = "Database constraint error (duplicate/invalid reference)"
