# hmis/models/__init__.py
from .user import User
from .patient import Patient
from .billing import Invoice
from .pharmacy import Prescription
from .queue import QueueEntry, QueueHistoryEntry
from .ipd import Ward, Bed, Admission, AdmissionDiagnosis, BedTransfer
from .icu import IcuBed, IcuAdmission, IcuMonitoring
from .inventory import InventoryItem, InventoryTransaction
from .number_series import NumberSeries
from .outbox import OutboxEvent

__all__ = [
    "User",
    "Patient",
    "Invoice",
    "Prescription",
    "QueueEntry",
    "QueueHistoryEntry",
    "Ward",
    "Bed",
    "Admission",
    "AdmissionDiagnosis",
    "BedTransfer",
    "IcuBed",
    "IcuAdmission",
    "IcuMonitoring",
    "InventoryItem",
    "InventoryTransaction",
    "NumberSeries",
    "OutboxEvent",
]
