from hmis.core.config import settings
from hmis.db.session import atomic
from hmis.models.outbox import OutboxEvent
from hmis.models.patient import Patient
from hmis.models.queue import QueueEntry
from hmis.schemas.patient import PatientCreate
from hmis.services.outbox import dispatch_pending_events
from hmis.services.patients import register_patient


def _register(db, **kw):
    with atomic(db):
        p = register_patient(db, PatientCreate(first_name="Liya", last_name="Tekle", **kw))
        return p.id


def test_registration_queues_patient_through_outbox(db):
    patient_id = _register(db, initial_service_point="triage", priority="urgent")

    assert db.get(Patient, patient_id).patient_number == "PAT-000001"
    event = db.query(OutboxEvent).one()
    assert event.status == "pending"
    assert event.payload["patient_id"] == patient_id
    assert db.query(QueueEntry).count() == 0

    result = dispatch_pending_events(db)
    assert result == {"processed": 1, "failed": 0}

    entry = db.query(QueueEntry).one()
    assert (entry.patient_id, entry.service_point, entry.priority) == (patient_id, "triage", "urgent")
    event = db.query(OutboxEvent).one()
    assert event.status == "processed"
    assert event.processed_at is not None

    # already handled events are not replayed
    assert dispatch_pending_events(db) == {"processed": 0, "failed": 0}
    assert db.query(QueueEntry).count() == 1


def test_failed_handler_keeps_patient_and_records_error(db, monkeypatch):
    # cashier without an invoice is refused by the queue engine
    patient_id = _register(db, initial_service_point="cashier")

    result = dispatch_pending_events(db)
    assert result == {"processed": 0, "failed": 1}

    assert db.get(Patient, patient_id) is not None
    event = db.query(OutboxEvent).one()
    assert event.status == "failed"
    assert event.attempts == 1
    assert "NoPendingBills" in event.last_error
    assert db.query(QueueEntry).count() == 0

    monkeypatch.setattr(settings, "OUTBOX_MAX_ATTEMPTS", 2)
    dispatch_pending_events(db)
    assert dispatch_pending_events(db) == {"processed": 0, "failed": 0}
    db.expire_all()
    assert db.query(OutboxEvent).one().attempts == 2


def test_registration_without_service_point_emits_nothing(db):
    _register(db)
    assert db.query(OutboxEvent).count() == 0
