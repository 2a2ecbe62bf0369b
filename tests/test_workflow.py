import pytest

from hmis.core.errors import TerminalEntryImmutable, ValidationFailed
from hmis.db.session import atomic
from hmis.models.queue import QueueEntry
from hmis.services import queue_service as qs
from hmis.services.workflow import run_chain_step


def _queue(db, patient_id, service_point):
    with atomic(db):
        entry = qs._insert_entry(db, patient_id=patient_id, service_point=service_point,
                                 priority="normal")
        return entry.id


def test_full_patient_journey(db, patient, make_invoice, make_prescription):
    triage_id = _queue(db, patient.id, "triage")

    with atomic(db):
        cashier, dup = run_chain_step(db, "triage-to-cashier",
                                      {"patient_id": patient.id, "queue_id": triage_id,
                                       "service_type": "general medicine"})
        cashier_id = cashier.id
    assert dup is False
    assert db.get(QueueEntry, triage_id).status == "completed"
    assert db.get(QueueEntry, cashier_id).notes == \
        "Consultation fees payment - Service: general medicine"

    with atomic(db):
        consult, _ = run_chain_step(db, "cashier-to-consultation",
                                    {"patient_id": patient.id, "queue_id": cashier_id,
                                     "doctor_id": 7})
        consult_id = consult.id
    assert db.get(QueueEntry, consult_id).notes == "Assigned to doctor ID: 7"

    with atomic(db):
        lab, _ = run_chain_step(db, "consultation-to-lab",
                                {"patient_id": patient.id, "queue_id": consult_id})
        lab_id = lab.id
    assert db.get(QueueEntry, lab_id).service_point == "laboratory"

    with atomic(db):
        pay, _ = run_chain_step(db, "prescription-to-cashier",
                                {"patient_id": patient.id, "prescription_id": 55})
        pay_id = pay.id
    assert db.get(QueueEntry, pay_id).notes == "Drug payment - Prescription ID: 55"

    with atomic(db):
        pharmacy, _ = run_chain_step(db, "cashier-to-pharmacy",
                                     {"patient_id": patient.id, "queue_id": pay_id})
        pharmacy_id = pharmacy.id

    closed = db.get(QueueEntry, pay_id)
    assert closed.status == "completed"
    assert closed.end_time is not None
    assert db.get(QueueEntry, pharmacy_id).notes == "Drug collection"


def test_chain_skips_gates_but_keeps_one_active_entry(db, patient):
    # no invoice and no prescription: the chain is the trusted source
    triage_id = _queue(db, patient.id, "triage")
    with atomic(db):
        first, dup1 = run_chain_step(db, "triage-to-cashier",
                                     {"patient_id": patient.id, "queue_id": triage_id})
        first_id = first.id
    with atomic(db):
        again, dup2 = run_chain_step(db, "triage-to-cashier", {"patient_id": patient.id})
        again_id = again.id

    assert dup1 is False
    assert dup2 is True
    assert first_id == again_id
    assert db.query(QueueEntry).filter(QueueEntry.service_point == "cashier").count() == 1


def test_chain_rolls_back_when_insert_fails(db, patient, monkeypatch):
    cashier_id = _queue(db, patient.id, "cashier")

    def boom(*args, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(qs, "_insert_entry", boom)
    with pytest.raises(RuntimeError):
        with atomic(db):
            run_chain_step(db, "cashier-to-consultation",
                           {"patient_id": patient.id, "queue_id": cashier_id, "doctor_id": 3})

    db.expire_all()
    entry = db.get(QueueEntry, cashier_id)
    assert entry.status == "waiting"
    assert entry.end_time is None
    assert db.query(QueueEntry).filter(QueueEntry.service_point == "consultation").count() == 0


def test_chain_validates_closing_entry(db, make_patient):
    owner = make_patient("Tigist", "Worku")
    stranger = make_patient("Kidus", "Mengistu")
    triage_id = _queue(db, owner.id, "triage")

    with pytest.raises(ValidationFailed):
        with atomic(db):
            run_chain_step(db, "triage-to-cashier",
                           {"patient_id": stranger.id, "queue_id": triage_id})

    with pytest.raises(ValidationFailed):
        with atomic(db):
            run_chain_step(db, "cashier-to-consultation",
                           {"patient_id": owner.id, "queue_id": triage_id})


def test_chain_refuses_cancelled_closing_entry(db, patient):
    triage_id = _queue(db, patient.id, "triage")
    with atomic(db):
        qs.update_status(db, triage_id, "cancelled")

    with pytest.raises(TerminalEntryImmutable):
        with atomic(db):
            run_chain_step(db, "triage-to-cashier",
                           {"patient_id": patient.id, "queue_id": triage_id})


def test_unknown_step_and_missing_patient(db):
    with pytest.raises(ValidationFailed):
        run_chain_step(db, "lab-to-mortuary", {"patient_id": 1})
    with pytest.raises(ValidationFailed):
        run_chain_step(db, "triage-to-cashier", {})
