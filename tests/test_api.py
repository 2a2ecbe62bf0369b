from hmis.core.config import settings

API = "/api"


def test_requests_need_a_valid_token(client):
    r = client.get(f"{API}/queue")
    assert r.status_code == 401
    assert r.json()["ok"] is False

    r = client.get(f"{API}/queue", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_queue_create_duplicate_and_list(client, auth_headers, patient):
    body = {"patient_id": patient.id, "service_point": "triage", "notes": "walk-in"}
    first = client.post(f"{API}/queue", headers=auth_headers, json=body)
    assert first.status_code == 201
    data = first.json()["data"]
    assert data["ticket_number"] == "T-001"
    assert data["status"] == "waiting"
    assert data["duplicate"] is False
    assert data["patient_first_name"] == "Abebe"

    again = client.post(f"{API}/queue", headers=auth_headers, json=body)
    assert again.status_code == 200
    assert again.json()["data"]["id"] == data["id"]
    assert again.json()["data"]["duplicate"] is True

    listing = client.get(f"{API}/queue?service_point=triage", headers=auth_headers)
    assert listing.status_code == 200
    payload = listing.json()
    assert payload["meta"]["total"] == 1
    assert payload["data"][0]["id"] == data["id"]


def test_cashier_gate_errors_use_codes(client, auth_headers, patient, make_invoice):
    r = client.post(f"{API}/queue", headers=auth_headers,
                    json={"patient_id": patient.id, "service_point": "cashier"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "NO_PENDING_BILLS"

    make_invoice(patient.id)
    r = client.post(f"{API}/queue", headers=auth_headers,
                    json={"patient_id": patient.id, "service_point": "cashier"})
    assert r.status_code == 201
    queue_id = r.json()["data"]["id"]

    r = client.put(f"{API}/queue/{queue_id}/status", headers=auth_headers,
                   json={"status": "completed"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "PENDING_BILLS_BLOCK_COMPLETION"

    r = client.get(f"{API}/queue/{queue_id}", headers=auth_headers)
    assert r.json()["data"]["status"] == "waiting"


def test_status_patch_archive_and_history(client, auth_headers, patient):
    created = client.post(f"{API}/queue", headers=auth_headers,
                          json={"patient_id": patient.id, "service_point": "consultation"})
    queue_id = created.json()["data"]["id"]

    r = client.put(f"{API}/queue/{queue_id}", headers=auth_headers, json={"priority": "urgent"})
    assert r.status_code == 200
    assert r.json()["data"]["priority"] == "urgent"

    for status in ("called", "serving", "completed"):
        r = client.put(f"{API}/queue/{queue_id}/status", headers=auth_headers,
                       json={"status": status})
        assert r.status_code == 200
        assert r.json()["data"]["status"] == status

    r = client.put(f"{API}/queue/{queue_id}/status", headers=auth_headers,
                   json={"status": "serving"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "TERMINAL_ENTRY_IMMUTABLE"

    r = client.delete(f"{API}/queue/{queue_id}", headers=auth_headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CANNOT_DELETE_TERMINAL_ENTRY"

    r = client.post(f"{API}/queue/{queue_id}/archive", headers=auth_headers)
    assert r.status_code == 200
    hist = r.json()["data"]
    assert hist["queue_id"] == queue_id
    assert hist["total_time_minutes"] is not None

    assert client.get(f"{API}/queue/{queue_id}", headers=auth_headers).status_code == 404
    r = client.get(f"{API}/queue/history?patient_id={patient.id}", headers=auth_headers)
    assert r.json()["meta"]["total"] == 1


def test_unknown_patch_field_is_rejected(client, auth_headers, patient):
    created = client.post(f"{API}/queue", headers=auth_headers,
                          json={"patient_id": patient.id, "service_point": "triage"})
    queue_id = created.json()["data"]["id"]
    r = client.put(f"{API}/queue/{queue_id}", headers=auth_headers, json={"status": "completed"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_workflow_endpoints(client, auth_headers, patient):
    triage = client.post(f"{API}/queue", headers=auth_headers,
                         json={"patient_id": patient.id, "service_point": "triage"})
    triage_id = triage.json()["data"]["id"]

    r = client.post(f"{API}/workflow/triage-to-cashier", headers=auth_headers,
                    json={"patient_id": patient.id, "queue_id": triage_id})
    assert r.status_code == 201
    cashier = r.json()["data"]
    assert cashier["service_point"] == "cashier"
    assert cashier["ticket_number"] == "C-001"

    r = client.get(f"{API}/workflow/queue/{cashier['id']}/time-summary", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "waiting"
    assert r.json()["data"]["service_time_minutes"] is None

    r = client.get(f"{API}/workflow/patients/{patient.id}/queue-history", headers=auth_headers)
    rows = r.json()["data"]
    assert {row["service_point"] for row in rows} == {"triage", "cashier"}
    assert all("time_summary" in row for row in rows)


def test_cleanup_and_check_and_complete(client, auth_headers, db, patient, make_invoice):
    inv = make_invoice(patient.id)
    client.post(f"{API}/queue", headers=auth_headers,
                json={"patient_id": patient.id, "service_point": "cashier"})

    r = client.post(f"{API}/queue/cashier/{patient.id}/check-and-complete", headers=auth_headers)
    assert r.json()["data"] == {"has_pending_bills": True, "completed": 0}

    inv.status = "paid"
    inv.balance = 0
    db.commit()

    r = client.post(f"{API}/queue/cashier/{patient.id}/check-and-complete", headers=auth_headers)
    assert r.json()["data"] == {"has_pending_bills": False, "completed": 1}

    r = client.post(f"{API}/queue/cleanup/cashier", headers=auth_headers)
    assert r.json()["data"] == {"removed": 0, "kept": 0}

    r = client.post(f"{API}/queue/archive-completed", headers=auth_headers)
    assert r.json()["data"] == {"archived": 1}


def test_inpatient_admission_endpoints(client, auth_headers, make_patient, make_bed):
    a = make_patient("Fasil", "Demissie")
    b = make_patient("Rahel", "Mekonnen")
    bed = make_bed("B-07")

    r = client.post(f"{API}/inpatient/admissions", headers=auth_headers,
                    json={"patient_id": a.id, "bed_id": bed.id, "admission_diagnosis": "Typhoid"})
    assert r.status_code == 201
    adm = r.json()["data"]
    assert adm["admission_number"] == "IP-000001"
    assert adm["bed_number"] == "B-07"
    assert adm["ward_name"] == "Medical Ward"

    r = client.post(f"{API}/inpatient/admissions", headers=auth_headers,
                    json={"patient_id": b.id, "bed_id": bed.id})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "BED_UNAVAILABLE"

    r = client.post(f"{API}/inpatient/admissions", headers=auth_headers,
                    json={"patient_id": b.id, "bed_id": 999})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "BED_NOT_FOUND"

    r = client.post(f"{API}/inpatient/admissions/{adm['id']}/discharge", headers=auth_headers, json={})
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "discharged"

    r = client.get(f"{API}/inpatient/beds/{bed.id}", headers=auth_headers)
    assert r.json()["data"]["status"] == "available"


def test_icu_endpoints(client, auth_headers, patient):
    r = client.post(f"{API}/icu/beds", headers=auth_headers,
                    json={"bed_number": "ICU-01", "equipment_list": "ventilator"})
    assert r.status_code == 201
    bed_id = r.json()["data"]["id"]

    r = client.post(f"{API}/icu/admissions", headers=auth_headers,
                    json={"patient_id": patient.id, "icu_bed_id": bed_id,
                          "admission_reason": "Post-op monitoring", "status": "serious"})
    assert r.status_code == 201
    icu = r.json()["data"]
    assert icu["status"] == "serious"
    assert icu["bed_number"] == "ICU-01"

    r = client.delete(f"{API}/icu/beds/{bed_id}", headers=auth_headers)
    assert r.status_code == 409

    r = client.delete(f"{API}/icu/admissions/{icu['id']}", headers=auth_headers)
    assert r.json()["data"]["status"] == "discharged"
    r = client.get(f"{API}/icu/beds?status=available", headers=auth_headers)
    assert [b["id"] for b in r.json()["data"]] == [bed_id]


def test_inventory_transaction_endpoints(client, auth_headers, make_item):
    item = make_item(quantity=100)

    r = client.post(f"{API}/inventory/transactions", headers=auth_headers,
                    json={"item_id": item.id, "transaction_type": "issue", "quantity": 30})
    assert r.status_code == 201
    txn = r.json()["data"]
    assert txn["quantity"] == -30
    assert txn["item_quantity"] == 70

    r = client.post(f"{API}/inventory/transactions", headers=auth_headers,
                    json={"item_id": 4242, "transaction_type": "receipt", "quantity": 1})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "ITEM_NOT_FOUND"

    r = client.put(f"{API}/inventory/transactions/{txn['id']}", headers=auth_headers,
                   json={"reference_number": "WARD-REQ-9"})
    assert r.json()["data"]["reference_number"] == "WARD-REQ-9"

    r = client.delete(f"{API}/inventory/transactions/{txn['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["item_quantity"] == 100

    r = client.delete(f"{API}/inventory/transactions/{txn['id']}", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "TRANSACTION_NOT_FOUND"


def test_patient_registration_and_dispatch(client, auth_headers):
    r = client.post(f"{API}/patients", headers=auth_headers,
                    json={"first_name": "Bethlehem", "last_name": "Kassa",
                          "initial_service_point": "triage"})
    assert r.status_code == 201
    patient_id = r.json()["data"]["id"]

    r = client.post(f"{API}/events/dispatch", headers=auth_headers)
    assert r.json()["data"] == {"processed": 1, "failed": 0}

    r = client.get(f"{API}/queue?service_point=triage", headers=auth_headers)
    assert [row["patient_id"] for row in r.json()["data"]] == [patient_id]


def test_item_create_books_opening_stock(client, auth_headers):
    r = client.post(f"{API}/inventory/items", headers=auth_headers,
                    json={"item_code": "NS-500", "name": "Normal saline 500ml", "quantity": 50})
    assert r.status_code == 201
    item = r.json()["data"]
    assert item["quantity"] == 50

    r = client.get(f"{API}/inventory/transactions?item_id={item['id']}", headers=auth_headers)
    rows = r.json()["data"]
    assert [(t["transaction_type"], t["quantity"]) for t in rows] == [("receipt", 50)]
    assert sum(t["quantity"] for t in rows) == item["quantity"]


def test_item_below_zero_still_readable(client, auth_headers, make_item, monkeypatch):
    monkeypatch.setattr(settings, "INVENTORY_ALLOW_NEGATIVE_STOCK", True)
    item = make_item(quantity=5)

    r = client.post(f"{API}/inventory/transactions", headers=auth_headers,
                    json={"item_id": item.id, "transaction_type": "issue", "quantity": 10})
    assert r.status_code == 201

    r = client.get(f"{API}/inventory/items/{item.id}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["quantity"] == -5
    r = client.get(f"{API}/inventory/items", headers=auth_headers)
    assert r.status_code == 200
    assert [i["quantity"] for i in r.json()["data"]] == [-5]


def test_ward_update_and_deactivate_endpoints(client, auth_headers, ward, make_bed):
    r = client.put(f"{API}/inpatient/wards/{ward.id}", headers=auth_headers,
                   json={"location": "Block A"})
    assert r.status_code == 200
    assert r.json()["data"]["location"] == "Block A"

    bed = make_bed("B-70")
    r = client.delete(f"{API}/inpatient/wards/{ward.id}", headers=auth_headers)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "WARD_HAS_ACTIVE_BEDS"

    client.delete(f"{API}/inpatient/beds/{bed.id}", headers=auth_headers)
    r = client.delete(f"{API}/inpatient/wards/{ward.id}", headers=auth_headers)
    assert r.status_code == 200
    assert client.get(f"{API}/inpatient/wards", headers=auth_headers).json()["data"] == []


def test_icu_monitoring_and_overview_endpoints(client, auth_headers, patient, make_icu_bed):
    bed = make_icu_bed("ICU-20")
    r = client.post(f"{API}/icu/admissions", headers=auth_headers,
                    json={"patient_id": patient.id, "icu_bed_id": bed.id})
    icu_id = r.json()["data"]["id"]

    r = client.post(f"{API}/icu/admissions/{icu_id}/monitoring", headers=auth_headers,
                    json={"heart_rate": 124, "oxygen_saturation": 89})
    assert r.status_code == 201
    obs = r.json()["data"]
    assert obs["recorded_by_name"] == "Dr. Selam Bekele"

    r = client.put(f"{API}/icu/admissions/{icu_id}/monitoring/{obs['id']}", headers=auth_headers,
                   json={"bogus": 1})
    assert r.status_code == 422

    r = client.get(f"{API}/icu/admissions/{icu_id}/overview", headers=auth_headers)
    assert r.status_code == 200
    view = r.json()["data"]
    assert view["admission"]["admission_type"] == "icu"
    assert [m["heart_rate"] for m in view["monitoring"]] == [124]

    r = client.delete(f"{API}/icu/admissions/{icu_id}/monitoring/{obs['id']}", headers=auth_headers)
    assert r.status_code == 200
    r = client.delete(f"{API}/icu/admissions/{icu_id}/monitoring/{obs['id']}", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "MONITORING_RECORD_NOT_FOUND"
