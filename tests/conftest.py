import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUTO_CREATE_TABLES"] = "false"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hmis.api.deps import get_db  # noqa: E402
from hmis.core.config import settings  # noqa: E402
from hmis.db.base import Base  # noqa: E402
from hmis.main import app  # noqa: E402
from hmis.models import (  # noqa: E402
    Bed,
    IcuBed,
    InventoryItem,
    Invoice,
    Patient,
    Prescription,
    User,
    Ward,
)


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------
# seed data (committed so request sessions see it)
# ---------------------------------------------------------------------
@pytest.fixture()
def doctor(db):
    user = User(name="Dr. Selam Bekele", email="selam@example.org", is_doctor=True, is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def auth_headers(doctor):
    token = jwt.encode({"sub": str(doctor.id)}, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_patient(db):
    counter = {"n": 0}

    def _make(first_name="Abebe", last_name="Kebede"):
        counter["n"] += 1
        p = Patient(
            patient_number=f"SEED-{counter['n']:04d}",
            first_name=first_name,
            last_name=last_name,
            phone=f"09110000{counter['n']:02d}",
        )
        db.add(p)
        db.commit()
        return p

    return _make


@pytest.fixture()
def patient(make_patient):
    return make_patient()


@pytest.fixture()
def make_invoice(db):
    def _make(patient_id, balance="250.00", status="pending"):
        inv = Invoice(
            patient_id=patient_id,
            total_amount=Decimal(balance),
            paid_amount=Decimal("0"),
            balance=Decimal(balance),
            status=status,
        )
        db.add(inv)
        db.commit()
        return inv

    return _make


@pytest.fixture()
def make_prescription(db):
    def _make(patient_id, status="pending"):
        rx = Prescription(patient_id=patient_id, status=status)
        db.add(rx)
        db.commit()
        return rx

    return _make


@pytest.fixture()
def ward(db):
    w = Ward(ward_name="Medical Ward", ward_type="general", capacity=10, is_active=True)
    db.add(w)
    db.commit()
    return w


@pytest.fixture()
def make_bed(db, ward):
    def _make(bed_number, status="available"):
        bed = Bed(ward_id=ward.id, bed_number=bed_number, status=status, is_active=True)
        db.add(bed)
        db.commit()
        return bed

    return _make


@pytest.fixture()
def make_icu_bed(db):
    def _make(bed_number, status="available"):
        bed = IcuBed(bed_number=bed_number, status=status, is_active=True)
        db.add(bed)
        db.commit()
        return bed

    return _make


@pytest.fixture()
def make_item(db):
    def _make(item_code="PCM500", name="Paracetamol 500mg", quantity=100, reorder_level=10):
        item = InventoryItem(item_code=item_code, name=name, quantity=quantity,
                             reorder_level=reorder_level, is_active=True)
        db.add(item)
        db.commit()
        return item

    return _make
