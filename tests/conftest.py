"""Shared fixtures: in-memory databases and a seeded tenant."""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from database import Base, get_db
from main import app
from models.models import Business, Customer, Job, User
from services.auth import create_access_token


@pytest.fixture
def engine():
    """Fresh in-memory database shared by every connection of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def tenant(db_session):
    """A business with an owner, an employee and a customer."""
    business = Business(id="biz-1", name="Demo Blinds Co")
    owner = User(id="owner-1", email="owner@example.com", name="Dana Owner", role="business", business_id="biz-1")
    employee = User(id="emp-1", email="fitter@example.com", name="Sam Fitter", role="employee", business_id="biz-1")
    customer = Customer(id="cust-1", business_id="biz-1", name="Priya Sharma")
    db_session.add_all([business, owner, employee, customer])
    db_session.commit()
    return {"business": business, "owner": owner, "employee": employee, "customer": customer}


@pytest.fixture
def measurement_job(db_session, tenant):
    """A measurement job scheduled for today with two measured windows."""
    job = Job(
        id="JOB-M1",
        title="Front room blinds",
        job_type="measurement",
        status="in-progress",
        customer_id="cust-1",
        business_id="biz-1",
        scheduled_date=date.today(),
        quotation=1000.0,
        deposit=0.0,
        deposit_paid=False,
        measurements=[
            {"window_id": "W1", "width": 120.0, "height": 150.0, "location": "Lounge",
             "control_type": "chain-cord", "bracket_type": "top-fix", "photos": []},
            {"window_id": "W2", "width": 90.0, "height": 120.0, "location": "Kitchen",
             "control_type": "none", "bracket_type": "face-fix", "photos": []},
        ],
        selected_products=[],
        images=["https://img.example/front.jpg"],
        documents=[],
        checklist=[],
    )
    db_session.add(job)
    db_session.commit()
    return job


@pytest.fixture
def client(session_factory):
    """API client whose requests use the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build a bearer header for a user id."""

    def build(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return build
