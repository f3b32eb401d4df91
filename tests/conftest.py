# tests/conftest.py
from datetime import date
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from pypdf import PdfReader

from blob_storage import LocalDocumentStorage
from config import Settings
from database import Database
from main import create_app
from schemas.customer import CustomerCreate
from services.customer_service import CustomerService
from services.encryption import FieldCipher
from services.signatures import SignatureStore

JWT_SECRET = "test-jwt-secret"
FIELD_KEY = "test-field-encryption-key"

# 1x1 RGBA PNG
PNG_DATA_URI = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def extract_text(pdf_bytes):
    reader = PdfReader(BytesIO(pdf_bytes))
    return "\n".join(page.extract_text() for page in reader.pages)


def image_count(pdf_bytes):
    page = PdfReader(BytesIO(pdf_bytes)).pages[0]
    resources = page["/Resources"]
    if "/XObject" not in resources:
        return 0
    xobjects = resources["/XObject"]
    return sum(1 for name in xobjects if xobjects[name]["/Subtype"] == "/Image")


CUSTOMER_DEFAULTS = {
    "full_name": "Ama Mensah",
    "phone_number": "233241234567",
    "loan_balance": "5400.00",
    "monthly_repayment": "450.00",
    "start_date": date(2026, 11, 1),
    "no_of_months": 12,
}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'mandates.db'}",
        jwt_secret=JWT_SECRET,
        field_encryption_key=FIELD_KEY,
        document_storage_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def database(settings):
    db = Database(settings.database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.SessionLocal()
    yield session
    session.close()


@pytest.fixture
def cipher():
    return FieldCipher(FIELD_KEY)


@pytest.fixture
def storage(settings):
    return LocalDocumentStorage(settings.document_storage_dir)


@pytest.fixture
def signature_store(storage):
    return SignatureStore(storage)


@pytest.fixture
def app(settings, database):
    application = create_app(settings)
    yield application
    application.state.db.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin_headers():
    token = jwt.encode({"sub": "admin", "role": "admin"}, JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_customer(database):
    """Create a PENDING customer through the service; returns the detached row."""
    def _make(now=None, token_ttl_hours=48, **overrides):
        data = CustomerCreate(**{**CUSTOMER_DEFAULTS, **overrides})
        with database.session() as session:
            return CustomerService.create_customer(session, data, token_ttl_hours=token_ttl_hours, now=now)
    return _make


@pytest.fixture
def mandate_payload():
    """Build a valid POST /api/mandates body for a customer."""
    def _build(customer_id, accounts=2, **overrides):
        payload = {
            "customerId": customer_id,
            "fullName": "Ama Mensah",
            "ghanaCardNumber": "GHA-123456789-0",
            "accounts": [
                {
                    "accountOrder": order,
                    "bankName": bank,
                    "branch": branch,
                    "accountName": "Ama Mensah",
                    "accountNumber": number,
                }
                for order, bank, branch, number in [
                    ("1ST", "GCB Bank", "Accra Main", "1234567890123"),
                    ("2ND", "Ecobank Ghana", "Kumasi Adum", "9876543210"),
                    ("3RD", "Fidelity Bank", "Tema", "5555666677"),
                ][:accounts]
            ],
            "agreementAccepted": True,
            "signature": PNG_DATA_URI,
        }
        payload.update(overrides)
        return payload
    return _build
