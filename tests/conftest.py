import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ADMIN_EMAIL"] = "admin@kspice.vn"
os.environ["ADMIN_PASSWORD"] = "Admin@1234"
os.environ["BREVO_API_KEY"] = "test-key"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, select

from kspice import mailer
from kspice.database import engine
from kspice.main import app
from kspice.models import Category, OtpVerification, Product

PASSWORD = "Secret@123"


class FakeResponse:
    def __init__(self, status_code=201, text="{}"):
        self.status_code = status_code
        self.text = text


class Outbox:
    """Stands in for the Brevo endpoint; records every email payload."""

    def __init__(self):
        self.sent = []
        self.status_code = 201

    def post(self, url, json=None, headers=None, timeout=None):
        if self.status_code == 201:
            self.sent.append(json)
        return FakeResponse(self.status_code)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = Outbox()
    monkeypatch.setattr(mailer.requests, "post", box.post)
    return box


@pytest.fixture
def client():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(client):
    with Session(engine) as s:
        yield s


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


def latest_otp(email, purpose):
    with Session(engine) as s:
        return s.exec(
            select(OtpVerification)
            .where(OtpVerification.email == email)
            .where(OtpVerification.purpose == purpose)
            .order_by(OtpVerification.id.desc())
        ).first()


def register(client, email="khach@kspice.vn", full_name="Nguyễn Văn A", phone="0901234567"):
    assert client.post("/api/auth/send-otp", json={"email": email, "purpose": "signup"}).status_code == 200
    code = latest_otp(email, "signup").otp_code
    assert client.post("/api/auth/verify-otp", json={"email": email, "otp_code": code, "purpose": "signup"}).status_code == 200
    response = client.post("/api/auth/signup", json={
        "email": email,
        "full_name": full_name,
        "phone": phone,
        "address_line": "12 Lê Lợi",
        "district": "Quận 1",
        "city": "Hồ Chí Minh",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    })
    assert response.status_code == 201, response.json()
    return auth_header(response.json()["access_token"])


@pytest.fixture
def customer(client):
    return register(client)


@pytest.fixture
def admin(client):
    response = client.post("/api/auth/login", json={"email": "admin@kspice.vn", "password": "Admin@1234"})
    assert response.status_code == 200
    return auth_header(response.json()["access_token"])


@pytest.fixture
def menu(session):
    """Two categories and three dishes; returns the products by short name."""
    noodles = Category(name="Mì cay", display_order=1)
    rice = Category(name="Cơm trộn", display_order=2)
    session.add(noodles)
    session.add(rice)
    session.commit()

    products = {
        "mi": Product(name="Mì cay hải sản", description="Mì cay cấp độ 7", price=69000, spicy_level=5, category_id=noodles.id),
        "com": Product(name="Cơm trộn bò", description="Bibimbap bò", price=55000, category_id=rice.id),
        "tra": Product(name="Trà đào", price=25000),
    }
    for p in products.values():
        session.add(p)
    session.commit()
    for p in products.values():
        session.refresh(p)
    return products
