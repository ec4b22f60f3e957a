from datetime import timedelta

from sqlmodel import Session

from kspice.database import engine
from kspice.models import OtpVerification, utcnow

from conftest import PASSWORD, auth_header, latest_otp

EMAIL = "khach@kspice.vn"
NEW_PASSWORD = "Moi#Pass456"


def signup_body(**overrides):
    body = {
        "email": "moi@kspice.vn",
        "full_name": "Lê Văn C",
        "phone": "0987654321",
        "address_line": "1 Nguyễn Huệ",
        "city": "Đà Nẵng",
        "password": PASSWORD,
        "confirm_password": PASSWORD,
    }
    body.update(overrides)
    return body


def verified_reset_code(client, email=EMAIL):
    client.post("/api/auth/send-otp", json={"email": email, "purpose": "reset_password"})
    code = latest_otp(email, "reset_password").otp_code
    response = client.post("/api/auth/verify-otp", json={"email": email, "otp_code": code, "purpose": "reset_password"})
    assert response.status_code == 200


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "live"


def test_signup_creates_profile_and_default_address(client, customer):
    me = client.get("/api/auth/me", headers=customer)
    assert me.status_code == 200
    assert me.json()["email"] == EMAIL
    assert me.json()["role"] == "customer"
    assert me.json()["full_name"] == "Nguyễn Văn A"

    addresses = client.get("/api/account/addresses", headers=customer).json()
    assert len(addresses) == 1
    assert addresses[0]["is_default"] is True
    assert addresses[0]["city"] == "Hồ Chí Minh"


def test_signup_password_policy(client):
    response = client.post("/api/auth/signup", json=signup_body(password="secret@123", confirm_password="secret@123"))
    assert response.status_code == 422
    assert response.json() == {"error": "Mật khẩu phải chứa ít nhất 1 chữ hoa"}

    response = client.post("/api/auth/signup", json=signup_body(password="Secret1234", confirm_password="Secret1234"))
    assert response.json() == {"error": "Mật khẩu phải chứa ít nhất 1 ký tự đặc biệt"}


def test_signup_password_confirmation(client):
    response = client.post("/api/auth/signup", json=signup_body(confirm_password="Other@123"))
    assert response.status_code == 422
    assert response.json() == {"error": "Mật khẩu không khớp"}


def test_signup_short_phone(client):
    response = client.post("/api/auth/signup", json=signup_body(phone="09012"))
    assert response.status_code == 422
    assert response.json()["error"].startswith("phone")


def test_login(client, customer):
    response = client.post("/api/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["role"] == "customer"
    assert client.get("/api/auth/me", headers=auth_header(data["access_token"])).status_code == 200


def test_login_wrong_password(client, customer):
    response = client.post("/api/auth/login", json={"email": EMAIL, "password": "Wrong@123"})
    assert response.status_code == 401
    assert response.json() == {"error": "Email hoặc mật khẩu không đúng"}


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers=auth_header("garbage")).status_code == 401


def test_reset_password_flow(client, customer):
    verified_reset_code(client)

    response = client.post("/api/auth/reset-password", json={
        "email": EMAIL, "newPassword": NEW_PASSWORD, "otpVerified": True,
    })
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert latest_otp(EMAIL, "reset_password") is None

    assert client.post("/api/auth/login", json={"email": EMAIL, "password": PASSWORD}).status_code == 401
    assert client.post("/api/auth/login", json={"email": EMAIL, "password": NEW_PASSWORD}).status_code == 200


def test_reset_password_replay_fails(client, customer):
    verified_reset_code(client)
    body = {"email": EMAIL, "newPassword": NEW_PASSWORD, "otpVerified": True}
    assert client.post("/api/auth/reset-password", json=body).status_code == 200

    replay = client.post("/api/auth/reset-password", json={**body, "newPassword": "Third#Pass789"})
    assert replay.status_code == 400
    assert replay.json() == {"error": "OTP not verified or expired"}
    assert client.post("/api/auth/login", json={"email": EMAIL, "password": NEW_PASSWORD}).status_code == 200


def test_reset_password_without_verification(client, customer):
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "reset_password"})
    response = client.post("/api/auth/reset-password", json={
        "email": EMAIL, "newPassword": NEW_PASSWORD, "otpVerified": True,
    })
    assert response.status_code == 400


def test_reset_password_missing_fields(client, customer):
    verified_reset_code(client)
    response = client.post("/api/auth/reset-password", json={"email": EMAIL, "newPassword": NEW_PASSWORD})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields or OTP not verified"}


def test_reset_password_after_expiry(client, customer):
    verified_reset_code(client)
    with Session(engine) as s:
        row = s.get(OtpVerification, latest_otp(EMAIL, "reset_password").id)
        row.expires_at = utcnow() - timedelta(minutes=1)
        s.add(row)
        s.commit()

    response = client.post("/api/auth/reset-password", json={
        "email": EMAIL, "newPassword": NEW_PASSWORD, "otpVerified": True,
    })
    assert response.status_code == 400


def test_reset_password_enforces_policy(client, customer):
    verified_reset_code(client)
    response = client.post("/api/auth/reset-password", json={
        "email": EMAIL, "newPassword": "short", "otpVerified": True,
    })
    assert response.status_code == 400
    # the verified code is still usable
    assert latest_otp(EMAIL, "reset_password").verified is True
