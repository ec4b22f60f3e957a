from datetime import timedelta

from sqlmodel import Session, select

from kspice.database import engine
from kspice.models import OtpVerification, utcnow

from conftest import latest_otp, register

EMAIL = "moi@kspice.vn"


def unverified_rows(email, purpose):
    with Session(engine) as s:
        return s.exec(
            select(OtpVerification)
            .where(OtpVerification.email == email)
            .where(OtpVerification.purpose == purpose)
            .where(OtpVerification.verified == False)  # noqa: E712
        ).all()


def expire(otp_id):
    with Session(engine) as s:
        row = s.get(OtpVerification, otp_id)
        row.expires_at = utcnow() - timedelta(seconds=1)
        s.add(row)
        s.commit()


def test_send_otp_stores_one_code_and_emails_it(client, outbox):
    response = client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})
    assert response.status_code == 200
    assert response.json()["success"] is True

    rows = unverified_rows(EMAIL, "signup")
    assert len(rows) == 1
    code = rows[0].otp_code
    assert len(code) == 6 and code.isdigit()
    assert rows[0].expires_at > utcnow() + timedelta(minutes=9)

    assert len(outbox.sent) == 1
    assert outbox.sent[0]["to"] == [{"email": EMAIL}]
    assert code in outbox.sent[0]["htmlContent"]


def test_resend_replaces_previous_code(client, outbox):
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})
    first = latest_otp(EMAIL, "signup")
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})

    rows = unverified_rows(EMAIL, "signup")
    assert len(rows) == 1
    assert rows[0].id != first.id
    assert len(outbox.sent) == 2


def test_email_is_normalized(client):
    client.post("/api/auth/send-otp", json={"email": "Moi@KSpice.vn", "purpose": "signup"})
    assert len(unverified_rows(EMAIL, "signup")) == 1


def test_verify_marks_code_verified_once(client):
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})
    code = latest_otp(EMAIL, "signup").otp_code
    body = {"email": EMAIL, "otp_code": code, "purpose": "signup"}

    response = client.post("/api/auth/verify-otp", json=body)
    assert response.status_code == 200
    assert latest_otp(EMAIL, "signup").verified is True

    again = client.post("/api/auth/verify-otp", json=body)
    assert again.status_code == 400


def test_wrong_and_expired_codes_fail_the_same_way(client):
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})
    otp = latest_otp(EMAIL, "signup")
    wrong = "000000" if otp.otp_code != "000000" else "111111"

    wrong_response = client.post("/api/auth/verify-otp", json={"email": EMAIL, "otp_code": wrong, "purpose": "signup"})

    expire(otp.id)
    expired_response = client.post(
        "/api/auth/verify-otp", json={"email": EMAIL, "otp_code": otp.otp_code, "purpose": "signup"}
    )

    assert wrong_response.status_code == expired_response.status_code == 400
    assert wrong_response.json() == expired_response.json()
    assert latest_otp(EMAIL, "signup").verified is False


def test_code_is_bound_to_its_purpose(client):
    register(client, email=EMAIL)
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "reset_password"})
    code = latest_otp(EMAIL, "reset_password").otp_code

    response = client.post("/api/auth/verify-otp", json={"email": EMAIL, "otp_code": code, "purpose": "signup"})
    assert response.status_code == 400


def test_signup_otp_rejected_for_registered_email(client, customer):
    response = client.post("/api/auth/send-otp", json={"email": "khach@kspice.vn", "purpose": "signup"})
    assert response.status_code == 400
    assert response.json() == {"error": "Email này đã được đăng ký"}


def test_reset_otp_requires_existing_account(client):
    response = client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "reset_password"})
    assert response.status_code == 404
    assert unverified_rows(EMAIL, "reset_password") == []


def test_email_failure_aborts_issue(client, outbox):
    outbox.status_code = 400
    response = client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})
    assert response.status_code == 502
    assert "error" in response.json()
    assert unverified_rows(EMAIL, "signup") == []


def test_unknown_purpose_is_rejected(client):
    response = client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "login"})
    assert response.status_code == 422


def test_signup_requires_verified_otp(client):
    client.post("/api/auth/send-otp", json={"email": EMAIL, "purpose": "signup"})
    response = client.post("/api/auth/signup", json={
        "email": EMAIL,
        "full_name": "Trần Thị B",
        "phone": "0912345678",
        "address_line": "5 Hai Bà Trưng",
        "city": "Hà Nội",
        "password": "Secret@123",
        "confirm_password": "Secret@123",
    })
    assert response.status_code == 400


def test_signup_consumes_verified_otp(client):
    register(client, email=EMAIL)
    assert latest_otp(EMAIL, "signup") is None
