# otp.py
"""
Email OTP lifecycle for one (email, purpose) pair:

    none -> issued -> verified -> consumed (row deleted)
            issued -> expired (expires_at in the past, never matched again)

Only one unverified row is kept per (email, purpose); issuing a new code
deletes the previous one.
"""
import secrets
import string
from datetime import timedelta
from typing import Optional

from sqlmodel import Session, select

from kspice import mailer
from kspice.config import OTP_EXPIRE_MINUTES
from kspice.logger import logger
from kspice.models import OtpVerification, utcnow

OTP_LENGTH = 6


def generate_otp() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(OTP_LENGTH))


def issue_otp(session: Session, email: str, purpose: str) -> OtpVerification:
    """Replace any pending code for (email, purpose) with a fresh one and email it.

    Raises mailer.EmailDeliveryError when the email cannot be sent; nothing is
    committed in that case.
    """
    stale = session.exec(
        select(OtpVerification)
        .where(OtpVerification.email == email)
        .where(OtpVerification.purpose == purpose)
        .where(OtpVerification.verified == False)  # noqa: E712
    ).all()
    for old in stale:
        session.delete(old)

    otp = OtpVerification(
        email=email,
        otp_code=generate_otp(),
        purpose=purpose,
        expires_at=utcnow() + timedelta(minutes=OTP_EXPIRE_MINUTES),
    )
    session.add(otp)
    session.flush()

    try:
        mailer.send_otp_email(email, otp.otp_code, purpose)
    except mailer.EmailDeliveryError:
        session.rollback()
        raise

    session.commit()
    session.refresh(otp)
    logger.info(f"OTP issued for {email} ({purpose})")
    return otp


def verify_otp(session: Session, email: str, otp_code: str, purpose: str) -> bool:
    otp = session.exec(
        select(OtpVerification)
        .where(OtpVerification.email == email)
        .where(OtpVerification.otp_code == otp_code)
        .where(OtpVerification.purpose == purpose)
        .where(OtpVerification.verified == False)  # noqa: E712
        .where(OtpVerification.expires_at > utcnow())
    ).first()
    if not otp:
        logger.info(f"OTP rejected for {email} ({purpose})")
        return False

    otp.verified = True
    session.add(otp)
    session.commit()
    logger.info(f"OTP verified for {email} ({purpose})")
    return True


def find_verified_otp(session: Session, email: str, purpose: str) -> Optional[OtpVerification]:
    return session.exec(
        select(OtpVerification)
        .where(OtpVerification.email == email)
        .where(OtpVerification.purpose == purpose)
        .where(OtpVerification.verified == True)  # noqa: E712
        .where(OtpVerification.expires_at > utcnow())
        .order_by(OtpVerification.created_at.desc(), OtpVerification.id.desc())
    ).first()


def consume_otp(session: Session, otp: OtpVerification):
    # caller commits together with the gated action
    session.delete(otp)
