# routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from kspice import mailer, otp
from kspice.auth import create_access_token, get_current_user, hash_password, verify_password
from kspice.database import get_session
from kspice.logger import logger
from kspice.models import Address, Profile, User
from kspice.schemas import (
    LoginRequest,
    ResetPasswordRequest,
    SendOtpRequest,
    SignupRequest,
    VerifyOtpRequest,
    check_password_strength,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def find_user_by_email(session: Session, email: str):
    return session.exec(select(User).where(User.email == email)).first()


def token_response(user: User, profile: Profile = None) -> dict:
    token = create_access_token(subject=str(user.id), additional={"role": user.role})
    return {
        "access_token": token["access_token"],
        "token_type": "bearer",
        "user_id": user.id,
        "role": user.role,
        "full_name": profile.full_name if profile else None,
    }


# --- OTP ---
@router.post("/send-otp")
def send_otp(data: SendOtpRequest, session: Session = Depends(get_session)):
    user = find_user_by_email(session, data.email)
    if data.purpose == "signup" and user:
        raise HTTPException(status_code=400, detail="Email này đã được đăng ký")
    if data.purpose == "reset_password" and not user:
        raise HTTPException(status_code=404, detail="Không tìm thấy tài khoản với email này")

    try:
        otp.issue_otp(session, data.email, data.purpose)
    except mailer.EmailDeliveryError:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Không thể gửi mã xác thực. Vui lòng thử lại.",
        )
    return {"success": True, "message": "Mã OTP đã được gửi, vui lòng kiểm tra email của bạn"}


@router.post("/verify-otp")
def verify_otp(data: VerifyOtpRequest, session: Session = Depends(get_session)):
    if not otp.verify_otp(session, data.email, data.otp_code, data.purpose):
        raise HTTPException(status_code=400, detail="Mã OTP không hợp lệ hoặc đã hết hạn")
    return {"success": True}


# --- SIGNUP / LOGIN ---
@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, session: Session = Depends(get_session)):
    if find_user_by_email(session, data.email):
        raise HTTPException(status_code=400, detail="Email này đã được đăng ký")

    verified = otp.find_verified_otp(session, data.email, "signup")
    if not verified:
        raise HTTPException(status_code=400, detail="Vui lòng xác thực email bằng mã OTP trước")

    user = User(email=data.email, hashed_password=hash_password(data.password), role="customer")
    session.add(user)
    session.flush()

    profile = Profile(id=user.id, full_name=data.full_name, phone=data.phone, email=data.email)
    address = Address(
        user_id=user.id,
        full_name=data.full_name,
        phone=data.phone,
        address_line=data.address_line,
        district=data.district,
        city=data.city,
        is_default=True,
    )
    session.add(profile)
    session.add(address)
    otp.consume_otp(session, verified)
    session.commit()
    session.refresh(user)
    session.refresh(profile)

    logger.info(f"New customer registered: {user.email} (id {user.id})")
    return token_response(user, profile)


@router.post("/login")
def login(data: LoginRequest, session: Session = Depends(get_session)):
    user = find_user_by_email(session, data.email)
    if not user or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Email hoặc mật khẩu không đúng")
    return token_response(user, session.get(Profile, user.id))


# --- PASSWORD RESET ---
@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest, session: Session = Depends(get_session)):
    if not data.email or not data.new_password or not data.otp_verified:
        raise HTTPException(status_code=400, detail="Missing required fields or OTP not verified")
    try:
        check_password_strength(data.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    email = data.email.strip().lower()
    verified = otp.find_verified_otp(session, email, "reset_password")
    if not verified:
        raise HTTPException(status_code=400, detail="OTP not verified or expired")

    user = find_user_by_email(session, email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.hashed_password = hash_password(data.new_password)
    session.add(user)
    otp.consume_otp(session, verified)
    session.commit()

    logger.info(f"Password reset successfully for: {email}")
    return {"success": True, "message": "Password reset successfully"}


@router.get("/me")
def me(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    profile = session.get(Profile, user.id)
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "full_name": profile.full_name if profile else None,
        "phone": profile.phone if profile else None,
    }
