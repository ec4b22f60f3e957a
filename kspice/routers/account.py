# routers/account.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from kspice.auth import get_current_user, hash_password
from kspice.database import get_session
from kspice.models import Address, Profile, User
from kspice.schemas import AddressCreate, ChangePasswordRequest, ProfileUpdate

router = APIRouter(prefix="/api/account", tags=["account"])


def get_own_address(session: Session, user: User, address_id: int) -> Address:
    address = session.get(Address, address_id)
    if not address or address.user_id != user.id:
        raise HTTPException(status_code=404, detail="Không tìm thấy địa chỉ")
    return address


# --- PROFILE ---
@router.get("/profile")
def get_profile(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    profile = session.get(Profile, user.id)
    if not profile:
        raise HTTPException(status_code=404, detail="Không tìm thấy hồ sơ")
    return profile


@router.put("/profile")
def update_profile(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    profile = session.get(Profile, user.id) or Profile(id=user.id)
    profile.full_name = data.full_name
    profile.phone = data.phone
    profile.email = data.email
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


@router.put("/password")
def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    user.hashed_password = hash_password(data.new_password)
    session.add(user)
    session.commit()
    return {"success": True, "message": "Đổi mật khẩu thành công"}


# --- ADDRESSES ---
@router.get("/addresses")
def list_addresses(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return session.exec(
        select(Address)
        .where(Address.user_id == user.id)
        .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
    ).all()


@router.post("/addresses", status_code=status.HTTP_201_CREATED)
def add_address(
    data: AddressCreate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    # Địa chỉ đầu tiên tự động là mặc định
    is_first = session.exec(select(Address).where(Address.user_id == user.id)).first() is None
    address = Address(user_id=user.id, is_default=is_first, **data.model_dump())
    session.add(address)
    session.commit()
    session.refresh(address)
    return address


@router.put("/addresses/{address_id}/default")
def set_default_address(
    address_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    address = get_own_address(session, user, address_id)
    current = session.exec(
        select(Address).where(Address.user_id == user.id).where(Address.is_default == True)  # noqa: E712
    ).all()
    for other in current:
        other.is_default = False
        session.add(other)
    address.is_default = True
    session.add(address)
    session.commit()
    session.refresh(address)
    return address


@router.delete("/addresses/{address_id}")
def delete_address(
    address_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    address = get_own_address(session, user, address_id)
    was_default = address.is_default
    session.delete(address)
    session.flush()

    if was_default:
        newest = session.exec(
            select(Address)
            .where(Address.user_id == user.id)
            .order_by(Address.created_at.desc(), Address.id.desc())
        ).first()
        if newest:
            newest.is_default = True
            session.add(newest)
    session.commit()
    return {"deleted": True}
