"""
Request / response bodies.

Field limits and messages follow the storefront forms, so validation errors
can be shown to the customer as they are.
"""
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

OtpPurpose = Literal["signup", "reset_password"]
PaymentMethod = Literal["cod", "bank_transfer", "e_wallet"]
OrderStatus = Literal["pending", "processing", "shipping", "delivered", "cancelled"]

PASSWORD_RULES = [
    (re.compile(r"[A-Z]"), "Mật khẩu phải chứa ít nhất 1 chữ hoa"),
    (re.compile(r"[a-z]"), "Mật khẩu phải chứa ít nhất 1 chữ thường"),
    (re.compile(r"[0-9]"), "Mật khẩu phải chứa ít nhất 1 chữ số"),
    (re.compile(r"[^A-Za-z0-9]"), "Mật khẩu phải chứa ít nhất 1 ký tự đặc biệt"),
]


def check_password_strength(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Mật khẩu phải có ít nhất 8 ký tự")
    for pattern, message in PASSWORD_RULES:
        if not pattern.search(password):
            raise ValueError(message)
    return password


class EmailPayload(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if len(v) > 255:
            raise ValueError("Email quá dài")
        return v.strip().lower()


# --- AUTH ---
class SendOtpRequest(EmailPayload):
    purpose: OtpPurpose = "signup"


class VerifyOtpRequest(EmailPayload):
    otp_code: str = Field(..., min_length=6, max_length=6)
    purpose: OtpPurpose = "signup"


class SignupRequest(EmailPayload):
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=10, max_length=15)
    address_line: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    district: Optional[str] = Field(None, max_length=100)
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Mật khẩu không khớp")
        return self


class LoginRequest(EmailPayload):
    password: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    """Body of the reset-password call; camelCase keys are accepted as sent by the storefront."""
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    new_password: Optional[str] = Field(None, alias="newPassword")
    otp_verified: bool = Field(False, alias="otpVerified")


# --- ACCOUNT ---
class ProfileUpdate(EmailPayload):
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=10, max_length=15)


class ChangePasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=8)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Mật khẩu không khớp")
        return self


class AddressCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=10, max_length=15)
    address_line: str = Field(..., min_length=1, max_length=200)
    district: Optional[str] = Field(None, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)


# --- CATALOG (admin) ---
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    display_order: int = 0


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: int = Field(..., ge=0, description="Giá (VND)")
    image_url: Optional[str] = None
    spicy_level: int = Field(0, ge=0, le=5)
    category_id: Optional[int] = None
    is_available: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    spicy_level: Optional[int] = Field(None, ge=0, le=5)
    category_id: Optional[int] = None
    is_available: Optional[bool] = None

    # bỏ qua trường là được, nhưng không được gửi null cho cột bắt buộc
    @field_validator("name", "price", "spicy_level", "is_available")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("Trường này không được để trống")
        return v


# --- CART ---
class CartItemAdd(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = None


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


# --- ORDERS ---
class CheckoutRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=10)
    address_line: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    district: Optional[str] = None
    payment_method: PaymentMethod = "cod"
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class InvoiceItem(BaseModel):
    name: str
    quantity: int = Field(..., ge=1)
    price: int
    subtotal: int


class InvoiceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    order_number: str = Field(..., alias="orderNumber")
    full_name: str = Field(..., alias="fullName")
    phone: str
    address: str
    items: List[InvoiceItem]
    total_amount: int = Field(..., alias="totalAmount")
    payment_method: PaymentMethod = Field("cod", alias="paymentMethod")
