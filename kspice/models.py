# models.py
from typing import Optional
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

ORDER_STATUSES = ("pending", "processing", "shipping", "delivered", "cancelled")
PAYMENT_METHODS = ("cod", "bank_transfer", "e_wallet")
OTP_PURPOSES = ("signup", "reset_password")


def utcnow() -> datetime:
    # naive UTC, SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    hashed_password: str
    role: str = Field(default="customer")  # "admin" | "customer"
    created_at: datetime = Field(default_factory=utcnow)


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    id: int = Field(foreign_key="users.id", primary_key=True)
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Address(SQLModel, table=True):
    __tablename__ = "addresses"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    full_name: str
    phone: str
    address_line: str
    district: Optional[str] = None
    city: str
    is_default: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    display_order: int = Field(default=0)


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    price: int  # VND
    image_url: Optional[str] = None
    spicy_level: int = Field(default=0)
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")
    is_available: bool = Field(default=True)
    # Xóa mềm: sản phẩm cũ vẫn được order_items tham chiếu
    is_deleted: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    quantity: int = Field(default=1)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(index=True, unique=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    full_name: str
    phone: str
    address_line: str
    district: Optional[str] = None
    city: str
    total_amount: int
    payment_method: str = Field(default="cod")
    status: str = Field(default="pending", index=True)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    # snapshot tại thời điểm đặt hàng
    product_name: str
    product_price: int
    quantity: int
    subtotal: int
    notes: Optional[str] = None


class OtpVerification(SQLModel, table=True):
    __tablename__ = "otp_verifications"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    otp_code: str
    purpose: str  # "signup" | "reset_password"
    verified: bool = Field(default=False)
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
