# orders.py
import time
from typing import List, Tuple

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from kspice.logger import logger
from kspice.models import CartItem, Order, OrderItem, Product, utcnow
from kspice.schemas import CheckoutRequest

# Chỉ được hủy đơn khi đơn còn đang chờ xử lý
CANCELLABLE_FROM = ("pending",)


def next_order_number(session: Session) -> str:
    stamp = int(time.time() * 1000)
    while session.exec(select(Order.id).where(Order.order_number == f"ORD{stamp}")).first():
        stamp += 1
    return f"ORD{stamp}"


def load_cart(session: Session, user_id: int) -> List[Tuple[CartItem, Product]]:
    return session.exec(
        select(CartItem, Product)
        .join(Product, CartItem.product_id == Product.id)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.created_at, CartItem.id)
    ).all()


def cart_total(lines) -> int:
    return sum(product.price * item.quantity for item, product in lines)


def place_order(session: Session, user_id: int, data: CheckoutRequest) -> Order:
    """Turn the user's cart into an order.

    The order row, its item snapshots and the cart cleanup are committed
    together; nothing is written if any step fails.
    """
    lines = load_cart(session, user_id)
    if not lines:
        raise HTTPException(status_code=400, detail="Giỏ hàng của bạn đang trống")

    unavailable = [p.name for _, p in lines if p.is_deleted or not p.is_available]
    if unavailable:
        raise HTTPException(status_code=400, detail=f"Sản phẩm không còn phục vụ: {', '.join(unavailable)}")

    total_amount = cart_total(lines)

    try:
        order = Order(
            order_number=next_order_number(session),
            user_id=user_id,
            full_name=data.full_name,
            phone=data.phone,
            address_line=data.address_line,
            district=data.district,
            city=data.city,
            total_amount=total_amount,
            payment_method=data.payment_method,
            notes=data.notes,
            status="pending",
        )
        session.add(order)
        session.flush()

        for cart_item, product in lines:
            session.add(OrderItem(
                order_id=order.id,
                product_id=product.id,
                product_name=product.name,
                product_price=product.price,
                quantity=cart_item.quantity,
                subtotal=product.price * cart_item.quantity,
                notes=cart_item.notes,
            ))
            session.delete(cart_item)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.order_number} placed by user {user_id}: {order.total_amount} VND")
    return order


def get_order_items(session: Session, order_id: int) -> List[OrderItem]:
    return session.exec(select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)).all()


def order_out(session: Session, order: Order) -> dict:
    data = order.model_dump()
    data["items"] = [i.model_dump() for i in get_order_items(session, order.id)]
    return data


def change_status(session: Session, order: Order, new_status: str) -> Order:
    if new_status == "cancelled" and order.status not in CANCELLABLE_FROM:
        raise HTTPException(status_code=409, detail="Chỉ có thể hủy đơn hàng đang chờ xử lý")
    if order.status == "cancelled":
        raise HTTPException(status_code=409, detail="Đơn hàng đã hủy, không thể cập nhật trạng thái")
    if new_status == order.status:
        return order

    old_status = order.status
    order.status = new_status
    order.updated_at = utcnow()
    session.add(order)
    session.commit()
    session.refresh(order)
    logger.info(f"Order {order.order_number}: {old_status} -> {new_status}")
    return order
