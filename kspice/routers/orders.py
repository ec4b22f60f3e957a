# routers/orders.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlmodel import Session, select

from kspice import mailer
from kspice.auth import get_current_user
from kspice.database import get_session
from kspice.models import Order, User
from kspice.orders import change_status, get_order_items, order_out, place_order
from kspice.schemas import CheckoutRequest, InvoiceRequest

router = APIRouter(prefix="/api", tags=["orders"])


def get_own_order(session: Session, user: User, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if not order or order.user_id != user.id:
        raise HTTPException(status_code=404, detail="Không tìm thấy đơn hàng")
    return order


@router.post("/orders", status_code=status.HTTP_201_CREATED)
def checkout(
    data: CheckoutRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    order = place_order(session, user.id, data)
    items = get_order_items(session, order.id)

    background_tasks.add_task(
        mailer.send_invoice_in_background,
        user.email,
        order.order_number,
        full_name=order.full_name,
        phone=order.phone,
        address=", ".join(p for p in (order.address_line, order.district, order.city) if p),
        items=[
            {"name": i.product_name, "quantity": i.quantity, "price": i.product_price, "subtotal": i.subtotal}
            for i in items
        ],
        total_amount=order.total_amount,
        payment_method=order.payment_method,
    )
    return order_out(session, order)


@router.get("/orders")
def my_orders(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    orders = session.exec(
        select(Order).where(Order.user_id == user.id).order_by(Order.created_at.desc(), Order.id.desc())
    ).all()
    return [order_out(session, o) for o in orders]


@router.get("/orders/{order_id}")
def get_order(order_id: int, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return order_out(session, get_own_order(session, user, order_id))


@router.post("/orders/{order_id}/cancel")
def cancel_order(order_id: int, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    order = change_status(session, get_own_order(session, user, order_id), "cancelled")
    return order_out(session, order)


@router.post("/send-invoice")
def send_invoice(data: InvoiceRequest, user: User = Depends(get_current_user)):
    try:
        mailer.send_invoice_email(
            data.email,
            data.order_number,
            full_name=data.full_name,
            phone=data.phone,
            address=data.address,
            items=[i.model_dump() for i in data.items],
            total_amount=data.total_amount,
            payment_method=data.payment_method,
        )
    except mailer.EmailDeliveryError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send invoice email")
    return {"success": True}
