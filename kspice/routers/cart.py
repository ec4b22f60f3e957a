# routers/cart.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select

from kspice.auth import get_current_user
from kspice.database import get_session
from kspice.models import CartItem, Product, User
from kspice.orders import cart_total, load_cart
from kspice.schemas import CartItemAdd, CartItemUpdate

router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_own_item(session: Session, user: User, item_id: int) -> CartItem:
    item = session.get(CartItem, item_id)
    if not item or item.user_id != user.id:
        raise HTTPException(status_code=404, detail="Không tìm thấy sản phẩm trong giỏ hàng")
    return item


@router.get("")
def get_cart(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    lines = load_cart(session, user.id)
    items = [
        {
            "id": item.id,
            "quantity": item.quantity,
            "notes": item.notes,
            "product": {
                "id": product.id,
                "name": product.name,
                "price": product.price,
                "image_url": product.image_url,
            },
            "line_total": product.price * item.quantity,
        }
        for item, product in lines
    ]
    return {"items": items, "total": cart_total(lines)}


@router.post("", status_code=status.HTTP_201_CREATED)
def add_to_cart(
    data: CartItemAdd,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    product = session.get(Product, data.product_id)
    if not product or product.is_deleted:
        raise HTTPException(status_code=404, detail="Không tìm thấy sản phẩm")
    if not product.is_available:
        raise HTTPException(status_code=400, detail="Sản phẩm hiện không còn phục vụ")

    existing = session.exec(
        select(CartItem).where(CartItem.user_id == user.id).where(CartItem.product_id == product.id)
    ).first()
    if existing:
        existing.quantity += data.quantity
        existing.notes = data.notes or existing.notes
        item = existing
    else:
        item = CartItem(user_id=user.id, product_id=product.id, quantity=data.quantity, notes=data.notes)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


@router.put("/{item_id}")
def update_quantity(
    item_id: int,
    data: CartItemUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    item = get_own_item(session, user, item_id)
    item.quantity = data.quantity
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


@router.delete("/{item_id}")
def remove_item(
    item_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    item = get_own_item(session, user, item_id)
    session.delete(item)
    session.commit()
    return {"deleted": True, "message": "Sản phẩm đã được xóa khỏi giỏ hàng"}
