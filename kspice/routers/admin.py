# routers/admin.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session, select

from kspice import reports
from kspice.auth import require_admin
from kspice.database import get_session
from kspice.logger import logger
from kspice.models import Category, Order, Product, User
from kspice.orders import change_status, order_out
from kspice.routers.catalog import product_out
from kspice.schemas import CategoryCreate, OrderStatus, OrderStatusUpdate, ProductCreate, ProductUpdate

router = APIRouter(prefix="/api/admin", tags=["admin"])


def get_live_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if not product or product.is_deleted:
        raise HTTPException(status_code=404, detail="Không tìm thấy sản phẩm")
    return product


def check_category(session: Session, category_id: Optional[int]):
    if category_id is not None and not session.get(Category, category_id):
        raise HTTPException(status_code=400, detail="Danh mục không tồn tại")


# --- CATEGORIES ---
@router.post("/categories", status_code=201)
def create_category(data: CategoryCreate, admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    category = Category(**data.model_dump())
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


# --- PRODUCTS ---
@router.get("/products")
def list_products(admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    rows = session.exec(
        select(Product, Category)
        .join(Category, Product.category_id == Category.id, isouter=True)
        .where(Product.is_deleted == False)  # noqa: E712
        .order_by(Product.created_at.desc(), Product.id.desc())
    ).all()
    return [product_out(p, c) for p, c in rows]


@router.post("/products", status_code=201)
def create_product(data: ProductCreate, admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    check_category(session, data.category_id)
    product = Product(**data.model_dump())
    session.add(product)
    session.commit()
    session.refresh(product)
    logger.info(f"Admin {admin.email} created product {product.id} ({product.name})")
    return product


@router.put("/products/{product_id}")
def update_product(
    product_id: int,
    data: ProductUpdate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    product = get_live_product(session, product_id)
    changes = data.model_dump(exclude_unset=True)
    check_category(session, changes.get("category_id"))
    for key, value in changes.items():
        setattr(product, key, value)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@router.delete("/products/{product_id}")
def delete_product(product_id: int, admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    product = get_live_product(session, product_id)
    product.is_deleted = True
    product.is_available = False
    session.add(product)
    session.commit()
    logger.info(f"Admin {admin.email} deleted product {product_id}")
    return {"deleted": True}


# --- ORDERS ---
@router.get("/orders")
def list_orders(
    status: Optional[OrderStatus] = None,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    query = select(Order)
    if status:
        query = query.where(Order.status == status)
    orders = session.exec(query.order_by(Order.created_at.desc(), Order.id.desc())).all()
    return [order_out(session, o) for o in orders]


@router.put("/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    order = session.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Không tìm thấy đơn hàng")
    return order_out(session, change_status(session, order, data.status))


# --- REPORTS ---
@router.get("/analytics")
def analytics(admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    return reports.summary(session)


@router.get("/reports/revenue")
def revenue_report(
    period: str = "day",
    start: Optional[date] = None,
    end: Optional[date] = None,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    return reports.revenue_report(session, period, start, end)


@router.get("/reports/revenue/export")
def export_revenue(
    period: str = "day",
    start: Optional[date] = None,
    end: Optional[date] = None,
    admin: User = Depends(require_admin),
    session: Session = Depends(get_session),
):
    report = reports.revenue_report(session, period, start, end)
    filename = f"bao-cao-doanh-thu-{date.today().isoformat()}.csv"
    return Response(
        content=reports.revenue_csv(report["rows"]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/reports/products")
def product_report(admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    return reports.product_sales(session)


@router.get("/reports/customers")
def customer_report(admin: User = Depends(require_admin), session: Session = Depends(get_session)):
    return reports.customer_stats(session)
