# routers/catalog.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlmodel import Session, select

from kspice.database import get_session
from kspice.models import Category, Product

router = APIRouter(prefix="/api", tags=["catalog"])

QUICK_SEARCH_LIMIT = 5


def product_out(product: Product, category: Optional[Category]) -> dict:
    data = product.model_dump()
    data["category_name"] = category.name if category else None
    return data


def visible_products():
    """Products a customer may see: available and not soft-deleted."""
    return (
        select(Product, Category)
        .join(Category, Product.category_id == Category.id, isouter=True)
        .where(Product.is_available == True)  # noqa: E712
        .where(Product.is_deleted == False)  # noqa: E712
    )


@router.get("/categories")
def list_categories(session: Session = Depends(get_session)):
    return session.exec(select(Category).order_by(Category.display_order, Category.id)).all()


@router.get("/products")
def list_products(
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    query = visible_products()
    if search:
        # % và _ được tìm như ký tự thường
        query = query.where(or_(
            Product.name.icontains(search, autoescape=True),
            Product.description.icontains(search, autoescape=True),
        ))
    if category_id is not None:
        query = query.where(Product.category_id == category_id)
    rows = session.exec(query.order_by(Product.created_at.desc(), Product.id.desc())).all()
    return [product_out(p, c) for p, c in rows]


@router.get("/products/search")
def quick_search(q: str = Query(..., min_length=1), session: Session = Depends(get_session)):
    rows = session.exec(
        visible_products().where(Product.name.icontains(q, autoescape=True)).limit(QUICK_SEARCH_LIMIT)
    ).all()
    return [product_out(p, c) for p, c in rows]


@router.get("/products/{product_id}")
def get_product(product_id: int, session: Session = Depends(get_session)):
    product = session.get(Product, product_id)
    if not product or product.is_deleted:
        raise HTTPException(status_code=404, detail="Không tìm thấy sản phẩm")
    category = session.get(Category, product.category_id) if product.category_id else None
    return product_out(product, category)
