# reports.py
"""Admin aggregates: daily revenue, product sales and customer loyalty."""
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

import pandas as pd
from fastapi import HTTPException
from sqlalchemy import distinct, func
from sqlmodel import Session, select

from kspice.models import Order, OrderItem, Profile, User, utcnow

# period -> how far back the report reaches
PERIOD_OFFSETS = {
    "day": pd.DateOffset(days=7),
    "week": pd.DateOffset(days=30),
    "month": pd.DateOffset(months=6),
    "quarter": pd.DateOffset(months=12),
    "year": pd.DateOffset(years=2),
}

TOP_CUSTOMERS = 10


def resolve_period(period: str, start: Optional[date], end: Optional[date], today: Optional[date] = None) -> Tuple[date, date]:
    if period == "custom":
        if not start or not end:
            raise HTTPException(status_code=400, detail="Vui lòng chọn ngày bắt đầu và kết thúc")
        if start > end:
            raise HTTPException(status_code=400, detail="Ngày bắt đầu phải trước ngày kết thúc")
        return start, end
    if period not in PERIOD_OFFSETS:
        raise HTTPException(status_code=400, detail="Khoảng thời gian không hợp lệ")
    today = today or utcnow().date()
    return (pd.Timestamp(today) - PERIOD_OFFSETS[period]).date(), today


def daily_revenue(session: Session, start: date, end: date) -> list:
    """Delivered orders per calendar day between start and end (inclusive)."""
    day = func.date(Order.created_at)
    rows = session.exec(
        select(day, func.count(Order.id), func.sum(Order.total_amount))
        .where(Order.status == "delivered")
        .where(Order.created_at >= datetime.combine(start, time.min))
        .where(Order.created_at < datetime.combine(end + timedelta(days=1), time.min))
        .group_by(day)
        .order_by(day)
    ).all()
    return [
        {"date": str(d), "order_count": int(count), "total_revenue": int(revenue or 0)}
        for d, count, revenue in rows
    ]


def revenue_report(session: Session, period: str, start: Optional[date] = None, end: Optional[date] = None) -> dict:
    start, end = resolve_period(period, start, end)
    rows = daily_revenue(session, start, end)
    total_revenue = sum(r["total_revenue"] for r in rows)
    total_orders = sum(r["order_count"] for r in rows)
    return {
        "period": period,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "rows": rows,
        "total_revenue": total_revenue,
        "total_orders": total_orders,
        "avg_order_value": total_revenue / total_orders if total_orders > 0 else 0,
    }


def revenue_csv(rows: list) -> bytes:
    df = pd.DataFrame(rows, columns=["date", "order_count", "total_revenue"])
    df["date"] = pd.to_datetime(df["date"]).dt.strftime("%d/%m/%Y")
    df.columns = ["Ngày", "Số đơn hàng", "Doanh thu (VND)"]
    # utf-8-sig so Excel opens Vietnamese headers correctly
    return df.to_csv(index=False).encode("utf-8-sig")


def product_sales(session: Session) -> list:
    revenue = func.sum(OrderItem.subtotal)
    rows = session.exec(
        select(
            OrderItem.product_id,
            OrderItem.product_name,
            func.sum(OrderItem.quantity),
            revenue,
            func.count(distinct(OrderItem.order_id)),
        )
        .join(Order, OrderItem.order_id == Order.id)
        .where(Order.status != "cancelled")
        .group_by(OrderItem.product_id, OrderItem.product_name)
        .order_by(revenue.desc())
    ).all()
    return [
        {
            "product_id": product_id,
            "product_name": name,
            "total_quantity": int(quantity),
            "total_revenue": int(total),
            "order_count": int(orders),
        }
        for product_id, name, quantity, total, orders in rows
    ]


def customer_stats(session: Session) -> dict:
    total_customers = session.exec(select(func.count(User.id)).where(User.role == "customer")).one()

    order_count = func.count(Order.id)
    rows = session.exec(
        select(Order.user_id, Profile.full_name, Profile.email, order_count, func.sum(Order.total_amount))
        .join(Profile, Profile.id == Order.user_id, isouter=True)
        .where(Order.status == "delivered")
        .group_by(Order.user_id, Profile.full_name, Profile.email)
    ).all()

    customers = [
        {
            "user_id": user_id,
            "full_name": full_name or "N/A",
            "email": email or "N/A",
            "order_count": int(count),
            "total_spent": int(spent or 0),
        }
        for user_id, full_name, email, count, spent in rows
    ]
    total_orders = sum(c["order_count"] for c in customers)
    customers.sort(key=lambda c: (c["order_count"], c["total_spent"]), reverse=True)

    return {
        "total_customers": total_customers,
        "avg_orders_per_customer": total_orders / len(customers) if customers else 0,
        "loyal_customers": customers[:TOP_CUSTOMERS],
    }


def summary(session: Session) -> dict:
    orders, revenue = session.exec(
        select(func.count(Order.id), func.sum(Order.total_amount)).where(Order.status == "delivered")
    ).one()
    customers = session.exec(select(func.count(User.id)).where(User.role == "customer")).one()
    return {"total_orders": orders, "total_revenue": int(revenue or 0), "total_customers": customers}
