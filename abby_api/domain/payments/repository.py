"""Payment repository - Database operations for payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_payment(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def list_payments(
        db: Session,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        method: Optional[str] = None,
        verified: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[Payment]:
        query = db.query(Payment).options(joinedload(Payment.user))
        if user_id:
            query = query.filter(Payment.user_id == user_id)
        if status:
            query = query.filter(Payment.status == status)
        if method:
            query = query.filter(Payment.payment_method == method)
        if verified is not None:
            query = query.filter(Payment.is_verified.is_(verified))
        if start_date:
            query = query.filter(Payment.created_at >= start_date)
        if end_date:
            query = query.filter(Payment.created_at <= end_date)

        query = query.order_by(Payment.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def create_payment(db: Session, **data) -> Payment:
        payment = Payment(**data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def count(db: Session, **filters) -> int:
        query = db.query(Payment)
        for key, value in filters.items():
            query = query.filter(getattr(Payment, key) == value)
        return query.count()

    @staticmethod
    def verified_revenue(db: Session) -> float:
        total = (
            db.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.status == "completed", Payment.is_verified.is_(True))
            .scalar()
        )
        return float(total or 0)
