"""Payment service - Manual payment submission, verification and reporting"""

import csv
import logging
from datetime import datetime
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...models import Payment, User
from .repository import PaymentRepository
from .schemas import PaymentCreate, payment_to_dict

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json")


def _parse_filter_date(value: Optional[str], label: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {label}: {value}") from e


def _parse_verified(value: Optional[str]) -> Optional[bool]:
    return {"true": True, "false": False}.get((value or "").lower())


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()

    def submit_payment(self, data: PaymentCreate, client: User) -> dict:
        with unit_of_work(self.db):
            payment = self.repo.create_payment(
                self.db,
                user_id=client.id,
                amount=data.amount,
                currency=data.currency,
                payment_method=data.paymentMethod,
                transaction_id=(data.transactionId or "").strip() or None,
                account_name=(data.accountName or "").strip() or None,
                status="pending",
            )
        logger.info(f"💳 Client {client.id} submitted {data.paymentMethod} payment {payment.id}")
        return {"message": "Payment submitted for verification", "payment": payment_to_dict(payment)}

    def client_payments(self, client: User) -> list[dict]:
        return [payment_to_dict(p) for p in self.repo.list_payments(self.db, user_id=client.id)]

    def list_payments(
        self, status: Optional[str] = None, method: Optional[str] = None, verified: Optional[str] = None
    ) -> list[dict]:
        payments = self.repo.list_payments(
            self.db, status=status, method=method, verified=_parse_verified(verified)
        )
        return [payment_to_dict(p, include_user=True) for p in payments]

    def verify_payment(self, payment_id: str, verified: bool, admin: User) -> dict:
        payment = self.repo.get_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")

        with unit_of_work(self.db):
            payment.is_verified = verified
            payment.verified_by = admin.id if verified else None
            payment.verified_at = datetime.utcnow() if verified else None
            payment.status = "completed" if verified else "pending"

        logger.info(f"💳 Admin {admin.id} {'verified' if verified else 'rejected'} payment {payment.id}")
        return {
            "message": f"Payment {'verified' if verified else 'rejected'} successfully",
            "payment": payment_to_dict(payment, include_user=True),
        }

    def export_payments(
        self,
        export_format: str = "csv",
        status: Optional[str] = None,
        method: Optional[str] = None,
        verified: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ):
        """Payments report as a CSV download or a JSON summary"""
        if export_format not in EXPORT_FORMATS:
            raise HTTPException(status_code=400, detail="Format must be 'csv' or 'json'")

        payments = self.repo.list_payments(
            self.db,
            status=status,
            method=method,
            verified=_parse_verified(verified),
            start_date=_parse_filter_date(start_date, "startDate"),
            end_date=_parse_filter_date(end_date, "endDate"),
        )
        logger.info(f"📊 Payments export ({export_format}): {len(payments)} payment(s)")

        if export_format == "json":
            return {
                "payments": [payment_to_dict(p, include_user=True) for p in payments],
                "summary": {
                    "total": len(payments),
                    "totalAmount": sum(p.amount for p in payments),
                    "verified": sum(1 for p in payments if p.is_verified),
                    "pending": sum(1 for p in payments if p.status == "pending"),
                    "completed": sum(1 for p in payments if p.status == "completed"),
                },
                "generatedAt": datetime.utcnow(),
            }
        return self._csv_response(payments)

    def _csv_response(self, payments: list[Payment]) -> StreamingResponse:
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(
            [
                "Payment ID",
                "Client Name",
                "Client Email",
                "Amount",
                "Currency",
                "Payment Method",
                "Status",
                "Transaction ID",
                "Is Verified",
                "Submitted Date",
                "Verified Date",
                "Verified By",
            ]
        )
        for payment in payments:
            writer.writerow(
                [
                    payment.id,
                    payment.user.full_name if payment.user else "",
                    payment.user.email if payment.user else "",
                    payment.amount,
                    payment.currency,
                    payment.payment_method,
                    payment.status,
                    payment.transaction_id or "",
                    "Yes" if payment.is_verified else "No",
                    payment.created_at.strftime("%Y-%m-%d") if payment.created_at else "",
                    payment.verified_at.strftime("%Y-%m-%d") if payment.verified_at else "",
                    payment.verified_by or "",
                ]
            )

        output.seek(0)
        filename = f"payments_report_{datetime.now().strftime('%Y-%m-%d')}.csv"
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
