"""Payment domain schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import Payment

PAYMENT_METHODS = ("paypal", "bank-transfer")


class PaymentCreate(BaseModel):
    """Manual payment submitted by a client for admin verification"""

    amount: float
    paymentMethod: str
    currency: str = "USD"
    transactionId: Optional[str] = None
    accountName: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def check_amount(cls, v):
        if v <= 0:
            raise ValueError("Amount must be greater than zero")
        return v

    @field_validator("paymentMethod")
    @classmethod
    def check_method(cls, v):
        if v not in PAYMENT_METHODS:
            raise ValueError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return v

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v):
        v = (v or "").strip().upper()
        if len(v) != 3:
            raise ValueError("Currency must be a 3-letter code")
        return v


class PaymentVerify(BaseModel):
    verified: bool


def payment_to_dict(payment: Payment, include_user: bool = False) -> dict:
    data = {
        "id": payment.id,
        "userId": payment.user_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "paymentMethod": payment.payment_method,
        "status": payment.status,
        "transactionId": payment.transaction_id,
        "accountName": payment.account_name,
        "isVerified": payment.is_verified,
        "verifiedBy": payment.verified_by,
        "verifiedAt": payment.verified_at,
        "createdAt": payment.created_at,
    }
    if include_user and payment.user is not None:
        data["user"] = {
            "id": payment.user.id,
            "firstName": payment.user.first_name,
            "lastName": payment.user.last_name,
            "email": payment.user.email,
            "role": payment.user.role,
        }
    return data
