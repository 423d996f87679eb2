from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SubscriptionStatus:
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    COMPLETED = "completed"

    ALL = (ACTIVE, PAUSED, CANCELLED, EXPIRED, COMPLETED)


class PaymentMethod:
    UPI_MANDATE = "upi_mandate"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


_STATUS_PATTERN = "^(" + "|".join(SubscriptionStatus.ALL) + ")$"
_METHOD_PATTERN = "^(upi_mandate|card|bank_transfer)$"


class CardCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    cardholder_name: str = Field(..., alias="cardholderName", min_length=1)
    phone_number: str = Field(..., alias="phoneNumber", min_length=1)
    scheme_id: Optional[str] = Field(default=None, alias="schemeId")
    payment_method: str = Field(default=PaymentMethod.UPI_MANDATE, alias="paymentMethod", pattern=_METHOD_PATTERN)
    subscription_status: str = Field(default=SubscriptionStatus.ACTIVE, alias="subscriptionStatus",
                                     pattern=_STATUS_PATTERN)
    ref_l1_user_id: Optional[str] = Field(default=None, alias="refL1UserId")
    ref_l2_user_id: Optional[str] = Field(default=None, alias="refL2UserId")


class CardUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cardholder_name: Optional[str] = Field(default=None, alias="cardholderName")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    scheme_id: Optional[str] = Field(default=None, alias="schemeId")
    subscription_status: Optional[str] = Field(default=None, alias="subscriptionStatus", pattern=_STATUS_PATTERN)
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod", pattern=_METHOD_PATTERN)
    mandate_id: Optional[str] = Field(default=None, alias="mandateId")
    next_payment_date: Optional[str] = Field(default=None, alias="nextPaymentDate")
    cancellation_reason: Optional[str] = Field(default=None, alias="cancellationReason")
    suspension_reason: Optional[str] = Field(default=None, alias="suspensionReason")
    is_active: Optional[bool] = Field(default=None, alias="isActive")
