from uuid import UUID
from typing import Any, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from fxdojo.modules.subscriptions.models import PaymentMethod, PaymentStatus, SubscriptionStatus


class PlanCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: int = Field(ge=0)
    duration_days: int = Field(ge=1)
    features: list[str] = []
    paypal_plan_id: Optional[str] = Field(default=None, max_length=100)


class PlanRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: int
    duration_days: int
    features: list[Any]
    is_active: bool
    paypal_plan_id: Optional[str] = None
    checkout_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubscribeRequest(BaseModel):
    plan_id: UUID


class ActivateRequest(BaseModel):
    paypal_subscription_id: Optional[str] = None
    paypal_transaction_id: Optional[str] = None


class PaymentRead(BaseModel):
    id: UUID
    subscription_id: UUID
    amount: int
    currency: str
    status: PaymentStatus
    method: PaymentMethod
    paypal_transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubscriptionRead(BaseModel):
    id: UUID
    user_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    auto_renew: bool
    paypal_subscription_id: Optional[str] = None
    plan: PlanRead

    model_config = ConfigDict(from_attributes=True)


class SubscriptionWithPayments(SubscriptionRead):
    payments: list[PaymentRead] = []


class PaymentPage(BaseModel):
    items: list[PaymentRead]
    total: int
    page: int
    limit: int
    pages: int


class PlanStat(PlanRead):
    active_subscriptions: int


class SubscriptionStats(BaseModel):
    total_active_subscriptions: int
    total_revenue: int
    plan_stats: list[PlanStat]
    recent_subscriptions: list[SubscriptionRead]


class ExpiryCheckResult(BaseModel):
    checked: int
    renewal_pending: int
    expired: int


class AccessCheck(BaseModel):
    has_access: bool
    user_id: UUID
