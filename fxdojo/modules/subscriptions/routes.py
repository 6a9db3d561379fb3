# fxdojo/modules/subscriptions/routes.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fxdojo.db.deps import get_current_active_user, get_current_admin, get_db
from fxdojo.modules.auth.models import User
from fxdojo.modules.subscriptions.service import SubscriptionService
from fxdojo.schemas.subscription import (
    AccessCheck,
    ActivateRequest,
    ExpiryCheckResult,
    PaymentPage,
    PlanCreate,
    PlanRead,
    SubscribeRequest,
    SubscriptionRead,
    SubscriptionStats,
    SubscriptionWithPayments,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/plans", response_model=list[PlanRead])
def list_plans(db: Session = Depends(get_db)):
    return SubscriptionService(db).list_plans()


@router.get("/plans/{plan_id}", response_model=PlanRead)
def get_plan(plan_id: UUID, db: Session = Depends(get_db)):
    return SubscriptionService(db).get_plan(plan_id)


@router.post("/plans", response_model=PlanRead, status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: PlanCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return SubscriptionService(db).create_plan(payload)


@router.post("/subscribe", response_model=SubscriptionRead, status_code=status.HTTP_201_CREATED)
def subscribe(
    payload: SubscribeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return SubscriptionService(db).subscribe(current_user, payload.plan_id)


@router.get("/current", response_model=Optional[SubscriptionWithPayments])
def current_subscription(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return SubscriptionService(db).current(current_user)


@router.get("/check-access", response_model=AccessCheck)
def check_access(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return AccessCheck(
        has_access=SubscriptionService(db).has_active_subscription(current_user),
        user_id=current_user.id,
    )


@router.get("/payments", response_model=PaymentPage)
def payment_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return SubscriptionService(db).payment_history(current_user, page, limit)


@router.get("/admin/stats", response_model=SubscriptionStats)
def subscription_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return SubscriptionService(db).stats()


@router.post("/admin/check-expired", response_model=ExpiryCheckResult)
def check_expired_subscriptions(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return SubscriptionService(db).check_expired()


@router.post("/cancel/{subscription_id}", response_model=SubscriptionRead)
def cancel_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return SubscriptionService(db).cancel(subscription_id, current_user)


@router.post("/{subscription_id}/activate", response_model=SubscriptionWithPayments)
def activate_subscription(
    subscription_id: UUID,
    payload: ActivateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return SubscriptionService(db).activate(
        subscription_id,
        paypal_subscription_id=payload.paypal_subscription_id,
        paypal_transaction_id=payload.paypal_transaction_id,
    )


@router.post("/{subscription_id}/renew", response_model=SubscriptionRead)
def renew_subscription(
    subscription_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    return SubscriptionService(db).renew(subscription_id, current_user)
