from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from fxdojo.core.logging import get_logger
from fxdojo.modules.auth.models import User
from fxdojo.modules.subscriptions.models import (
    PaymentMethod,
    PaymentStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from fxdojo.modules.subscriptions.repository import (
    PaymentRepository,
    PlanRepository,
    SubscriptionRepository,
)
from fxdojo.schemas.subscription import PlanCreate

logger = get_logger(__name__)

CURRENCY = "JPY"


class SubscriptionService:
    """Plans, subscriptions and their PayPal-hosted payments."""

    def __init__(self, db: Session):
        self.db = db
        self.plan_repo = PlanRepository(db)
        self.subscription_repo = SubscriptionRepository(db)
        self.payment_repo = PaymentRepository(db)

    # ---------- plans ----------

    def list_plans(self) -> list[SubscriptionPlan]:
        return self.plan_repo.list_active()

    def get_plan(self, plan_id: uuid.UUID) -> SubscriptionPlan:
        plan = self.plan_repo.get_by_id(plan_id)
        if not plan:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Plan not found",
            )
        return plan

    def create_plan(self, payload: PlanCreate) -> SubscriptionPlan:
        plan = self.plan_repo.create(**payload.model_dump())
        self.db.commit()
        self.db.refresh(plan)
        logger.info("subscription plan created", plan_id=str(plan.id), price=plan.price)
        return plan

    # ---------- subscriptions ----------

    def _get_subscription_or_404(self, subscription_id: uuid.UUID) -> Subscription:
        subscription = self.subscription_repo.get_by_id(subscription_id)
        if not subscription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Subscription not found",
            )
        return subscription

    def subscribe(self, user: User, plan_id: uuid.UUID) -> Subscription:
        plan = self.plan_repo.get_by_id(plan_id)
        if not plan or not plan.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Plan not found or inactive",
            )

        now = datetime.utcnow()
        if self.subscription_repo.get_active_for_user(user.id, now=now):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You already have an active subscription",
            )

        subscription = self.subscription_repo.create(
            user_id=user.id,
            plan_id=plan.id,
            status=SubscriptionStatus.pending,
            start_date=now,
            end_date=now + timedelta(days=plan.duration_days),
        )
        self.db.commit()
        self.db.refresh(subscription)
        logger.info("subscription created", subscription_id=str(subscription.id), user_id=str(user.id), plan_id=str(plan.id))
        return subscription

    def activate(
        self,
        subscription_id: uuid.UUID,
        paypal_subscription_id: Optional[str] = None,
        paypal_transaction_id: Optional[str] = None,
    ) -> Subscription:
        """Mark a subscription paid once PayPal has confirmed it."""
        subscription = self._get_subscription_or_404(subscription_id)
        if subscription.status != SubscriptionStatus.pending:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only pending subscriptions can be activated (status: {subscription.status.value})",
            )
        now = datetime.utcnow()

        subscription.status = SubscriptionStatus.active
        if paypal_subscription_id:
            subscription.paypal_subscription_id = paypal_subscription_id
        self.payment_repo.create(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            amount=subscription.plan.price,
            currency=CURRENCY,
            status=PaymentStatus.completed,
            method=PaymentMethod.paypal,
            paypal_transaction_id=paypal_transaction_id,
            paid_at=now,
        )
        self.db.commit()
        self.db.refresh(subscription)
        logger.info("subscription activated", subscription_id=str(subscription.id), user_id=str(subscription.user_id))
        return subscription

    def current(self, user: User) -> Optional[Subscription]:
        return self.subscription_repo.get_active_for_user(user.id)

    def renew(self, subscription_id: uuid.UUID, user: User) -> Subscription:
        subscription = self._get_subscription_or_404(subscription_id)
        if subscription.user_id != user.id and not user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Subscription not found",
            )
        if not subscription.auto_renew:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Auto-renew is disabled for this subscription",
            )

        subscription.end_date = subscription.end_date + timedelta(days=subscription.plan.duration_days)
        subscription.status = SubscriptionStatus.active
        self.db.commit()
        self.db.refresh(subscription)
        logger.info("subscription renewed", subscription_id=str(subscription.id), end_date=subscription.end_date.isoformat())
        return subscription

    def cancel(self, subscription_id: uuid.UUID, user: User) -> Subscription:
        subscription = self.subscription_repo.get_by_id(subscription_id)
        if not subscription or subscription.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Subscription not found",
            )
        subscription.status = SubscriptionStatus.cancelled
        subscription.auto_renew = False
        self.db.commit()
        self.db.refresh(subscription)
        logger.info("subscription cancelled", subscription_id=str(subscription.id), user_id=str(user.id))
        return subscription

    def check_expired(self, now: Optional[datetime] = None) -> dict:
        """Active subscriptions past their end go pending (auto-renew) or expired."""
        now = now or datetime.utcnow()
        ended = self.subscription_repo.list_active_ended_before(now)

        renewal_pending = 0
        expired = 0
        for subscription in ended:
            if subscription.auto_renew:
                subscription.status = SubscriptionStatus.pending
                renewal_pending += 1
            else:
                subscription.status = SubscriptionStatus.expired
                expired += 1
        self.db.commit()

        logger.info(
            "expired subscriptions checked",
            checked=len(ended),
            renewal_pending=renewal_pending,
            expired=expired,
        )
        return {"checked": len(ended), "renewal_pending": renewal_pending, "expired": expired}

    def has_active_subscription(self, user: User) -> bool:
        return self.subscription_repo.get_active_for_user(user.id, now=datetime.utcnow()) is not None

    # ---------- reporting ----------

    def stats(self) -> dict:
        plan_stats = []
        for plan in self.plan_repo.list_all():
            plan_stats.append(
                {
                    "id": plan.id,
                    "name": plan.name,
                    "description": plan.description,
                    "price": plan.price,
                    "duration_days": plan.duration_days,
                    "features": plan.features,
                    "is_active": plan.is_active,
                    "paypal_plan_id": plan.paypal_plan_id,
                    "checkout_url": plan.checkout_url,
                    "active_subscriptions": self.subscription_repo.count_active(plan.id),
                }
            )
        return {
            "total_active_subscriptions": self.subscription_repo.count_active(),
            "total_revenue": self.payment_repo.total_revenue(),
            "plan_stats": plan_stats,
            "recent_subscriptions": self.subscription_repo.list_recent(10),
        }

    def payment_history(self, user: User, page: int = 1, limit: int = 20) -> dict:
        total = self.payment_repo.count_for_user(user.id)
        items = self.payment_repo.list_for_user(user.id, offset=(page - 1) * limit, limit=limit)
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if total else 0,
        }
