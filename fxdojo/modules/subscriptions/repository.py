from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from fxdojo.modules.subscriptions.models import (
    Payment,
    PaymentStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)


class PlanRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, plan_id: uuid.UUID) -> Optional[SubscriptionPlan]:
        return self.db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()

    def list_active(self) -> list[SubscriptionPlan]:
        return (
            self.db.query(SubscriptionPlan)
            .filter(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price.asc())
            .all()
        )

    def list_all(self) -> list[SubscriptionPlan]:
        return self.db.query(SubscriptionPlan).order_by(SubscriptionPlan.price.asc()).all()

    def create(self, **fields) -> SubscriptionPlan:
        plan = SubscriptionPlan(**fields)
        self.db.add(plan)
        self.db.flush()
        return plan


class SubscriptionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, subscription_id: uuid.UUID) -> Optional[Subscription]:
        return self.db.query(Subscription).filter(Subscription.id == subscription_id).first()

    def get_active_for_user(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> Optional[Subscription]:
        query = self.db.query(Subscription).filter(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.active,
        )
        if now is not None:
            query = query.filter(Subscription.end_date >= now)
        return query.order_by(Subscription.created_at.desc()).first()

    def list_active_ended_before(self, now: datetime) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .filter(
                Subscription.status == SubscriptionStatus.active,
                Subscription.end_date < now,
            )
            .all()
        )

    def list_recent(self, limit: int = 10) -> list[Subscription]:
        return (
            self.db.query(Subscription)
            .order_by(Subscription.created_at.desc())
            .limit(limit)
            .all()
        )

    def count_active(self, plan_id: Optional[uuid.UUID] = None) -> int:
        query = self.db.query(Subscription).filter(Subscription.status == SubscriptionStatus.active)
        if plan_id is not None:
            query = query.filter(Subscription.plan_id == plan_id)
        return query.count()

    def create(self, **fields) -> Subscription:
        subscription = Subscription(**fields)
        self.db.add(subscription)
        self.db.flush()
        return subscription


class PaymentRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, **fields) -> Payment:
        payment = Payment(**fields)
        self.db.add(payment)
        self.db.flush()
        return payment

    def list_for_user(self, user_id: uuid.UUID, offset: int, limit: int) -> list[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_for_user(self, user_id: uuid.UUID) -> int:
        return self.db.query(Payment).filter(Payment.user_id == user_id).count()

    def total_revenue(self) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.status == PaymentStatus.completed)
            .scalar()
        )
        return int(total or 0)
