from fxdojo.celery_app import celery_app
from fxdojo.core.logging import get_logger
from fxdojo.db.session import SessionLocal
from fxdojo.modules.subscriptions.service import SubscriptionService

logger = get_logger(__name__)


@celery_app.task(name="subscriptions.check_expired")
def check_expired_subscriptions() -> dict:
    """Periodic sweep moving lapsed subscriptions to pending or expired."""
    db = SessionLocal()
    try:
        return SubscriptionService(db).check_expired()
    except Exception:
        db.rollback()
        logger.exception("subscription expiry check failed")
        raise
    finally:
        db.close()
