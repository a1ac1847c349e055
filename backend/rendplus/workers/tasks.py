import asyncio
import logging
from rendplus.workers.celery_app import celery_app
from rendplus.database import SessionLocal
from rendplus.errors import NotificationError
from rendplus.notifications.push import send_quote_notification

logger = logging.getLogger(__name__)

@celery_app.task(name="rendplus.workers.tasks.dispatch_quote_notification")
def dispatch_quote_notification(user_name: str, user_email: str = ""):
    """Deferred variant of the quote-submission trigger. Failures are reported, not retried."""
    db = SessionLocal()
    try:
        result = asyncio.run(send_quote_notification(db, user_name, user_email))
        return {"status": "sent" if result.attempted else "skipped", **result.as_dict()}
    except (NotificationError, TimeoutError) as e:
        logger.error("Deferred quote notification failed: %s", e)
        return {"status": "warning", "detail": str(e)}
    except Exception as e:
        logger.exception("Unexpected error in deferred quote notification")
        return {"status": "warning", "detail": f"Notification could not be sent: {e}"}
    finally:
        db.close()
