import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from rendplus.config import settings
from rendplus.database import get_db
from rendplus.errors import NotificationError, RegistryError
from rendplus.notifications.push import send_quote_notification
from rendplus.services.device_registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

class DeviceTokenUpdate(BaseModel):
    token: str = Field(min_length=1)

class QuoteSubmission(BaseModel):
    userName: str = Field(min_length=1)
    userEmail: str = ""
    defer: bool = False

@router.get("/vapid-key")
def get_vapid_key():
    if not settings.vapid_public_key:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    return {"publicKey": settings.vapid_public_key}

@router.put("/devices/{owner_id}")
def register_device(owner_id: str, data: DeviceTokenUpdate, db: Session = Depends(get_db)):
    try:
        registration = DeviceRegistry(db).upsert(owner_id, data.token)
    except RegistryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "status": "registered",
        "ownerId": owner_id,
        "updatedAt": registration.updated_at.isoformat() if registration.updated_at else None,
    }

@router.delete("/devices/{owner_id}")
def unregister_device(owner_id: str, db: Session = Depends(get_db)):
    try:
        DeviceRegistry(db).remove(owner_id)
    except RegistryError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "unregistered"}

@router.post("/quote-submission")
async def quote_submission(data: QuoteSubmission, db: Session = Depends(get_db)):
    """Notify admin devices about a new quote. Never fails the submission itself."""
    if data.defer:
        from rendplus.workers.tasks import dispatch_quote_notification
        try:
            dispatch_quote_notification.delay(data.userName, data.userEmail)
        except Exception as e:
            logger.error("Could not queue quote notification: %s", e)
            return {"status": "warning", "detail": "Notification could not be queued"}
        return {"status": "queued"}

    try:
        result = await send_quote_notification(db, data.userName, data.userEmail)
    except (NotificationError, TimeoutError) as e:
        logger.error("Quote notification failed: %s", e)
        return {"status": "warning", "detail": str(e)}
    except Exception as e:
        logger.exception("Unexpected error while sending quote notification")
        return {"status": "warning", "detail": f"Notification could not be sent: {e}"}
    if result.attempted == 0:
        return {"status": "skipped", "message": "No admin devices to notify", **result.as_dict()}
    return {
        "status": "sent",
        "message": f"Successfully sent notification to {result.delivered} devices",
        **result.as_dict(),
    }
