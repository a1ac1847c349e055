import logging
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from rendplus.errors import RegistryError
from rendplus.logging import token_preview
from rendplus.models import DeviceRegistration
from rendplus.models.device import utcnow

logger = logging.getLogger(__name__)

class DeviceRegistry:
    """Access layer over the ``admin_fcm_tokens`` table.

    Every call takes the owner identifier explicitly. Store failures are
    rolled back and re-raised as ``RegistryError``.
    """

    def __init__(self, db: Session):
        self.db = db

    def upsert(self, owner_id: str, token: str) -> DeviceRegistration:
        """Insert or replace the token for ``owner_id``. Last writer wins."""
        if not owner_id or not token:
            raise ValueError("owner_id and token are required")
        try:
            registration = self._write(owner_id, token)
        except IntegrityError:
            # Another session inserted the same owner between our read and write
            self.db.rollback()
            try:
                registration = self._write(owner_id, token)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise RegistryError(f"Failed to save device token: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RegistryError(f"Failed to save device token: {e}") from e
        logger.info("Device token saved for %s: %s", owner_id, token_preview(token))
        return registration

    def _write(self, owner_id: str, token: str) -> DeviceRegistration:
        existing = self.db.execute(
            select(DeviceRegistration).where(DeviceRegistration.owner_id == owner_id)
        ).scalar_one_or_none()
        if existing:
            existing.token = token
            existing.updated_at = utcnow()
            registration = existing
        else:
            registration = DeviceRegistration(owner_id=owner_id, token=token)
            self.db.add(registration)
        self.db.commit()
        return registration

    def remove(self, owner_id: str) -> bool:
        """Delete the row for ``owner_id``. Returns False if there was none."""
        try:
            existing = self.db.execute(
                select(DeviceRegistration).where(DeviceRegistration.owner_id == owner_id)
            ).scalar_one_or_none()
            if not existing:
                return False
            self.db.delete(existing)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RegistryError(f"Failed to remove device token: {e}") from e
        logger.info("Device token removed for %s", owner_id)
        return True

    def list_all(self) -> list[str]:
        try:
            return list(self.db.execute(select(DeviceRegistration.token)).scalars().all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RegistryError(f"Failed to load device tokens: {e}") from e
