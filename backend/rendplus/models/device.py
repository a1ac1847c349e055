import uuid
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, Text, Uuid, Index
from sqlalchemy.orm import Mapped, mapped_column
from rendplus.database import Base

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class DeviceRegistration(Base):
    """One administrator's current push endpoint. At most one row per owner."""
    __tablename__ = "admin_fcm_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[str] = mapped_column(String(255), unique=True)
    token: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('ix_admin_fcm_tokens_token', 'token'),
    )
