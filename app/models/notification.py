from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class NotificationType(str, enum.Enum):
    INFO = "Info"
    SUCCESS = "Success"
    WARNING = "Warning"
    ERROR = "Error"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), default=NotificationType.INFO.value, nullable=False)
    action_url = Column(String(500), nullable=True)  # Optional link to navigate to
    is_read = Column(Boolean, default=False, index=True)
    read_date = Column(DateTime(timezone=True), nullable=True)
    created_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    # One of the typed payloads in app.schemas.notification; "metadata" is reserved on declarative classes
    payload = Column("metadata", JSON, nullable=True)

    # Relationships
    user = relationship("User", back_populates="notifications")
