"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import JSON, Column, String, Text

from daonotify.infrastructure.database import Base


class NotificationModel(Base):
    """Database representation for fan-out notifications."""

    __tablename__ = "notification"

    id = Column(String(64), primary_key=True)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    recipients = Column(JSON, nullable=False)
    read_by = Column(JSON, nullable=False, default=list)
    created_at = Column(String(40), nullable=False, index=True)


__all__ = ["NotificationModel"]
