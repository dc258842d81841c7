"""SQLAlchemy ORM models."""

from .notification import NotificationModel

__all__ = ["NotificationModel"]
