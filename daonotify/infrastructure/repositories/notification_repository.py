"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from daonotify.domain.entities import ALL_RECIPIENTS, Notification, NotificationType
from daonotify.infrastructure.models import NotificationModel


class NotificationRepository:
    """Provide persistence operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, notification: Notification) -> None:
        model = NotificationModel(
            id=notification.id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            data=notification.data or {},
            recipients=(
                ALL_RECIPIENTS
                if notification.is_broadcast
                else list(notification.recipients)
            ),
            read_by=sorted(notification.read_by),
            created_at=notification.created_at,
        )
        self.session.add(model)
        self.session.commit()

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        model = self.session.get(NotificationModel, notification_id)
        if model is None:
            return False
        read_by = list(model.read_by or [])
        if user_id not in read_by:
            model.read_by = [*read_by, user_id]
            self.session.commit()
        return True

    def mark_all_read(self, notification_ids: Sequence[str], user_id: str) -> int:
        if not notification_ids:
            return 0
        models = self.session.scalars(
            select(NotificationModel).where(NotificationModel.id.in_(list(notification_ids)))
        ).all()
        updated = 0
        for model in models:
            read_by = list(model.read_by or [])
            if user_id in read_by:
                continue
            model.read_by = [*read_by, user_id]
            updated += 1
        if updated:
            self.session.commit()
        return updated

    def clear_all(self) -> None:
        self.session.execute(delete(NotificationModel))
        self.session.commit()

    def list_recent(self, limit: int) -> list[Notification]:
        statement = (
            select(NotificationModel)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .limit(limit)
        )
        return [self._to_entity(model) for model in self.session.scalars(statement)]

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        recipients = model.recipients
        return Notification(
            id=model.id,
            type=NotificationType(model.type),
            title=model.title,
            message=model.message,
            recipients=(
                ALL_RECIPIENTS
                if recipients == ALL_RECIPIENTS
                else tuple(str(item) for item in recipients or [])
            ),
            created_at=model.created_at,
            data=dict(model.data or {}),
            read_by=set(model.read_by or []),
        )


__all__ = ["NotificationRepository"]
