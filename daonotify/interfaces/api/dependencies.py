"""FastAPI dependency utilities."""

from fastapi import Depends, Header, HTTPException, Request, status

from daonotify.domain.entities import DirectoryUser
from daonotify.domain.ports import UserDirectory
from daonotify.infrastructure.email import EmailDeliveryService
from daonotify.infrastructure.notifications import (
    NotificationConnectionManager,
    NotificationStore,
)
from daonotify.infrastructure.repositories import AutoUserAuditLog


def get_notification_store(request: Request) -> NotificationStore:
    return request.app.state.notification_store


def get_email_delivery(request: Request) -> EmailDeliveryService:
    return request.app.state.email_delivery


def get_user_directory(request: Request) -> UserDirectory:
    return request.app.state.user_directory


def get_auto_user_audit(request: Request) -> AutoUserAuditLog:
    return request.app.state.auto_user_audit


def get_connection_manager(request: Request) -> NotificationConnectionManager:
    return request.app.state.connection_manager


def resolve_user(user_id: str | None, users: UserDirectory) -> DirectoryUser:
    """Return the active directory user identified by ``user_id``."""

    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentification requise",
        )
    user = users.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utilisateur introuvable",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Utilisateur inactif",
        )
    return user


def get_current_active_user(
    x_user_id: str | None = Header(default=None),
    users: UserDirectory = Depends(get_user_directory),
) -> DirectoryUser:
    """Return the user named by the ``X-User-Id`` header set by the auth gateway."""

    return resolve_user(x_user_id, users)


def require_admin(
    current_user: DirectoryUser = Depends(get_current_active_user),
) -> DirectoryUser:
    """Ensure the authenticated user has administrator privileges."""

    if not current_user.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Non autorisé",
        )
    return current_user
