"""Endpoints and websocket handler for fan-out notifications."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from daonotify.domain.entities import DirectoryUser, MailType
from daonotify.infrastructure.email import EmailDeliveryError, EmailDeliveryService
from daonotify.infrastructure.notifications import NotificationStore
from daonotify.interfaces.api.dependencies import (
    get_current_active_user,
    get_email_delivery,
    get_notification_store,
    require_admin,
    resolve_user,
)
from daonotify.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationRead,
    OperationResult,
    TestEmailResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

TEST_EMAIL_SUBJECT = "Test d'envoi d'email"
TEST_EMAIL_BODY = (
    "Ceci est un email de test envoyé depuis la plateforme de gestion des DAOs.\n\n"
    "Si vous recevez ce message, la configuration d'envoi fonctionne."
)


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    store: NotificationStore = Depends(get_notification_store),
    current_user: DirectoryUser = Depends(get_current_active_user),
) -> list[NotificationRead]:
    """Return the most recent notifications visible to the authenticated user."""

    return [NotificationRead.from_view(view) for view in store.list_for_user(current_user.id)]


@router.put("/read-all", response_model=MarkAllReadResponse)
def mark_all_notifications_read(
    store: NotificationStore = Depends(get_notification_store),
    current_user: DirectoryUser = Depends(get_current_active_user),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(count=store.mark_all_read(current_user.id))


@router.put("/{notification_id}/read", response_model=OperationResult)
def mark_notification_read(
    notification_id: str,
    store: NotificationStore = Depends(get_notification_store),
    current_user: DirectoryUser = Depends(get_current_active_user),
) -> OperationResult:
    if not store.mark_read(current_user.id, notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification introuvable",
        )
    return OperationResult()


@router.delete("/", response_model=OperationResult)
def clear_notifications(
    store: NotificationStore = Depends(get_notification_store),
    current_user: DirectoryUser = Depends(require_admin),
) -> OperationResult:
    """Remove every notification for every user."""

    store.clear_all()
    logger.info("Notifications cleared by %s", current_user.id)
    return OperationResult()


@router.post("/test-email", response_model=TestEmailResponse)
async def send_test_email(
    delivery: EmailDeliveryService = Depends(get_email_delivery),
    current_user: DirectoryUser = Depends(require_admin),
) -> TestEmailResponse:
    """Send a test email to the administrative address."""

    try:
        summary = await delivery.email_admin(
            TEST_EMAIL_SUBJECT, TEST_EMAIL_BODY, MailType.SYSTEM_TEST
        )
    except EmailDeliveryError as exc:
        logger.error("Test email requested by %s failed with code %s", current_user.id, exc.code)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": "Échec de l'envoi de l'email de test", "code": exc.code},
        ) from exc
    return TestEmailResponse(
        attempted=summary.attempted, sent=summary.sent, failed=summary.failed
    )


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the connected user."""

    state = websocket.app.state
    try:
        user = resolve_user(websocket.query_params.get("user_id"), state.user_directory)
    except HTTPException:
        await websocket.close(code=1008)
        return

    store: NotificationStore = state.notification_store
    manager = state.connection_manager
    await manager.connect(user.id, websocket)
    try:
        pending = [
            NotificationRead.from_view(view).model_dump(mode="json")
            for view in store.list_for_user(user.id)
            if not view.read
        ]
        if pending:
            await websocket.send_json({"type": "init", "data": pending})
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list):
                    for notification_id in ids:
                        store.mark_read(user.id, str(notification_id))
    except WebSocketDisconnect:
        manager.disconnect(user.id, websocket)
    except Exception:
        manager.disconnect(user.id, websocket)
        raise
