"""Tests for the notification store, its email mirror and its persistence."""

from __future__ import annotations

import logging

import anyio
import pytest

from daonotify.application.use_cases.notifications import (
    notify_dao_created,
    notify_dao_updated,
)
from daonotify.domain.entities import DeliverySummary, NotificationType
from daonotify.infrastructure.background import BackgroundTaskQueue
from daonotify.infrastructure.database import (
    build_engine,
    create_session_factory,
    initialize_database,
)
from daonotify.infrastructure.email import EmailDeliveryError
from daonotify.infrastructure.notifications import (
    EmailMirror,
    EmailRecipientResolver,
    ErrorNotificationCooldown,
    NotificationStore,
)
from daonotify.infrastructure.notifications.mirror import EMAIL_ERROR_TITLE, QUOTA_MESSAGE

pytestmark = pytest.mark.anyio


class FakeDelivery:
    """Record mirrored emails; scripted errors are raised in order."""

    def __init__(self, errors=(), *, always=None):
        self.errors = list(errors)
        self.always = always
        self.calls = []

    async def send(self, recipients, subject, body):
        self.calls.append((list(recipients), subject, body))
        error = self.errors.pop(0) if self.errors else self.always
        if error is not None:
            raise error
        return DeliverySummary(subject=subject, attempted=len(recipients), sent=len(recipients))


class Recorder:
    def __init__(self):
        self.sleeps = []

    async def __call__(self, seconds):
        self.sleeps.append(seconds)


class BlockingMirror:
    """Hold every mirrored notification until ``release`` is set."""

    def __init__(self):
        self.release = anyio.Event()
        self.delivered = []

    async def deliver(self, notification):
        await self.release.wait()
        self.delivered.append(notification.title)


class RecordingPublisher:
    def __init__(self):
        self.published = []

    async def publish(self, notification):
        self.published.append(notification.title)


def _mirror(delivery, users, daos=None, *, admin_email=None, sleep=None):
    resolver = EmailRecipientResolver(users, daos, admin_email=admin_email)
    return EmailMirror(delivery, resolver, sleep=sleep or Recorder())


def _store(tasks=None, **kwargs):
    return NotificationStore(tasks=tasks or BackgroundTaskQueue(), **kwargs)


async def test_notification_is_visible_before_background_work_runs(sample_dao, users, daos):
    """The caller sees the DAO notification immediately; the email follows on drain."""

    tasks = BackgroundTaskQueue()
    delivery = FakeDelivery()
    store = _store(tasks, mirror=_mirror(delivery, users, daos, admin_email="direction@dao.test"))

    notification = notify_dao_created(store, dao=sample_dao)

    views = store.list_for_user("u-bob")
    assert [view.id for view in views] == [notification.id]
    assert views[0].read is False
    assert views[0].type is NotificationType.DAO_CREATED
    assert delivery.calls == []
    assert store.pending == 1

    await store.drain()

    recipients, subject, body = delivery.calls[0]
    assert recipients == [
        "admin@dao.test",
        "awa@dao.test",
        "bob@dao.test",
        "direction@dao.test",
    ]
    assert subject == "Création d’un DAO"
    assert body == notification.data["html"]


async def test_unchanged_dao_update_is_not_broadcast(sample_dao):
    store = _store()

    assert notify_dao_updated(store, before=sample_dao, after=sample_dao) is None
    assert len(store) == 0


async def test_mark_read_is_idempotent_and_limited_to_recipients():
    store = _store()
    targeted = store.add(NotificationType.TASK_NOTIFICATION, "Tâche", "Corps", recipients=["u-lead"])
    store.broadcast(NotificationType.SYSTEM, "Info", "Corps")

    assert store.mark_read("u-bob", targeted.id) is False
    assert store.mark_read("u-lead", targeted.id) is True
    assert store.mark_read("u-lead", targeted.id) is True
    assert store.mark_read("u-lead", "srv_notif_unknown") is False
    assert [view.read for view in store.list_for_user("u-lead")] == [False, True]

    assert store.mark_all_read("u-lead") == 1
    assert store.mark_all_read("u-lead") == 0
    assert [view.title for view in store.list_for_user("u-bob")] == ["Info"]


async def test_add_validates_type_and_recipients():
    store = _store()

    with pytest.raises(ValueError):
        store.add(NotificationType.SYSTEM, "Titre", "Corps", recipients=[])
    with pytest.raises(ValueError):
        store.add("not_a_type", "Titre", "Corps")

    single = store.add("system", "Titre", "Corps", recipients="u-bob")
    assert single.recipients == ("u-bob",)


async def test_store_keeps_only_the_most_recent_items():
    store = _store(max_items=3)

    created = [store.broadcast(NotificationType.SYSTEM, f"N{index}", "Corps") for index in range(5)]

    assert len(store) == 3
    assert store.get(created[0].id) is None
    assert store.get(created[-1].id) is created[-1]


async def test_listing_returns_at_most_two_hundred_newest_notifications():
    store = _store(max_items=300)

    for index in range(250):
        store.broadcast(NotificationType.SYSTEM, f"N{index}", "Corps")

    views = store.list_for_user("u-bob")
    assert len(store) == 250
    assert len(views) == 200
    assert views[0].title == "N249"
    assert views[-1].title == "N50"


async def test_pending_email_does_not_hold_back_later_notifications():
    """Realtime pushes keep flowing while an earlier email is still being delivered."""

    mirror = BlockingMirror()
    publisher = RecordingPublisher()
    store = _store(mirror=mirror, publisher=publisher)
    store.start()
    try:
        store.broadcast(NotificationType.SYSTEM, "A", "Corps")
        store.broadcast(NotificationType.SYSTEM, "B", "Corps")

        with anyio.fail_after(2):
            while publisher.published != ["A", "B"]:
                await anyio.sleep(0.01)
        assert mirror.delivered == []
    finally:
        mirror.release.set()
        await store.shutdown()

    assert mirror.delivered == ["A", "B"]


async def test_broadcast_all_widens_targeted_notifications(caplog):
    store = _store(broadcast_all=True)

    with caplog.at_level(logging.WARNING):
        notification = store.add(NotificationType.SYSTEM, "Titre", "Corps", recipients=["u-lead"])

    assert notification.is_broadcast
    assert "EMAIL_BROADCAST_ALL" in caplog.text


async def test_skip_flag_prevents_email_mirroring(users):
    tasks = BackgroundTaskQueue()
    delivery = FakeDelivery()
    store = _store(tasks, mirror=_mirror(delivery, users))

    store.broadcast(NotificationType.SYSTEM, "Titre", "Corps", {"skip_email_mirror": True})
    assert store.pending == 0
    await store.drain()

    assert delivery.calls == []


async def test_targeted_mirror_ignores_unusable_users(users, caplog):
    delivery = FakeDelivery()
    store = _store()
    notification = store.add(
        NotificationType.TASK_NOTIFICATION,
        "Tâche",
        "Corps",
        recipients=["u-broken", "u-missing", "u-bob"],
    )

    with caplog.at_level(logging.WARNING):
        summary = await _mirror(delivery, users).deliver(notification)

    assert summary.sent == 1
    assert delivery.calls[0][0] == ["bob@dao.test"]
    assert "u-broken" in caplog.text
    assert "u-missing" in caplog.text


async def test_mirror_retries_transient_failures(users):
    transient = EmailDeliveryError("Connection reset", code="ECONNRESET")
    delivery = FakeDelivery([transient, transient])
    sleep = Recorder()
    store = _store()
    notification = store.broadcast(NotificationType.SYSTEM, "Titre", "Corps")

    summary = await _mirror(delivery, users, sleep=sleep).deliver(notification)

    assert len(delivery.calls) == 3
    assert summary.sent == summary.attempted
    assert sleep.sleeps == [0.2, 0.4]


async def test_mirror_does_not_retry_permanent_failures(users):
    delivery = FakeDelivery(always=EmailDeliveryError("Denied", code="535", permanent=True))
    store = _store()
    notification = store.broadcast(NotificationType.SYSTEM, "Titre", "Corps")

    with pytest.raises(EmailDeliveryError):
        await _mirror(delivery, users).deliver(notification)

    assert len(delivery.calls) == 1


async def test_mirror_failure_raises_one_system_notification_per_cooldown(users, caplog):
    """A failed mirror is reported to everybody once, with a message free of provider details."""

    failure = EmailDeliveryError(
        "554 5.7.1 daily limit on the number of allowed outgoing messages was exceeded",
        code="554",
        permanent=True,
        summary=DeliverySummary(subject="Tâche", attempted=1, failed=1),
    )
    tasks = BackgroundTaskQueue()
    delivery = FakeDelivery(always=failure)
    now = [0.0]
    store = _store(
        tasks,
        mirror=_mirror(delivery, users),
        cooldown=ErrorNotificationCooldown(600.0, clock=lambda: now[0]),
    )

    with caplog.at_level(logging.INFO):
        store.add(NotificationType.TASK_NOTIFICATION, "Tâche", "Corps", recipients=["u-bob"])
        await store.drain()
        store.add(NotificationType.TASK_NOTIFICATION, "Tâche", "Corps", recipients=["u-bob"])
        await store.drain()

    errors = [view for view in store.list_for_user("u-admin") if view.title == EMAIL_ERROR_TITLE]
    assert len(errors) == 1
    assert errors[0].message == QUOTA_MESSAGE
    assert errors[0].data["skip_email_mirror"] is True
    assert errors[0].data["code"] == "554"
    assert len(delivery.calls) == 2
    assert "bob@dao.test" not in caplog.text
    assert "suppressed" in caplog.text

    now[0] = 601.0
    store.add(NotificationType.TASK_NOTIFICATION, "Tâche", "Corps", recipients=["u-bob"])
    await store.drain()

    errors = [view for view in store.list_for_user("u-admin") if view.title == EMAIL_ERROR_TITLE]
    assert len(errors) == 2


async def test_notifications_survive_a_restart(tmp_path):
    """Created notifications and read markers are restored from the database."""

    engine = build_engine(f"sqlite:///{tmp_path / 'notifications.db'}")
    initialize_database(engine)
    factory = create_session_factory(engine)
    try:
        tasks = BackgroundTaskQueue()
        store = _store(tasks, session_factory=factory)
        first = store.broadcast(NotificationType.SYSTEM, "Premier", "Corps", {"code": 1})
        second = store.add(NotificationType.SYSTEM, "Second", "Corps", recipients=["u-lead"])
        store.mark_read("u-lead", first.id)
        await tasks.drain()

        restarted = _store(session_factory=factory)
        assert await restarted.restore() == 2

        restored_first = restarted.get(first.id)
        assert restored_first.data == {"code": 1}
        assert restored_first.read_by == {"u-lead"}
        assert restarted.get(second.id).recipients == ("u-lead",)
        assert restarted.list_for_user("u-bob")[0].id == first.id

        store.clear_all()
        await tasks.drain()
        assert await _store(session_factory=factory).restore() == 0
    finally:
        engine.dispose()
