from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from daonotify.config import Settings, get_settings
from daonotify.domain.ports import DaoRepository, UserDirectory
from daonotify.infrastructure.background import BackgroundTaskQueue
from daonotify.infrastructure.database import (
    build_engine,
    create_session_factory,
    initialize_database,
)
from daonotify.infrastructure.email import EmailDeliveryService
from daonotify.infrastructure.notifications import (
    EmailMirror,
    EmailRecipientResolver,
    ErrorNotificationCooldown,
    NotificationConnectionManager,
    NotificationPublisher,
    NotificationStore,
)
from daonotify.infrastructure.repositories import (
    AutoUserAuditLog,
    InMemoryDaoRepository,
    InMemoryUserDirectory,
)
from daonotify.interfaces.api.routes import register_routes


def create_app(
    settings: Settings | None = None,
    *,
    users: UserDirectory | None = None,
    daos: DaoRepository | None = None,
    delivery: EmailDeliveryService | None = None,
) -> FastAPI:
    """Crée et configure l'application FastAPI avec ses services."""

    settings = settings or get_settings()
    users = users if users is not None else InMemoryUserDirectory()
    daos = daos if daos is not None else InMemoryDaoRepository()
    delivery = delivery or EmailDeliveryService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Restaure la file d'emails et les notifications, puis libère les ressources."""

        engine = None
        session_factory = None
        if settings.notifications_database_url:
            engine = build_engine(settings.notifications_database_url)
            initialize_database(engine)
            session_factory = create_session_factory(engine)

        manager = NotificationConnectionManager()
        resolver = EmailRecipientResolver(users, daos, admin_email=settings.admin_email)
        store = NotificationStore(
            tasks=BackgroundTaskQueue(),
            mirror_tasks=BackgroundTaskQueue(),
            max_items=settings.notifications_max_items,
            mirror=EmailMirror(delivery, resolver),
            session_factory=session_factory,
            publisher=NotificationPublisher(manager),
            broadcast_all=settings.email_broadcast_all,
            cooldown=ErrorNotificationCooldown(settings.error_notify_interval_s),
        )

        app.state.settings = settings
        app.state.user_directory = users
        app.state.dao_repository = daos
        app.state.email_delivery = delivery
        app.state.connection_manager = manager
        app.state.notification_store = store
        app.state.auto_user_audit = AutoUserAuditLog()

        await delivery.init()
        store.start()
        await store.restore()
        try:
            yield
        finally:
            await store.shutdown()
            await delivery.shutdown()
            if engine is not None:
                engine.dispose()

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
