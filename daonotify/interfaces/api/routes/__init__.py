from fastapi import FastAPI

from .health import router as health_router
from .notifications import router as notifications_router


def register_routes(app: FastAPI) -> None:
    """Enregistre tous les routeurs de l'API dans l'application FastAPI."""

    app.include_router(notifications_router)
    app.include_router(health_router)
