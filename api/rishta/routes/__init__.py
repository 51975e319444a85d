from fastapi import APIRouter, FastAPI

from .admin import router as admin_router, scaffold_router as admin_scaffold_router
from .declined import router as declined_router, scaffold_router as declined_scaffold_router
from .interests import router as interests_router, scaffold_router as interests_scaffold_router
from .match import router as match_router, scaffold_router as match_scaffold_router
from .notifications import router as notifications_router, scaffold_router as notifications_scaffold_router
from .profile import router as profile_router, scaffold_router as profile_scaffold_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(profile_router, tags=["profiles"])
    app.include_router(match_router, tags=["matches"])
    app.include_router(interests_router, tags=["interests"])
    app.include_router(declined_router, tags=["declined"])
    app.include_router(notifications_router, tags=["notifications"])
    app.include_router(admin_router, tags=["admin"])

    app.include_router(profile_scaffold_router, prefix="/_scaffold/profile", tags=["scaffold-profile"])
    app.include_router(match_scaffold_router, prefix="/_scaffold/match", tags=["scaffold-match"])
    app.include_router(interests_scaffold_router, prefix="/_scaffold/interests", tags=["scaffold-interests"])
    app.include_router(declined_scaffold_router, prefix="/_scaffold/declined", tags=["scaffold-declined"])
    app.include_router(notifications_scaffold_router, prefix="/_scaffold/notifications", tags=["scaffold-notifications"])
    app.include_router(admin_scaffold_router, prefix="/_scaffold/admin", tags=["scaffold-admin"])


__all__ = ["include_modular_routers", "APIRouter"]
