# backend/app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import routers
from app.core.exception_handlers import register_exception_handlers
from app.core.settings import get_settings
from app.db.seed_indexes import ensure_indexes

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- startup ---
    if settings.seed_indexes_on_startup:
        await ensure_indexes()

    yield  # l'app tourne ici

    # --- shutdown ---
    # rien pour le moment


app = FastAPI(title=f"{settings.app_name} API", version=settings.api_version, lifespan=lifespan)
register_exception_handlers(app)

for r in routers:
    app.include_router(r)
