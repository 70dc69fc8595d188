# backend/app/api/routes/__init__.py

from .base import router as base_router
from .health import router as health_router
from .factors import router as factors_router
from .activities import router as activities_router
from .challenges import router as challenges_router
from .quizzes import router as quizzes_router
from .dashboard import router as dashboard_router
from .onboarding import router as onboarding_router

routers = [
    base_router,
    health_router,
    factors_router,
    activities_router,
    challenges_router,
    quizzes_router,
    dashboard_router,
    onboarding_router,
]
