# backend/app/api/routes/health.py
# Health check : statut global de l'API et de ses dépendances.

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from app.core.health_checks import check_mongodb
from app.core.settings import get_settings
from app.core.utils import utcnow
from app.models.base.health import HealthCheck

settings = get_settings()

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthCheck,
    summary="Health check de l'API",
    description="Retourne le statut de l'API et de ses dépendances (BDD).",
)
async def health() -> JSONResponse:
    """
    Health check endpoint standard

    Vérifie :
    - MongoDB

    Returns:
        200 si tout OK, 503 si un service est down
    """
    checks = {
        "database": await check_mongodb(),
    }

    has_errors = any(check != "ok" for check in checks.values())
    overall_status = "degraded" if has_errors else "ok"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE if has_errors else status.HTTP_200_OK

    response = HealthCheck(
        status=overall_status,
        timestamp=utcnow(),
        version=settings.api_version,
        checks=checks,
    )

    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))
