# backend/app/api/routes/activities.py
# Routes du journal d'activités : création, lecture, modification, suppression et statistiques.

from __future__ import annotations

import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Response, status

from app.api.deps import Activities
from app.api.dto.dashboard import ActivityStatsOut
from app.core.bson_utils import PyObjectId
from app.core.security import CurrentUserId, get_current_user
from app.models.activity import ACTIVITY_CATEGORIES, ActivityCreate, ActivityOut, ActivityUpdate

router = APIRouter(
    prefix="/activities",
    tags=["activities"],
    dependencies=[Depends(get_current_user)],
)

ActivityId = Annotated[PyObjectId, Path(..., description="Identifiant de l'activité.")]


@router.post(
    "",
    response_model=ActivityOut,
    status_code=status.HTTP_201_CREATED,
    summary="Logger une activité",
    description=(
        "Enregistre une activité ; l'émission est calculée côté serveur depuis `input_data`.\n\n"
        "- `input_data.category` : Transportation | Food | Energy | Shopping\n"
        "- 400 `UNKNOWN_EMISSION_TYPE` si le sous-type est absent de la table"
    ),
)
async def create_activity(payload: ActivityCreate, user_id: CurrentUserId, service: Activities) -> ActivityOut:
    """Créer une activité.

    Args:
        payload (ActivityCreate): Données saisies.

    Returns:
        ActivityOut: Activité enregistrée avec son émission.
    """
    activity = await service.create_activity(user_id, payload)
    return ActivityOut(**activity.model_dump())


@router.get(
    "",
    response_model=list[ActivityOut],
    summary="Lister mes activités",
    description="Activités récentes (date décroissante), filtrables par catégorie et plage de dates.",
)
async def list_activities(
    user_id: CurrentUserId,
    service: Activities,
    category: str | None = Query(default=None, enum=list(ACTIVITY_CATEGORIES), description="Catégorie."),
    start_date: dt.datetime | None = Query(default=None, description="Début (UTC)."),
    end_date: dt.datetime | None = Query(default=None, description="Fin (UTC)."),
    limit: int = Query(50, ge=1, le=200, description="Nombre maximum d'éléments."),
) -> list[ActivityOut]:
    activities = await service.list_activities(user_id, category, start_date, end_date, limit)
    return [ActivityOut(**a.model_dump()) for a in activities]


@router.get(
    "/stats/summary",
    response_model=ActivityStatsOut,
    summary="Statistiques de mes activités",
    description=(
        "Totaux par catégorie sur une période.\n\n"
        "- `period` : weekly (7 jours glissants) | monthly | yearly\n"
        "- `start_date` + `end_date` remplacent la période si les deux sont fournies"
    ),
)
async def activity_stats(
    user_id: CurrentUserId,
    service: Activities,
    period: str = Query("weekly", enum=["weekly", "monthly", "yearly"], description="Période."),
    start_date: dt.datetime | None = Query(default=None),
    end_date: dt.datetime | None = Query(default=None),
) -> ActivityStatsOut:
    return ActivityStatsOut(**await service.get_stats(user_id, period, start_date, end_date))


@router.get("/{activity_id}", response_model=ActivityOut, summary="Détail d'une activité")
async def get_activity(activity_id: ActivityId, user_id: CurrentUserId, service: Activities) -> ActivityOut:
    activity = await service.get_activity(user_id, activity_id)
    return ActivityOut(**activity.model_dump())


@router.put(
    "/{activity_id}",
    response_model=ActivityOut,
    summary="Modifier une activité",
    description="Mise à jour partielle ; l'émission est recalculée si `input_data` change.",
)
async def update_activity(
    activity_id: ActivityId, payload: ActivityUpdate, user_id: CurrentUserId, service: Activities
) -> ActivityOut:
    activity = await service.update_activity(user_id, activity_id, payload)
    return ActivityOut(**activity.model_dump())


@router.delete(
    "/{activity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer une activité",
)
async def delete_activity(activity_id: ActivityId, user_id: CurrentUserId, service: Activities) -> Response:
    await service.delete_activity(user_id, activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
