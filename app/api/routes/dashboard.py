# backend/app/api/routes/dashboard.py
# Tableau de bord utilisateur et attribution des arbres du mois écoulé.

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, Query

from app.api.deps import Dashboard, Trees
from app.api.dto.dashboard import DashboardOut, TreeClaimOut
from app.core.security import CurrentUserId, get_current_user

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "",
    response_model=DashboardOut,
    summary="Tableau de bord",
    description=(
        "Synthèse des émissions de l'utilisateur sur une période.\n\n"
        "- total, moyenne journalière, objectif mensuel\n"
        "- arbres gagnés (plus la proposition du mois courant en vue `monthly`)\n"
        "- répartition par catégorie et série pour le graphique"
    ),
)
async def get_dashboard(
    user_id: CurrentUserId,
    service: Dashboard,
    period: str = Query("weekly", enum=["weekly", "monthly", "yearly"], description="Période."),
    start_date: dt.datetime | None = Query(default=None),
    end_date: dt.datetime | None = Query(default=None),
) -> DashboardOut:
    """Données du tableau de bord.

    Args:
        period (str): weekly | monthly | yearly.
        start_date (datetime | None): Début explicite (avec `end_date`).
        end_date (datetime | None): Fin explicite.

    Returns:
        DashboardOut: Résumé, série et répartition.
    """
    return DashboardOut(**await service.get_dashboard(user_id, period, start_date, end_date))


@router.post(
    "/trees/claim",
    response_model=TreeClaimOut,
    summary="Attribuer les arbres du mois écoulé",
    description=(
        "Compare les émissions du mois précédent à l'objectif et crédite 1 arbre par 10 kg économisés.\n\n"
        "- Idempotent : un mois déjà crédité n'est jamais recompté"
    ),
)
async def claim_trees(user_id: CurrentUserId, service: Trees) -> TreeClaimOut:
    return TreeClaimOut(**await service.award_previous_month(user_id))
