# backend/app/api/dto/dashboard.py
# DTOs du tableau de bord et de l'attribution mensuelle d'arbres.

from __future__ import annotations

from pydantic import BaseModel, Field


class CategoryBreakdownItem(BaseModel):
    category: str
    total_emission: float
    count: int
    percentage: float


class DashboardSummary(BaseModel):
    total_emission: float
    target_emission: float
    daily_average: float
    total_trees: int
    pending_monthly_trees: int = 0


class ChartData(BaseModel):
    labels: list[str]
    data: list[float]


class DashboardOut(BaseModel):
    """Réponse de `GET /dashboard`."""

    summary: DashboardSummary
    chart_data: ChartData
    category_breakdown: list[CategoryBreakdownItem] = Field(default_factory=list)


class ActivityStatsOut(BaseModel):
    """Réponse de `GET /activities/stats/summary`."""

    period: str
    total_emission: float
    total_activities: int
    category_breakdown: list[CategoryBreakdownItem] = Field(default_factory=list)


class TreeClaimOut(BaseModel):
    """Résultat d'une attribution d'arbres (mois précédent)."""

    period: str
    trees_awarded: int
    total_trees: int
    message: str | None = None
    already_awarded: bool
