# backend/app/services/dashboard.py
# Tableau de bord : total et moyenne journalière, arbres, répartition par catégorie et série temporelle.

from __future__ import annotations

import calendar
import datetime as dt
import math
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import NotFoundError
from app.core.utils import as_utc, round_emission, utcnow
from app.services.activities import ActivityService, date_filter
from app.services.trees import monthly_trees_from_savings

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def chart_labels(period: str, now: dt.datetime) -> list[str]:
    """Libellés de l'axe X : 7 derniers jours, jours du mois courant ou mois de l'année."""
    now = as_utc(now)
    if period == "yearly":
        return list(MONTH_LABELS)
    if period == "monthly":
        days = calendar.monthrange(now.year, now.month)[1]
        return [dt.date(now.year, now.month, day).isoformat() for day in range(1, days + 1)]
    return [(now - dt.timedelta(days=offset)).date().isoformat() for offset in range(6, -1, -1)]


def bucket_key(period: str, date: dt.datetime) -> str:
    """Clé de regroupement d'une activité, alignée sur `chart_labels`."""
    date = as_utc(date)
    if period == "yearly":
        return MONTH_LABELS[date.month - 1]
    return date.date().isoformat()


class DashboardService:
    """Agrégation des données du tableau de bord utilisateur."""

    def __init__(self, db: AsyncIOMotorDatabase, activities: ActivityService):
        self.db = db
        self.activities = activities

    async def chart_data(
        self, user_id: ObjectId, date_range: dict[str, Any], period: str, now: dt.datetime
    ) -> dict[str, list]:
        """Série temporelle des émissions alignée sur les libellés de la période."""
        labels = chart_labels(period, now)
        docs = await self.db.activities.find(
            {"user_id": user_id, "date": date_range}, {"emission": 1, "date": 1}
        ).to_list(length=None)

        totals: dict[str, float] = {}
        for doc in docs:
            key = bucket_key(period, doc["date"])
            totals[key] = totals.get(key, 0.0) + float(doc.get("emission", 0))
        return {"labels": labels, "data": [round_emission(totals.get(label, 0.0)) for label in labels]}

    async def get_dashboard(
        self,
        user_id: ObjectId,
        period: str = "weekly",
        start_date: dt.datetime | None = None,
        end_date: dt.datetime | None = None,
        now: dt.datetime | None = None,
    ) -> dict[str, Any]:
        """Données du tableau de bord.

        Description:
            - total de la période et moyenne journalière (jours entamés depuis le début)
            - arbres : total acquis, plus la proposition du mois en cours en vue mensuelle
            - répartition par catégorie et série pour le graphique

        Raises:
            NotFoundError: Utilisateur inconnu.
            InvalidInputError: Période inconnue ou plage incohérente.
        """
        now = now or utcnow()
        user = await self.db.users.find_one({"_id": user_id})
        if user is None:
            raise NotFoundError("User not found")

        date_range = date_filter(period, now, start_date, end_date)
        breakdown = await self.activities.category_breakdown(user_id, date_range)
        total_emission = round_emission(sum(item["total_emission"] for item in breakdown))

        period_days = math.ceil((now - date_range["$gte"]).total_seconds() / 86400)
        daily_average = round_emission(total_emission / period_days) if period_days > 0 else 0

        target = float(user.get("target_emission", 0) or 0)
        total_trees = int(user.get("total_trees", 0))
        monthly_trees = 0
        if period == "monthly" and target > 0:
            monthly_trees = monthly_trees_from_savings(target, total_emission)

        return {
            "summary": {
                "total_emission": total_emission,
                "target_emission": target,
                "daily_average": daily_average,
                "total_trees": total_trees + monthly_trees,
                "pending_monthly_trees": monthly_trees,
            },
            "chart_data": await self.chart_data(user_id, date_range, period, now),
            "category_breakdown": breakdown,
        }
