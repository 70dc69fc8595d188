# backend/app/services/activities.py
# Journal d'activités : création/MAJ avec recalcul d'émission, suppression, lectures et statistiques par catégorie.

from __future__ import annotations

import datetime as dt
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.bson_utils import dump_mongo
from app.core.errors import InvalidInputError, NotFoundError
from app.core.logging_config import get_loggers
from app.core.utils import as_utc, round_emission, utcnow
from app.models.activity import Activity, ActivityCreate, ActivityUpdate
from app.services.emissions.emission_calculator import EmissionCalculator

PERIODS = ("weekly", "monthly", "yearly")


def period_start(period: str, now: dt.datetime) -> dt.datetime:
    """Début de période (UTC) : 7 jours glissants, début du mois ou de l'année.

    Raises:
        InvalidInputError: Période inconnue.
    """
    now = as_utc(now)
    if period == "weekly":
        return now - dt.timedelta(days=7)
    if period == "monthly":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if period == "yearly":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    raise InvalidInputError(f"Unknown period: {period}")


def date_filter(
    period: str, now: dt.datetime, start_date: dt.datetime | None = None, end_date: dt.datetime | None = None
) -> dict[str, dt.datetime]:
    """Filtre Mongo sur `date` : plage explicite si complète, sinon période."""
    if start_date and end_date:
        if as_utc(end_date) < as_utc(start_date):
            raise InvalidInputError("End date must be after start date")
        return {"$gte": as_utc(start_date), "$lte": as_utc(end_date)}
    return {"$gte": period_start(period, now)}


class ActivityService:
    """Service du journal d'activités.

    Description:
        L'émission et le libellé sont toujours dérivés du payload par le calculateur
        injecté. Le cumul `users.total_emission` suit les créations/MAJ/suppressions.
    """

    def __init__(self, db: AsyncIOMotorDatabase, calculator: EmissionCalculator):
        """Initialiser le service.

        Args:
            db: Instance de base de données MongoDB.
            calculator: Calculateur d'émissions.
        """
        self.db = db
        self.calculator = calculator
        self.logger, _, _ = get_loggers()

    async def _adjust_user_total(self, user_id: ObjectId, delta: float) -> None:
        if delta:
            await self.db.users.update_one(
                {"_id": user_id}, {"$inc": {"total_emission": round_emission(delta)}}
            )

    async def create_activity(self, user_id: ObjectId, payload: ActivityCreate) -> Activity:
        """Logger une activité (émission calculée).

        Raises:
            UnknownEmissionTypeError: Sous-type inconnu.
        """
        now = utcnow()
        emission = self.calculator.calculate_input(payload.input_data)
        activity = Activity(
            user_id=user_id,
            category=payload.input_data.category,
            details=self.calculator.describe(payload.input_data),
            note=payload.note,
            emission=emission,
            date=as_utc(payload.date) if payload.date else now,
            input_data=payload.input_data,
            created_at=now,
        )
        result = await self.db.activities.insert_one(dump_mongo(activity))
        activity.id = result.inserted_id
        await self._adjust_user_total(user_id, emission)
        self.logger.info(f"Activity logged user={user_id} category={activity.category} emission={emission}")
        return activity

    async def get_activity(self, user_id: ObjectId, activity_id: ObjectId) -> Activity:
        """Activité de l'utilisateur.

        Raises:
            NotFoundError: Inconnue ou appartenant à un autre utilisateur.
        """
        doc = await self.db.activities.find_one({"_id": activity_id, "user_id": user_id})
        if doc is None:
            raise NotFoundError("Activity not found")
        return Activity(**doc)

    async def update_activity(
        self, user_id: ObjectId, activity_id: ObjectId, payload: ActivityUpdate
    ) -> Activity:
        """Modifier une activité ; émission et libellé recalculés si le payload change."""
        current = await self.get_activity(user_id, activity_id)
        updated = current.model_copy(deep=True)

        if payload.input_data is not None and payload.input_data != current.input_data:
            updated.input_data = payload.input_data
            updated.category = payload.input_data.category
            updated.emission = self.calculator.calculate_input(payload.input_data)
            updated.details = self.calculator.describe(payload.input_data)
        if "note" in payload.model_fields_set:
            updated.note = payload.note
        if payload.date is not None:
            updated.date = as_utc(payload.date)
        updated.updated_at = utcnow()

        doc = dump_mongo(updated, exclude_none=False)
        doc.pop("_id", None)
        await self.db.activities.update_one({"_id": activity_id, "user_id": user_id}, {"$set": doc})
        await self._adjust_user_total(user_id, updated.emission - current.emission)
        return updated

    async def delete_activity(self, user_id: ObjectId, activity_id: ObjectId) -> None:
        """Supprimer une activité de l'utilisateur.

        Raises:
            NotFoundError: Inconnue ou appartenant à un autre utilisateur.
        """
        current = await self.get_activity(user_id, activity_id)
        await self.db.activities.delete_one({"_id": activity_id, "user_id": user_id})
        await self._adjust_user_total(user_id, -current.emission)

    async def list_activities(
        self,
        user_id: ObjectId,
        category: str | None = None,
        start_date: dt.datetime | None = None,
        end_date: dt.datetime | None = None,
        limit: int = 50,
    ) -> list[Activity]:
        """Activités récentes de l'utilisateur (date desc), filtrables."""
        query: dict[str, Any] = {"user_id": user_id}
        if category:
            query["category"] = category
        if start_date or end_date:
            query["date"] = {}
            if start_date:
                query["date"]["$gte"] = as_utc(start_date)
            if end_date:
                query["date"]["$lte"] = as_utc(end_date)
        docs = await self.db.activities.find(query).sort("date", -1).limit(limit).to_list(length=limit)
        return [Activity(**doc) for doc in docs]

    async def category_breakdown(self, user_id: ObjectId, date_range: dict[str, Any]) -> list[dict[str, Any]]:
        """Totaux par catégorie (desc) avec part en pourcentage."""
        pipeline = [
            {"$match": {"user_id": user_id, "date": date_range}},
            {"$group": {"_id": "$category", "total_emission": {"$sum": "$emission"}, "count": {"$sum": 1}}},
            {"$sort": {"total_emission": -1}},
        ]
        rows = await self.db.activities.aggregate(pipeline).to_list(length=None)
        grand_total = sum(row["total_emission"] for row in rows)
        return [
            {
                "category": row["_id"],
                "total_emission": round_emission(row["total_emission"]),
                "count": row["count"],
                "percentage": round_emission(row["total_emission"] / grand_total * 100) if grand_total > 0 else 0,
            }
            for row in rows
        ]

    async def get_stats(
        self,
        user_id: ObjectId,
        period: str = "weekly",
        start_date: dt.datetime | None = None,
        end_date: dt.datetime | None = None,
        now: dt.datetime | None = None,
    ) -> dict[str, Any]:
        """Statistiques d'activités sur une période."""
        now = now or utcnow()
        breakdown = await self.category_breakdown(user_id, date_filter(period, now, start_date, end_date))
        return {
            "period": period,
            "total_emission": round_emission(sum(item["total_emission"] for item in breakdown)),
            "total_activities": sum(item["count"] for item in breakdown),
            "category_breakdown": breakdown,
        }
