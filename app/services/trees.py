# backend/app/services/trees.py
# Arbres gagnés par réduction d'émissions : calculs purs et attribution mensuelle (compteur monotone).

from __future__ import annotations

import datetime as dt
import math
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import InvalidInputError, NotFoundError
from app.core.logging_config import get_loggers
from app.core.utils import as_utc, utcnow

KG_PER_TREE = 10
TREE_EMOJI = "\N{DECIDUOUS TREE}"

DIFFICULTY_TREES = {"Easy": 1, "Medium": 3, "Hard": 5}


def monthly_trees_from_savings(target_emission: float, actual_emission: float) -> int:
    """Arbres gagnés sur un mois.

    Description:
        1 arbre par tranche complète de 10 kg CO2e sous l'objectif mensuel ;
        aucune économie (ou dépassement) -> 0.

    Args:
        target_emission (float): Objectif mensuel (kg CO2e).
        actual_emission (float): Émissions réelles du mois.

    Returns:
        int: Nombre d'arbres (≥ 0).
    """
    savings = target_emission - actual_emission
    if savings <= 0:
        return 0
    return math.floor(savings / KG_PER_TREE)


def validate_tree_inputs(target_emission: float, actual_emission: float) -> None:
    """Vérifie que les deux émissions sont des nombres finis positifs.

    Raises:
        InvalidInputError: Valeur négative ou non finie.
    """
    if not math.isfinite(target_emission) or not math.isfinite(actual_emission):
        raise InvalidInputError("Emissions must be valid numbers")
    if target_emission < 0 or actual_emission < 0:
        raise InvalidInputError("Emissions cannot be negative")


def difficulty_based_trees(difficulty: str) -> int:
    """Arbres offerts par défaut à la réussite d'un challenge."""
    return DIFFICULTY_TREES.get(difficulty, 0)


def tree_earning_message(tree_count: int, reason: str) -> str | None:
    """Message utilisateur pour des arbres gagnés (None si aucun arbre)."""
    if tree_count <= 0:
        return None
    tree_text = "tree" if tree_count == 1 else "trees"
    emojis = TREE_EMOJI * min(tree_count, 5)
    if reason == "savings":
        return (
            f"Congratulations! You earned {tree_count} {tree_text} {emojis} "
            "by staying under your monthly target. Keep reducing emissions!"
        )
    if reason == "challenge":
        return f"Challenge completed! You earned {tree_count} {tree_text} {emojis} for your achievement!"
    return f"You earned {tree_count} {tree_text} {emojis}!"


def previous_month_bounds(now: dt.datetime) -> tuple[dt.datetime, dt.datetime, str]:
    """Bornes [début, fin[ du mois précédent `now` (UTC) et sa clé YYYY-MM."""
    now = as_utc(now)
    first_of_current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_month_end = first_of_current
    last_month_start = (first_of_current - dt.timedelta(days=1)).replace(day=1)
    return last_month_start, last_month_end, last_month_start.strftime("%Y-%m")


class TreeRewardService:
    """Attribution des arbres mensuels.

    Description:
        `users.total_trees` n'est jamais décrémenté : l'attribution se fait
        uniquement par `$inc` d'une valeur positive, une seule fois par mois
        (garde `awarded_tree_periods`).
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.logger, _, _ = get_loggers()

    async def monthly_emission(self, user_id: ObjectId, start: dt.datetime, end: dt.datetime) -> float:
        """Somme des émissions d'un utilisateur sur [start, end[."""
        pipeline = [
            {"$match": {"user_id": user_id, "date": {"$gte": start, "$lt": end}}},
            {"$group": {"_id": None, "total": {"$sum": "$emission"}}},
        ]
        rows = await self.db.activities.aggregate(pipeline).to_list(length=None)
        return float(rows[0]["total"]) if rows else 0.0

    async def award_previous_month(self, user_id: ObjectId, now: dt.datetime | None = None) -> dict[str, Any]:
        """Attribue les arbres du mois écoulé à l'utilisateur.

        Args:
            user_id: Identifiant utilisateur.
            now: Instant de référence (défaut : maintenant, UTC).

        Returns:
            dict: `period`, `trees_awarded`, `total_trees`, `message`, `already_awarded`.

        Raises:
            NotFoundError: Utilisateur inconnu.
        """
        now = now or utcnow()
        start, end, period = previous_month_bounds(now)

        user = await self.db.users.find_one({"_id": user_id})
        if user is None:
            raise NotFoundError("User not found")

        if period in (user.get("awarded_tree_periods") or []):
            return {
                "period": period,
                "trees_awarded": 0,
                "total_trees": user.get("total_trees", 0),
                "message": None,
                "already_awarded": True,
            }

        actual = await self.monthly_emission(user_id, start, end)
        target = float(user.get("target_emission", 100))
        validate_tree_inputs(target, actual)
        trees = monthly_trees_from_savings(target, actual)

        update: dict[str, Any] = {
            "$addToSet": {"awarded_tree_periods": period},
            "$set": {"updated_at": utcnow()},
        }
        if trees > 0:
            update["$inc"] = {"total_trees": trees}
        # Garde atomique : un second appel concurrent ne matche plus
        result = await self.db.users.update_one(
            {"_id": user_id, "awarded_tree_periods": {"$ne": period}}, update
        )
        if result.modified_count == 0:
            trees = 0

        refreshed = await self.db.users.find_one({"_id": user_id}) or user
        self.logger.info(f"Trees awarded user={user_id} period={period} trees={trees}")
        return {
            "period": period,
            "trees_awarded": trees,
            "total_trees": refreshed.get("total_trees", 0),
            "message": tree_earning_message(trees, "savings"),
            "already_awarded": result.modified_count == 0,
        }
