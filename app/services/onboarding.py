# backend/app/services/onboarding.py
# Parcours d'onboarding : statut, validation d'étape (objectif mensuel) et abandon.

from __future__ import annotations

from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.core.utils import utcnow
from app.models.user import ONBOARDING_STEPS, User


class OnboardingService:
    """Service d'onboarding utilisateur."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def _get_user(self, user_id: ObjectId) -> User:
        doc = await self.db.users.find_one({"_id": user_id})
        if doc is None:
            raise NotFoundError("User not found")
        return User(**doc)

    async def get_status(self, user_id: ObjectId) -> dict[str, Any]:
        """Étapes faites et restantes."""
        user = await self._get_user(user_id)
        done = {step.step_id for step in user.onboarding_steps}
        return {
            "completed": user.onboarding_completed,
            "completed_steps": [step.model_dump() for step in user.onboarding_steps],
            "remaining_steps": [step for step in ONBOARDING_STEPS if step not in done],
            "total_steps": len(ONBOARDING_STEPS),
        }

    async def complete_step(
        self, user_id: ObjectId, step_id: str, target_emission: float | None = None
    ) -> dict[str, Any]:
        """Valider une étape.

        Description:
            L'étape `set_target` met aussi à jour l'objectif mensuel si fourni.
            L'onboarding est marqué terminé quand toutes les étapes sont faites.

        Raises:
            InvalidInputError: Étape inconnue ou objectif négatif.
            NotFoundError: Utilisateur inconnu.
            ConflictError: Étape déjà validée.
        """
        if step_id not in ONBOARDING_STEPS:
            raise InvalidInputError("Step ID must be one of: " + ", ".join(ONBOARDING_STEPS))
        user = await self._get_user(user_id)
        done = {step.step_id for step in user.onboarding_steps}
        if step_id in done:
            raise ConflictError("Step already completed")

        done.add(step_id)
        completed = all(step in done for step in ONBOARDING_STEPS)
        now = utcnow()
        update: dict[str, Any] = {
            "$push": {"onboarding_steps": {"step_id": step_id, "completed_at": now}},
            "$set": {"onboarding_completed": completed, "updated_at": now},
        }
        if step_id == "set_target" and target_emission is not None:
            if target_emission < 0:
                raise InvalidInputError("Target emission cannot be negative")
            update["$set"]["target_emission"] = target_emission

        await self.db.users.update_one({"_id": user_id}, update)
        return {"step_id": step_id, "onboarding_completed": completed}

    async def skip(self, user_id: ObjectId) -> dict[str, Any]:
        """Marquer l'onboarding comme terminé sans faire les étapes."""
        result = await self.db.users.update_one(
            {"_id": user_id}, {"$set": {"onboarding_completed": True, "updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError("User not found")
        return {"onboarding_completed": True}
