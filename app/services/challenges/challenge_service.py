# backend/app/services/challenges/challenge_service.py
# Cycle de vie des challenges : création (titre unique), MAJ, suppression en cascade, inscription, lectures.

from __future__ import annotations

import datetime as dt
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from app.core.bson_utils import dump_mongo
from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.core.logging_config import get_loggers
from app.core.utils import utcnow
from app.models.challenge import Challenge, ChallengeCreate, ChallengeUpdate
from app.models.challenge_participant import ChallengeParticipant, ParticipationOut
from app.services.trees import difficulty_based_trees


class ChallengeService:
    """Service principal de gestion des challenges.

    Description:
        Le statut est dérivé de l'horloge à chaque écriture (sauf `cancelled`).
        Un titre ne peut exister qu'une fois parmi les challenges actifs ou à venir
        non terminés.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialiser le service.

        Args:
            db: Instance de base de données MongoDB.
        """
        self.db = db
        self.logger, _, _ = get_loggers()

    async def get_challenge(self, challenge_id: ObjectId, now: dt.datetime | None = None) -> Challenge:
        """Charger un challenge, statut rafraîchi.

        Raises:
            NotFoundError: Challenge inconnu.
        """
        doc = await self.db.challenges.find_one({"_id": challenge_id})
        if doc is None:
            raise NotFoundError("Challenge not found")
        return Challenge(**doc).refresh_status(now)

    async def _ensure_unique_title(
        self, title: str, now: dt.datetime, exclude_id: ObjectId | None = None
    ) -> None:
        query: dict[str, Any] = {
            "title": title.strip(),
            "status": {"$in": ["active", "upcoming"]},
            "end_date": {"$gte": now},
        }
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await self.db.challenges.find_one(query) is not None:
            raise ConflictError(
                "A challenge with this title already exists (active or upcoming). "
                "Please choose a different title."
            )

    async def create_challenge(
        self, payload: ChallengeCreate, created_by: ObjectId, now: dt.datetime | None = None
    ) -> Challenge:
        """Créer un challenge (admin).

        Raises:
            ConflictError: Titre déjà pris par un challenge actif/à venir.
            InvalidInputError: Dates incohérentes.
        """
        now = now or utcnow()
        await self._ensure_unique_title(payload.title, now)

        data = payload.model_dump()
        if data["rewards"].get("trees") is None:
            data["rewards"]["trees"] = difficulty_based_trees(payload.difficulty)
        try:
            challenge = Challenge(**data, created_by=created_by, created_at=now)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid challenge: {e.errors()[0]['msg']}") from e
        challenge.refresh_status(now)

        result = await self.db.challenges.insert_one(dump_mongo(challenge))
        challenge.id = result.inserted_id
        self.logger.info(f"Challenge created id={challenge.id} title={challenge.title!r} status={challenge.status}")
        return challenge

    async def update_challenge(
        self, challenge_id: ObjectId, payload: ChallengeUpdate, now: dt.datetime | None = None
    ) -> Challenge:
        """Mettre à jour un challenge (admin) ; le statut est recalculé.

        Raises:
            NotFoundError: Challenge inconnu.
            ConflictError: Nouveau titre déjà pris.
            InvalidInputError: Fusion invalide (dates...).
        """
        now = now or utcnow()
        current = await self.get_challenge(challenge_id, now)
        changes = payload.model_dump(exclude_unset=True)
        if "title" in changes and changes["title"] is not None:
            changes["title"] = changes["title"].strip()
            if changes["title"] != current.title:
                await self._ensure_unique_title(changes["title"], now, exclude_id=challenge_id)

        merged = current.model_dump(exclude={"id"})
        merged.update({key: value for key, value in changes.items() if value is not None or key == "max_participants"})
        try:
            updated = Challenge(**merged, _id=challenge_id)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid challenge update: {e.errors()[0]['msg']}") from e
        updated.refresh_status(now)
        updated.updated_at = now

        doc = dump_mongo(updated, exclude_none=False)
        doc.pop("_id", None)
        await self.db.challenges.update_one({"_id": challenge_id}, {"$set": doc})
        return updated

    async def delete_challenge(self, challenge_id: ObjectId) -> int:
        """Supprimer un challenge et ses participations.

        Returns:
            int: Nombre de participations supprimées.

        Raises:
            NotFoundError: Challenge inconnu.
        """
        result = await self.db.challenges.delete_one({"_id": challenge_id})
        if result.deleted_count == 0:
            raise NotFoundError("Challenge not found")
        participants = await self.db.challenge_participants.delete_many({"challenge_id": challenge_id})
        self.logger.info(
            f"Challenge deleted id={challenge_id} participants_removed={participants.deleted_count}"
        )
        return participants.deleted_count

    async def join_challenge(
        self, challenge_id: ObjectId, user_id: ObjectId, now: dt.datetime | None = None
    ) -> ChallengeParticipant:
        """Inscrire l'utilisateur à un challenge.

        Raises:
            NotFoundError: Challenge inconnu.
            ConflictError: Challenge terminé/annulé, complet ou déjà rejoint.
        """
        now = now or utcnow()
        challenge = await self.get_challenge(challenge_id, now)
        if challenge.status in ("completed", "cancelled"):
            raise ConflictError("Cannot join completed or cancelled challenge")

        existing = await self.db.challenge_participants.find_one(
            {"user_id": user_id, "challenge_id": challenge_id}
        )
        if existing is not None:
            raise ConflictError("Already joined this challenge")

        if challenge.max_participants and challenge.total_participants >= challenge.max_participants:
            raise ConflictError("Challenge is full")

        participant = ChallengeParticipant(
            user_id=user_id, challenge_id=challenge_id, joined_at=now, created_at=now
        )
        try:
            result = await self.db.challenge_participants.insert_one(dump_mongo(participant))
        except DuplicateKeyError as e:
            raise ConflictError("Already joined this challenge") from e
        participant.id = result.inserted_id

        await self.db.challenges.update_one(
            {"_id": challenge_id}, {"$inc": {"total_participants": 1}, "$set": {"updated_at": now}}
        )
        self.logger.info(f"User {user_id} joined challenge {challenge_id}")
        return participant

    async def get_participation(self, challenge_id: ObjectId, user_id: ObjectId) -> ParticipationOut | None:
        """Participation de l'utilisateur (ou None)."""
        doc = await self.db.challenge_participants.find_one(
            {"user_id": user_id, "challenge_id": challenge_id}
        )
        if doc is None:
            return None
        return ParticipationOut(**ChallengeParticipant(**doc).model_dump())

    async def list_active(self, now: dt.datetime | None = None) -> list[Challenge]:
        """Challenges en cours (fenêtre contenant `now`, non annulés)."""
        now = now or utcnow()
        docs = await self.db.challenges.find(
            {"status": {"$ne": "cancelled"}, "start_date": {"$lte": now}, "end_date": {"$gte": now}}
        ).sort("end_date", 1).to_list(length=None)
        return [Challenge(**doc).refresh_status(now) for doc in docs]

    async def list_upcoming(self, limit: int = 5, now: dt.datetime | None = None) -> list[Challenge]:
        """Prochains challenges (début > now), du plus proche au plus lointain."""
        now = now or utcnow()
        docs = await self.db.challenges.find(
            {"status": {"$ne": "cancelled"}, "start_date": {"$gt": now}}
        ).sort("start_date", 1).limit(limit).to_list(length=limit)
        return [Challenge(**doc).refresh_status(now) for doc in docs]
