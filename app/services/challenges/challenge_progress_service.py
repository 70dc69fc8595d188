# backend/app/services/challenges/challenge_progress_service.py
# Recalcul de la progression des participants d'un challenge actif (unitaire et en lot).

from __future__ import annotations

import asyncio
import datetime as dt
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, Field

from app.core.bson_utils import PyObjectId
from app.core.errors import ConflictError, NotFoundError
from app.core.logging_config import get_loggers
from app.core.settings import get_settings
from app.core.utils import utcnow
from app.models.challenge import Challenge
from app.models.challenge_participant import ChallengeParticipant

from .progress_calculator import (
    ProgressSnapshot,
    compute_baseline,
    compute_points,
    compute_progress,
    compute_saved,
    compute_streak,
)


class ParticipantProgressResult(BaseModel):
    """Issue du recalcul d'un participant."""

    participant_id: PyObjectId | None = None
    user_id: PyObjectId | None = None
    ok: bool
    emission_saved: float | None = None
    points: int | None = None
    progress: float | None = None
    error: str | None = None


class ProgressBatchReport(BaseModel):
    """Rapport d'un recalcul en lot."""

    challenge_id: PyObjectId
    total_participants: int
    updated: int
    failed: int
    total_emission_saved: float
    results: list[ParticipantProgressResult] = Field(default_factory=list)


class ChallengeProgressService:
    """Moteur de progression des challenges.

    Description:
        - baseline calculée une seule fois, paresseusement (30 dernières activités avant l'inscription)
        - émissions courantes = activités datées dans la fenêtre du challenge
        - points, progression et série recalculés à chaque passage
        Les participants sont traités en parallèle ; un échec n'interrompt pas les autres.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialiser le service.

        Args:
            db: Instance de base de données MongoDB.
        """
        self.db = db
        self.baseline_window = get_settings().baseline_window
        self.logger, self.error_logger, self.data_logger = get_loggers()

    async def _baseline_emissions(self, user_id: ObjectId, joined_at: dt.datetime) -> list[float]:
        cursor = (
            self.db.activities.find({"user_id": user_id, "date": {"$lt": joined_at}}, {"emission": 1})
            .sort("date", -1)
            .limit(self.baseline_window)
        )
        docs = await cursor.to_list(length=self.baseline_window)
        return [float(doc.get("emission", 0)) for doc in docs]

    async def _window_emission(self, user_id: ObjectId, challenge: Challenge) -> float:
        cursor = self.db.activities.find(
            {"user_id": user_id, "date": {"$gte": challenge.start_date, "$lte": challenge.end_date}},
            {"emission": 1},
        )
        docs = await cursor.to_list(length=None)
        return sum(float(doc.get("emission", 0)) for doc in docs)

    async def compute_participant(
        self, participant: ChallengeParticipant, challenge: Challenge, now: dt.datetime
    ) -> ProgressSnapshot:
        """Recalcule l'état d'un participant (lectures seules)."""
        baseline = participant.baseline_emission
        if baseline is None:
            recent = await self._baseline_emissions(participant.user_id, participant.joined_at)
            baseline = compute_baseline(recent, challenge.duration)

        current = await self._window_emission(participant.user_id, challenge)
        saved = compute_saved(baseline, current)
        return ProgressSnapshot(
            baseline_emission=baseline,
            current_emission=current,
            emission_saved=saved,
            progress=compute_progress(
                baseline, saved, challenge.target_emission, challenge.duration, participant.joined_at, now
            ),
            points=compute_points(saved),
            streak_days=compute_streak(
                participant.streak_days, participant.last_activity_date, participant.joined_at, now
            ),
            last_activity_date=now,
        )

    async def recompute_participant(
        self, participant: ChallengeParticipant, challenge: Challenge, now: dt.datetime | None = None
    ) -> ChallengeParticipant:
        """Recalcule puis persiste un participant (séquence lecture -> écriture).

        Returns:
            ChallengeParticipant: Participant mis à jour.
        """
        now = now or utcnow()
        snapshot = await self.compute_participant(participant, challenge, now)

        updated = participant.model_copy(
            update={
                "baseline_emission": snapshot.baseline_emission,
                "current_emission": snapshot.current_emission,
                "emission_saved": snapshot.emission_saved,
                "progress": snapshot.progress,
                "points": snapshot.points,
                "streak_days": snapshot.streak_days,
                "last_activity_date": snapshot.last_activity_date,
                "updated_at": now,
            }
        )
        await self.db.challenge_participants.update_one(
            {"_id": participant.id},
            {
                "$set": {
                    "baseline_emission": updated.baseline_emission,
                    "current_emission": updated.current_emission,
                    "emission_saved": updated.emission_saved,
                    "progress": updated.progress,
                    "points": updated.points,
                    "streak_days": updated.streak_days,
                    "last_activity_date": updated.last_activity_date,
                    "updated_at": now,
                }
            },
        )
        return updated

    async def _recompute_safely(
        self, raw: dict[str, Any], challenge: Challenge, now: dt.datetime
    ) -> ParticipantProgressResult:
        # Un document corrompu peut manquer d'identifiants : le rapport les laisse à None
        participant_id = raw.get("_id") if isinstance(raw.get("_id"), ObjectId) else None
        user_id = raw.get("user_id") if isinstance(raw.get("user_id"), ObjectId) else None
        try:
            participant = ChallengeParticipant(**raw)
            updated = await self.recompute_participant(participant, challenge, now)
            return ParticipantProgressResult(
                participant_id=participant_id,
                user_id=user_id,
                ok=True,
                emission_saved=updated.emission_saved,
                points=updated.points,
                progress=updated.progress,
            )
        except Exception as e:
            self.error_logger.error(
                f"Progress update failed challenge={challenge.id} participant={participant_id}: {e!r}"
            )
            return ParticipantProgressResult(
                participant_id=participant_id, user_id=user_id, ok=False, error=str(e)
            )

    async def total_saved(self, challenge_id: ObjectId) -> float:
        """Somme des économies des participants actifs (agrégation)."""
        pipeline = [
            {"$match": {"challenge_id": challenge_id, "status": "active"}},
            {"$group": {"_id": None, "total": {"$sum": "$emission_saved"}}},
        ]
        rows = await self.db.challenge_participants.aggregate(pipeline).to_list(length=None)
        return float(rows[0]["total"]) if rows else 0.0

    async def update_challenge_progress(
        self, challenge_id: ObjectId, now: dt.datetime | None = None
    ) -> ProgressBatchReport:
        """Recalcule tous les participants actifs d'un challenge actif.

        Description:
            Les participants sont recalculés en parallèle (`asyncio.gather`), chacun
            séquentiellement. Les échecs sont journalisés et reportés par participant.
            Le total `total_emission_saved` du challenge est ensuite réagrégé.

        Args:
            challenge_id: Identifiant du challenge.
            now: Instant de référence (défaut : maintenant, UTC).

        Returns:
            ProgressBatchReport: Résultat par participant et total.

        Raises:
            NotFoundError: Challenge inconnu.
            ConflictError: Challenge non actif.
        """
        now = now or utcnow()
        doc = await self.db.challenges.find_one({"_id": challenge_id})
        if doc is None:
            raise NotFoundError("Challenge not found")
        challenge = Challenge(**doc).refresh_status(now)
        if challenge.status != "active":
            raise ConflictError("Challenge is not active")

        participants = await self.db.challenge_participants.find(
            {"challenge_id": challenge_id, "status": "active"}
        ).to_list(length=None)

        results = await asyncio.gather(
            *(self._recompute_safely(raw, challenge, now) for raw in participants)
        )

        total = await self.total_saved(challenge_id)
        await self.db.challenges.update_one(
            {"_id": challenge_id},
            {"$set": {"total_emission_saved": total, "status": challenge.status, "updated_at": now}},
        )

        failed = sum(1 for r in results if not r.ok)
        report = ProgressBatchReport(
            challenge_id=challenge_id,
            total_participants=len(participants),
            updated=len(results) - failed,
            failed=failed,
            total_emission_saved=total,
            results=list(results),
        )
        self.logger.info(
            f"Challenge progress updated id={challenge_id} participants={len(participants)} failed={failed}"
        )
        self.data_logger.log_data("challenge_progress_batch", report.model_dump(mode="json"))
        return report
