# backend/app/models/challenge_participant.py
# Participation d'un utilisateur à un challenge : baseline, économies, points, streak.

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.core.bson_utils import MongoBaseModel, PyObjectId
from app.core.utils import utcnow

ParticipantStatus = Literal["active", "completed", "dropped"]


class ChallengeParticipant(MongoBaseModel):
    """Document Mongo « ChallengeParticipant » (unique par (user_id, challenge_id)).

    Description:
        État de progression d'un participant, recalculé par `ChallengeProgressService`.
        `baseline_emission` vaut None tant que la baseline n'a pas été calculée ;
        une fois calculée (y compris à 0.0) elle n'est plus jamais recalculée.

    Attributes:
        user_id (PyObjectId): Participant.
        challenge_id (PyObjectId): Challenge.
        joined_at (datetime): Inscription (UTC).
        status (ParticipantStatus): Statut de participation.
        baseline_emission (float | None): Émission attendue sans effort sur la durée du challenge.
        current_emission (float): Émissions réelles dans la fenêtre du challenge.
        emission_saved (float): max(0, baseline - current).
        points (int): 1 point par tranche de 10 kg économisés.
        progress (float): Avancement vers la réduction attendue (0–100).
        streak_days (int): Jours consécutifs de recalcul.
        last_activity_date (datetime | None): Dernier recalcul.
        achievements (list[str]): Succès obtenus.
    """

    user_id: PyObjectId
    challenge_id: PyObjectId
    joined_at: dt.datetime = Field(default_factory=lambda: utcnow())
    status: ParticipantStatus = "active"
    baseline_emission: float | None = Field(default=None, ge=0)
    current_emission: float = Field(default=0.0, ge=0)
    emission_saved: float = Field(default=0.0, ge=0)
    points: int = Field(default=0, ge=0)
    progress: float = Field(default=0.0, ge=0, le=100)
    streak_days: int = Field(default=0, ge=0)
    last_activity_date: dt.datetime | None = None
    achievements: list[str] = Field(default_factory=list)

    created_at: dt.datetime = Field(default_factory=lambda: utcnow())
    updated_at: dt.datetime | None = None


class ParticipationOut(BaseModel):
    """Résumé de la participation de l'utilisateur courant (détail d'un challenge)."""

    status: ParticipantStatus
    emission_saved: float
    points: int
    progress: float
    streak_days: int
    joined_at: dt.datetime


class LeaderboardEntry(BaseModel):
    """Ligne de classement."""

    rank: int
    user_id: PyObjectId
    name: str | None = None
    emission_saved: float
    points: int
    streak_days: int
    progress: float

    model_config = ConfigDict(arbitrary_types_allowed=True)


class UserRank(BaseModel):
    """Position de l'utilisateur courant dans le classement."""

    rank: int
    emission_saved: float
    points: int


class ParticipantOut(BaseModel):
    """Sortie complète d'une participation."""

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    user_id: PyObjectId
    challenge_id: PyObjectId
    joined_at: dt.datetime
    status: ParticipantStatus
    baseline_emission: float | None = None
    current_emission: float
    emission_saved: float
    points: int
    progress: float
    streak_days: int
    last_activity_date: dt.datetime | None = None
