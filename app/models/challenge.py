# backend/app/models/challenge.py
# Challenge communautaire de réduction d'émissions : document Mongo, statut dérivé et payloads admin.

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.bson_utils import MongoBaseModel, PyObjectId
from app.core.utils import as_utc, ceil_days, round_half_up, utcnow

ChallengeCategory = Literal["Transportation", "Food", "Energy", "Shopping", "General"]
ChallengeDifficulty = Literal["Easy", "Medium", "Hard"]
ChallengeStatus = Literal["upcoming", "active", "completed", "cancelled"]


class ChallengeRewards(BaseModel):
    """Récompenses d'un challenge.

    Attributes:
        points (int): Points bonus affichés.
        badge (str | None): Badge décerné.
        description (str | None): Texte libre.
        trees (int | None): Arbres offerts ; défaut selon la difficulté si absent.
    """

    points: int = Field(default=0, ge=0)
    badge: str | None = Field(default=None, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    trees: int | None = Field(default=None, ge=0)


def derive_challenge_status(
    start_date: dt.datetime,
    end_date: dt.datetime,
    current: ChallengeStatus | None,
    now: dt.datetime,
) -> ChallengeStatus:
    """Statut d'un challenge à l'instant `now`.

    Description:
        `cancelled` est collant ; sinon le statut suit l'horloge :
        avant le début -> upcoming, entre début et fin (inclus) -> active, après -> completed.
    """
    if current == "cancelled":
        return "cancelled"
    now = as_utc(now)
    if now < as_utc(start_date):
        return "upcoming"
    if now <= as_utc(end_date):
        return "active"
    return "completed"


class Challenge(MongoBaseModel):
    """Document Mongo « Challenge ».

    Description:
        Challenge de réduction sur une fenêtre de dates avec un objectif global (kg CO2e).
        Le statut est recalculé à chaque sauvegarde (voir `refresh_status`).

    Attributes:
        title (str): Titre (3–100), unique parmi les challenges actifs/à venir non terminés.
        description (str): 10–500 caractères.
        category (ChallengeCategory): Catégorie visée.
        start_date (datetime): Début (UTC).
        end_date (datetime): Fin (UTC), postérieure au début.
        target_emission (float): Objectif de réduction (> 0).
        difficulty (ChallengeDifficulty): Difficulté.
        max_participants (int | None): Limite d'inscriptions.
        status (ChallengeStatus): Statut courant.
        created_by (PyObjectId): Auteur (admin).
        rules (list[str]): Règles (≤ 10).
        rewards (ChallengeRewards): Récompenses.
        total_participants (int): Compteur d'inscrits.
        total_emission_saved (float): Somme des économies des participants actifs.
    """

    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    category: ChallengeCategory
    start_date: dt.datetime
    end_date: dt.datetime
    target_emission: float = Field(gt=0)
    difficulty: ChallengeDifficulty = "Medium"
    max_participants: int | None = Field(default=None, ge=1, le=10000)
    status: ChallengeStatus = "upcoming"
    created_by: PyObjectId
    rules: list[str] = Field(default_factory=list, max_length=10)
    rewards: ChallengeRewards = Field(default_factory=ChallengeRewards)
    total_participants: int = Field(default=0, ge=0)
    total_emission_saved: float = Field(default=0.0, ge=0)

    created_at: dt.datetime = Field(default_factory=lambda: utcnow())
    updated_at: dt.datetime | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> "Challenge":
        if as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValueError("End date must be after start date")
        return self

    @property
    def duration(self) -> int:
        """Durée en jours entamés (plafond de end - start)."""
        return ceil_days(self.start_date, self.end_date)

    def days_remaining(self, now: dt.datetime | None = None) -> int | None:
        """Jours restants (uniquement pour un challenge actif)."""
        if self.status != "active":
            return None
        now = now or utcnow()
        if as_utc(now) > as_utc(self.end_date):
            return 0
        return ceil_days(now, self.end_date)

    @property
    def progress_percentage(self) -> int:
        """Avancement global vers l'objectif (0–100)."""
        return min(100, round_half_up(self.total_emission_saved / self.target_emission * 100))

    def refresh_status(self, now: dt.datetime | None = None) -> "Challenge":
        """Recalcule et applique le statut à partir de l'horloge."""
        self.status = derive_challenge_status(
            self.start_date, self.end_date, self.status, now or utcnow()
        )
        return self


# Input/Output DTOs


class ChallengeCreate(BaseModel):
    """Payload de création (admin)."""

    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    category: ChallengeCategory
    start_date: dt.datetime
    end_date: dt.datetime
    target_emission: float = Field(gt=0)
    difficulty: ChallengeDifficulty = "Medium"
    max_participants: int | None = Field(default=None, ge=1, le=10000)
    rules: list[str] = Field(default_factory=list, max_length=10)
    rewards: ChallengeRewards = Field(default_factory=ChallengeRewards)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        return value.strip()

    @field_validator("rules")
    @classmethod
    def _check_rules(cls, value: list[str]) -> list[str]:
        for rule in value:
            if not 5 <= len(rule.strip()) <= 200:
                raise ValueError("Each rule must be between 5 and 200 characters")
        return [rule.strip() for rule in value]


class ChallengeUpdate(BaseModel):
    """Payload de mise à jour partielle (admin). `cancelled` est le seul statut forçable."""

    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    category: ChallengeCategory | None = None
    start_date: dt.datetime | None = None
    end_date: dt.datetime | None = None
    target_emission: float | None = Field(default=None, gt=0)
    difficulty: ChallengeDifficulty | None = None
    max_participants: int | None = Field(default=None, ge=1, le=10000)
    status: Literal["cancelled"] | None = None
    rules: list[str] | None = Field(default=None, max_length=10)
    rewards: ChallengeRewards | None = None


class ChallengeOut(BaseModel):
    """Sortie publique d'un challenge avec champs dérivés."""

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    description: str
    category: ChallengeCategory
    start_date: dt.datetime
    end_date: dt.datetime
    target_emission: float
    difficulty: ChallengeDifficulty
    max_participants: int | None = None
    status: ChallengeStatus
    created_by: PyObjectId
    rules: list[str]
    rewards: ChallengeRewards
    total_participants: int
    total_emission_saved: float
    duration: int
    days_remaining: int | None = None
    progress_percentage: int

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    @classmethod
    def from_challenge(cls, challenge: Challenge, now: dt.datetime | None = None) -> "ChallengeOut":
        return cls(
            **challenge.model_dump(exclude={"id"}),
            id=challenge.id,
            duration=challenge.duration,
            days_remaining=challenge.days_remaining(now),
            progress_percentage=challenge.progress_percentage,
        )
