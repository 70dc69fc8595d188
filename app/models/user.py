# backend/app/models/user.py
# Schéma utilisateur : objectif mensuel, compteurs d'émissions/arbres et étapes d'onboarding.

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from app.core.bson_utils import MongoBaseModel
from app.core.utils import utcnow

OnboardingStepId = Literal["welcome", "set_target", "first_activity", "explore_dashboard"]
ONBOARDING_STEPS: tuple[str, ...] = ("welcome", "set_target", "first_activity", "explore_dashboard")


class OnboardingStep(BaseModel):
    """Étape d'onboarding complétée.

    Attributes:
        step_id (OnboardingStepId): Identifiant d'étape.
        completed_at (datetime): Horodatage (UTC).
    """

    step_id: OnboardingStepId
    completed_at: dt.datetime = Field(default_factory=lambda: utcnow())


class User(MongoBaseModel):
    """Document Mongo utilisateur.

    Attributes:
        name (str): Nom affiché.
        email (EmailStr): Email.
        role (str): Rôle ('user' par défaut, 'admin').
        target_emission (float): Objectif mensuel (kg CO2e).
        total_emission (float): Cumul des émissions loggées.
        total_trees (int): Arbres gagnés (ne décroît jamais).
        awarded_tree_periods (list[str]): Mois (YYYY-MM) déjà récompensés.
        onboarding_completed (bool): Onboarding terminé ou ignoré.
        onboarding_steps (list[OnboardingStep]): Étapes faites.
    """

    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    role: str = "user"
    target_emission: float = Field(default=100, ge=0)
    total_emission: float = 0
    total_trees: int = Field(default=0, ge=0)
    awarded_tree_periods: list[str] = Field(default_factory=list)
    onboarding_completed: bool = False
    onboarding_steps: list[OnboardingStep] = Field(default_factory=list)

    created_at: dt.datetime = Field(default_factory=lambda: utcnow())
    updated_at: dt.datetime | None = None
