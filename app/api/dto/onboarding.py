# backend/app/api/dto/onboarding.py
# DTOs de l'onboarding.

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class CompletedStepOut(BaseModel):
    step_id: str
    completed_at: dt.datetime


class OnboardingStatusOut(BaseModel):
    completed: bool
    completed_steps: list[CompletedStepOut]
    remaining_steps: list[str]
    total_steps: int


class StepIn(BaseModel):
    """Données optionnelles d'une étape (objectif mensuel pour `set_target`)."""

    target_emission: float | None = Field(default=None, ge=0, le=100000)


class StepOut(BaseModel):
    step_id: str
    onboarding_completed: bool
