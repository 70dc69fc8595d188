# backend/app/api/routes/onboarding.py
# Onboarding : statut, validation d'une étape, abandon.

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Path

from app.api.deps import Onboarding
from app.api.dto.onboarding import OnboardingStatusOut, StepIn, StepOut
from app.core.security import CurrentUserId, get_current_user

router = APIRouter(
    prefix="/onboarding",
    tags=["onboarding"],
    dependencies=[Depends(get_current_user)],
)


@router.get("/status", response_model=OnboardingStatusOut, summary="Statut de l'onboarding")
async def onboarding_status(user_id: CurrentUserId, service: Onboarding) -> OnboardingStatusOut:
    return OnboardingStatusOut(**await service.get_status(user_id))


@router.post(
    "/step/{step_id}",
    response_model=StepOut,
    summary="Valider une étape",
    description=(
        "Étapes : welcome, set_target, first_activity, explore_dashboard.\n\n"
        "- `set_target` accepte `target_emission` (kg CO2e / mois)\n"
        "- 409 si l'étape est déjà validée"
    ),
)
async def complete_step(
    user_id: CurrentUserId,
    service: Onboarding,
    step_id: str = Path(..., description="Identifiant de l'étape."),
    payload: StepIn = Body(default_factory=StepIn),
) -> StepOut:
    return StepOut(**await service.complete_step(user_id, step_id, payload.target_emission))


@router.post("/skip", response_model=dict[str, bool], summary="Passer l'onboarding")
async def skip_onboarding(user_id: CurrentUserId, service: Onboarding) -> dict[str, bool]:
    return await service.skip(user_id)
