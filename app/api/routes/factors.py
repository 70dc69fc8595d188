# backend/app/api/routes/factors.py
# Catalogue des facteurs d'émission et prévisualisation d'un calcul.

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import Calculator
from app.api.dto.factors import CalculateIn, CalculateOut
from app.core.security import get_current_user

router = APIRouter(
    prefix="/factors",
    tags=["factors"],
    dependencies=[Depends(get_current_user)],
)


@router.get(
    "",
    summary="Lister les facteurs d'émission",
    description="Retourne la table DEFRA 2024 groupée (transport, food, energy, shopping).",
)
async def list_factors(calculator: Calculator) -> dict[str, list[dict]]:
    """Catalogue des facteurs.

    Returns:
        dict: Groupe -> liste de {key, label, unit, factor}.
    """
    return calculator.list_all_factors()


@router.post(
    "/calculate",
    response_model=CalculateOut,
    summary="Prévisualiser l'émission d'un payload",
    description=(
        "Calcule l'émission (kg CO2e, 2 décimales) sans rien enregistrer.\n\n"
        "- 400 `UNKNOWN_EMISSION_TYPE` si le sous-type est inconnu"
    ),
)
async def calculate(payload: CalculateIn, calculator: Calculator) -> CalculateOut:
    return CalculateOut(
        category=payload.input_data.category,
        details=calculator.describe(payload.input_data),
        emission=calculator.calculate_input(payload.input_data),
    )
