# backend/app/services/emissions/emission_calculator.py
# Conversion (catégorie, payload structuré) -> kg CO2e, libellés d'activité et catalogue des facteurs.

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ValidationError

from app.core.errors import InvalidInputError, UnknownEmissionTypeError
from app.core.utils import round_emission
from app.models.activity import (
    INPUT_MODELS,
    EnergyInput,
    FoodInput,
    ShoppingInput,
    TransportationInput,
)

from .emission_factors import CATEGORY_GROUPS, EmissionFactorTable, default_factor_table


class EmissionCalculator:
    """Calculateur d'émissions pur (sans I/O).

    Description:
        `emission = quantité × facteur`, arrondi au centième (demi vers le haut).
        Un sous-type absent de la table lève `UnknownEmissionTypeError` ; aucun
        facteur par défaut n'est jamais appliqué silencieusement.
    """

    def __init__(self, table: EmissionFactorTable):
        """Initialiser le calculateur.

        Args:
            table: Table de facteurs injectée (immutable).
        """
        self.table = table

    def calculate(self, category: str, payload: BaseModel | dict[str, Any]) -> float:
        """Émission d'une activité.

        Description:
            Accepte un payload déjà typé (`TransportationInput`, ...) ou un dict brut,
            qui est alors validé contre le modèle de la catégorie.

        Args:
            category (str): Catégorie d'activité (Transportation, Food, Energy, Shopping).
            payload (BaseModel | dict): Données structurées de l'activité.

        Returns:
            float: kg CO2e, arrondi à 2 décimales.

        Raises:
            InvalidInputError: Catégorie inconnue ou payload non conforme.
            UnknownEmissionTypeError: Sous-type absent de la table.
        """
        typed = self._coerce(category, payload)
        return self.calculate_input(typed)

    def calculate_input(self, payload: BaseModel) -> float:
        """Émission d'un payload typé (la catégorie est portée par le payload)."""
        category, sub_type, quantity = self._extract(payload)
        group = CATEGORY_GROUPS[category]
        factor = self.table.lookup(group, sub_type)
        if factor is None:
            raise UnknownEmissionTypeError(group, sub_type)
        return round_emission(quantity * factor.factor)

    def describe(self, payload: BaseModel) -> str:
        """Libellé lisible d'une activité (ex. "car_medium_petrol (15 km)")."""
        category, sub_type, quantity = self._extract(payload)
        amount = _format_quantity(quantity)
        if category == "Transportation":
            return f"{sub_type} ({amount} km)"
        if category == "Food":
            return f"{sub_type} ({amount} kg)"
        if category == "Energy":
            return f"{sub_type} ({amount} kWh)"
        plural = "s" if quantity > 1 else ""
        return f"{sub_type} ({amount} item{plural})"

    def list_all_factors(self) -> dict[str, list[dict]]:
        """Catalogue des facteurs groupés (transport, food, energy, shopping)."""
        return {
            group: [factor.as_dict() for factor in entries.values()]
            for group, entries in self.table.groups.items()
        }

    @staticmethod
    def _coerce(category: str, payload: BaseModel | dict[str, Any]) -> BaseModel:
        model = INPUT_MODELS.get(category)
        if model is None:
            raise InvalidInputError(f"Unsupported category: {category}")
        if isinstance(payload, BaseModel):
            if not isinstance(payload, model):
                raise InvalidInputError(
                    f"Payload of type {type(payload).__name__} does not match category {category}"
                )
            return payload
        try:
            return model.model_validate({**payload, "category": category})
        except ValidationError as e:
            raise InvalidInputError(f"Invalid {category} payload: {e.errors()[0]['msg']}") from e

    @staticmethod
    def _extract(payload: BaseModel) -> tuple[str, str, float]:
        if isinstance(payload, TransportationInput):
            return "Transportation", payload.vehicle_type, payload.distance
        if isinstance(payload, FoodInput):
            return "Food", payload.food_type, payload.weight
        if isinstance(payload, EnergyInput):
            return "Energy", payload.energy_type, payload.energy_consumption
        if isinstance(payload, ShoppingInput):
            return "Shopping", payload.item_type, payload.quantity
        raise InvalidInputError(f"Unsupported payload: {type(payload).__name__}")


def _format_quantity(value: float) -> str:
    """15.0 -> "15", 2.5 -> "2.5" (affichage sans zéro superflu)."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@lru_cache(maxsize=1)
def get_emission_calculator() -> EmissionCalculator:
    """Calculateur partagé, construit sur la table DEFRA par défaut."""
    return EmissionCalculator(default_factor_table())
