# backend/app/services/emissions/emission_factors.py
# Table immuable des facteurs d'émission (DEFRA 2024), construite une seule fois.

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class EmissionFactor:
    """Facteur d'émission d'un sous-type.

    Attributes:
        key (str): Clé du sous-type (ex. "car_medium_petrol").
        label (str): Libellé affiché.
        unit (str): Unité de la quantité ("km", "kg", "kWh", "item").
        factor (float): kg CO2e par unité.
    """

    key: str
    label: str
    unit: str
    factor: float

    def as_dict(self) -> dict:
        return {"key": self.key, "label": self.label, "unit": self.unit, "factor": self.factor}


# Groupe de facteurs -> catégorie d'activité
CATEGORY_GROUPS: Mapping[str, str] = MappingProxyType({
    "Transportation": "transport",
    "Food": "food",
    "Energy": "energy",
    "Shopping": "shopping",
})

_DEFRA_2024: tuple[tuple[str, str, str, float, str], ...] = (
    # (groupe, clé, unité, facteur, libellé)
    ("transport", "car_medium_petrol", "km", 0.18887, "Medium petrol car (per km)"),
    ("transport", "motorcycle_avg", "km", 0.11543, "Average motorcycle (per km)"),
    ("transport", "bus_local", "km", 0.13783, "Local bus (per km)"),
    ("transport", "rail_national", "km", 0.03513, "National rail (per km)"),
    ("food", "beef_kg", "kg", 60.0, "Beef (per kg)"),
    ("food", "chicken_kg", "kg", 7.5, "Chicken (per kg)"),
    ("food", "rice_kg", "kg", 2.5, "Rice (per kg)"),
    ("energy", "grid_uk", "kWh", 0.20709, "UK Grid electricity (per kWh)"),
    ("shopping", "clothing_item", "item", 7.6, "Clothing item"),
    ("shopping", "electronics_item", "item", 15.0, "Electronics item"),
)


class EmissionFactorTable:
    """Table de facteurs en lecture seule, indexée par (groupe, clé).

    Description:
        Les groupes et leurs entrées sont exposés via des `MappingProxyType` ;
        aucune méthode ne modifie la table après construction.
    """

    def __init__(self, rows: tuple[tuple[str, str, str, float, str], ...]):
        groups: dict[str, dict[str, EmissionFactor]] = {}
        for group, key, unit, factor, label in rows:
            groups.setdefault(group, {})[key] = EmissionFactor(key, label, unit, factor)
        self._groups: Mapping[str, Mapping[str, EmissionFactor]] = MappingProxyType(
            {group: MappingProxyType(entries) for group, entries in groups.items()}
        )

    @property
    def groups(self) -> Mapping[str, Mapping[str, EmissionFactor]]:
        return self._groups

    def lookup(self, group: str, key: str) -> EmissionFactor | None:
        """Facteur pour (groupe, clé), ou None si inconnu."""
        return self._groups.get(group, {}).get(key)


@lru_cache(maxsize=1)
def default_factor_table() -> EmissionFactorTable:
    """Table DEFRA 2024 (singleton)."""
    return EmissionFactorTable(_DEFRA_2024)
