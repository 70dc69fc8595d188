# backend/app/models/activity.py
# Activité utilisateur : payloads par catégorie (union discriminée), document Mongo et entrées API.

from __future__ import annotations

import datetime as dt
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.core.bson_utils import MongoBaseModel, PyObjectId
from app.core.utils import utcnow

ActivityCategory = Literal["Transportation", "Food", "Energy", "Shopping"]
ACTIVITY_CATEGORIES: tuple[str, ...] = ("Transportation", "Food", "Energy", "Shopping")


class TransportationInput(BaseModel):
    """Trajet : distance parcourue (km) et type de véhicule."""

    category: Literal["Transportation"] = "Transportation"
    distance: float = Field(ge=0.1, le=10000, description="Distance en km (0.1–10000).")
    vehicle_type: str = Field(min_length=1, description="Clé de facteur (ex. car_medium_petrol).")

    model_config = ConfigDict(extra="forbid")


class FoodInput(BaseModel):
    """Alimentation : poids consommé (kg) et type d'aliment."""

    category: Literal["Food"] = "Food"
    weight: float = Field(ge=0.01, le=1000, description="Poids en kg (0.01–1000).")
    food_type: str = Field(min_length=1, description="Clé de facteur (ex. beef_kg).")

    model_config = ConfigDict(extra="forbid")


class EnergyInput(BaseModel):
    """Énergie : consommation (kWh) et source (réseau UK par défaut)."""

    category: Literal["Energy"] = "Energy"
    energy_consumption: float = Field(ge=0.01, le=10000, description="Consommation en kWh (0.01–10000).")
    energy_type: str = Field(default="grid_uk", min_length=1)

    model_config = ConfigDict(extra="forbid")


class ShoppingInput(BaseModel):
    """Achats : nombre d'articles et type d'article."""

    category: Literal["Shopping"] = "Shopping"
    quantity: int = Field(ge=1, le=1000, description="Nombre d'articles (1–1000).")
    item_type: str = Field(min_length=1, description="Clé de facteur (ex. clothing_item).")

    model_config = ConfigDict(extra="forbid")


ActivityInput = Annotated[
    Union[TransportationInput, FoodInput, EnergyInput, ShoppingInput],
    Field(discriminator="category"),
]

INPUT_MODELS: dict[str, type[BaseModel]] = {
    "Transportation": TransportationInput,
    "Food": FoodInput,
    "Energy": EnergyInput,
    "Shopping": ShoppingInput,
}


class Activity(MongoBaseModel):
    """Document Mongo « Activity ».

    Description:
        Une activité loggée par l'utilisateur. `emission` et `details` sont toujours
        dérivés de `input_data` par le calculateur d'émissions ; jamais fournis par l'appelant.

    Attributes:
        user_id (PyObjectId): Propriétaire.
        category (ActivityCategory): Catégorie.
        details (str): Résumé lisible (ex. "car_medium_petrol (15 km)").
        note (str | None): Note libre (≤ 500 caractères).
        emission (float): kg CO2e (≥ 0).
        date (datetime): Date de l'activité (UTC).
        input_data (ActivityInput): Payload structuré de la catégorie.
        created_at (datetime): Création (UTC).
        updated_at (datetime | None): MAJ.
    """

    user_id: PyObjectId
    category: ActivityCategory
    details: str
    note: str | None = Field(default=None, max_length=500)
    emission: float = Field(ge=0)
    date: dt.datetime = Field(default_factory=lambda: utcnow())
    input_data: ActivityInput

    created_at: dt.datetime = Field(default_factory=lambda: utcnow())
    updated_at: dt.datetime | None = None


# Input/Output DTOs


class ActivityCreate(BaseModel):
    """Entrée de création d'activité.

    Attributes:
        input_data (ActivityInput): Payload (la catégorie est portée par le champ `category`).
        note (str | None): Note libre.
        date (datetime | None): Date de l'activité (défaut : maintenant).
    """

    input_data: ActivityInput
    note: str | None = Field(default=None, max_length=500)
    date: dt.datetime | None = None


class ActivityUpdate(BaseModel):
    """Entrée de mise à jour partielle d'activité."""

    input_data: ActivityInput | None = None
    note: str | None = Field(default=None, max_length=500)
    date: dt.datetime | None = None


class ActivityOut(BaseModel):
    """Sortie publique d'une activité."""

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    category: ActivityCategory
    details: str
    note: str | None = None
    emission: float
    date: dt.datetime
    input_data: ActivityInput
    created_at: dt.datetime
    updated_at: dt.datetime | None = None

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)
