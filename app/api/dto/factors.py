# backend/app/api/dto/factors.py
# DTOs du catalogue de facteurs d'émission et de la prévisualisation de calcul.

from __future__ import annotations

from pydantic import BaseModel

from app.models.activity import ActivityInput


class CalculateIn(BaseModel):
    input_data: ActivityInput


class CalculateOut(BaseModel):
    category: str
    details: str
    emission: float
