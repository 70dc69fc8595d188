# backend/app/services/challenges/progress_calculator.py
# Calculs purs de progression d'un participant : baseline, économies, progression, points, série.

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Iterable

from app.core.utils import ceil_days, floor_days

KG_PER_POINT = 10


@dataclass(frozen=True)
class ProgressSnapshot:
    """Résultat d'un recalcul de participant (sans effet de bord).

    Attributes:
        baseline_emission (float): Baseline (calculée ou reprise).
        current_emission (float): Émissions dans la fenêtre du challenge.
        emission_saved (float): max(0, baseline - current).
        progress (float): 0–100.
        points (int): floor(saved / 10).
        streak_days (int): Nouvelle série.
        last_activity_date (datetime): Instant du recalcul.
    """

    baseline_emission: float
    current_emission: float
    emission_saved: float
    progress: float
    points: int
    streak_days: int
    last_activity_date: dt.datetime


def compute_baseline(recent_emissions: Iterable[float], duration_days: int) -> float:
    """Baseline = moyenne des émissions récentes × durée du challenge (0 si aucune)."""
    values = list(recent_emissions)
    if not values:
        return 0.0
    return sum(values) / len(values) * duration_days


def compute_saved(baseline: float, current: float) -> float:
    """Économies réalisées, jamais négatives."""
    return max(0.0, baseline - current)


def compute_progress(
    baseline: float,
    saved: float,
    target_emission: float,
    duration_days: int,
    joined_at: dt.datetime,
    now: dt.datetime,
) -> float:
    """Avancement vers la réduction attendue à date.

    Description:
        `attendu = (objectif / durée) × min(durée, jours entamés depuis l'inscription)` ;
        progression = min(100, économies / attendu × 100). Vaut 0 sans baseline
        positive ou si la réduction attendue est nulle.
    """
    if baseline <= 0 or duration_days <= 0:
        return 0.0
    target_per_day = target_emission / duration_days
    days_participated = min(duration_days, ceil_days(joined_at, now))
    expected = target_per_day * days_participated
    if expected <= 0:
        return 0.0
    return min(100.0, saved / expected * 100)


def compute_points(saved: float) -> int:
    """1 point par tranche complète de 10 kg CO2e économisés."""
    return math.floor(saved / KG_PER_POINT)


def compute_streak(
    streak_days: int,
    last_activity_date: dt.datetime | None,
    joined_at: dt.datetime,
    now: dt.datetime,
) -> int:
    """Série : +1 si le dernier recalcul date d'au plus un jour plein, sinon remise à 1."""
    reference = last_activity_date or joined_at
    if floor_days(reference, now) <= 1:
        return streak_days + 1
    return 1
