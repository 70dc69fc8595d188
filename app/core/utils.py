# backend/app/core/utils.py
# Fonctions temporelles (UTC) et arrondis partagés par les calculs métier.

import datetime as dt
import math
from decimal import ROUND_HALF_UP, Decimal

SECONDS_PER_DAY = 24 * 60 * 60


def utcnow():
    """Date/heure UTC (timezone-aware).

    Description:
        Retourne `datetime.now(timezone.utc)` avec timezone UTC attachée. Utilisé
        pour tous les horodatages persistés et toutes les comparaisons de dates.

    Returns:
        datetime.datetime: Timestamp UTC (aware).
    """
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Normalise un datetime en UTC aware.

    Description:
        Un datetime naïf est interprété comme déjà exprimé en UTC (cas des documents
        relus sans `tz_aware`). Un datetime aware est converti en UTC.

    Args:
        value (datetime): Date à normaliser.

    Returns:
        datetime: Date aware en UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def days_between(start: dt.datetime, end: dt.datetime) -> float:
    """Écart fractionnaire en jours entre deux dates (end - start)."""
    return (as_utc(end) - as_utc(start)).total_seconds() / SECONDS_PER_DAY


def ceil_days(start: dt.datetime, end: dt.datetime) -> int:
    """Nombre de jours entamés entre deux dates (plafond)."""
    return math.ceil(days_between(start, end))


def floor_days(start: dt.datetime, end: dt.datetime) -> int:
    """Nombre de jours pleins entre deux dates (plancher)."""
    return math.floor(days_between(start, end))


def round_half_up(value: float, digits: int = 0) -> float:
    """Arrondi « commercial » (0.5 vers le haut).

    Description:
        `round()` de Python arrondit au pair le plus proche (2.5 -> 2). Les montants
        d'émission et les pourcentages sont arrondis vers le haut sur la demi-unité,
        via `Decimal` construit depuis `repr` pour éviter les artefacts binaires.

    Args:
        value (float): Valeur à arrondir.
        digits (int): Nombre de décimales conservées.

    Returns:
        float: Valeur arrondie (int si `digits == 0`).
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def round_emission(value: float) -> float:
    """Arrondi d'une quantité de CO2e à 2 décimales."""
    return round_half_up(value, 2)
