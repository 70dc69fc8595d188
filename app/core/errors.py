# backend/app/core/errors.py
# Erreurs métier typées, converties en réponses HTTP par `register_exception_handlers`.

from __future__ import annotations


class DomainError(Exception):
    """Erreur métier de base.

    Attributes:
        code (str): Code stable exposé dans l'enveloppe d'erreur.
        status_code (int): Code HTTP associé.
        message (str): Message lisible.
    """

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(DomainError):
    """Entrée invalide (payload incohérent, référence inconnue dans la requête)."""

    code = "INVALID_INPUT"
    status_code = 400


class UnknownEmissionTypeError(InvalidInputError):
    """Couple (catégorie, sous-type) absent de la table des facteurs."""

    code = "UNKNOWN_EMISSION_TYPE"

    def __init__(self, category: str, sub_type: str):
        super().__init__(f"Invalid emission type: {sub_type} for category: {category}")
        self.category = category
        self.sub_type = sub_type


class ConflictError(DomainError):
    """Opération incompatible avec l'état courant (doublon, état terminal)."""

    code = "CONFLICT"
    status_code = 409


class NotFoundError(DomainError):
    """Document introuvable."""

    code = "NOT_FOUND"
    status_code = 404
