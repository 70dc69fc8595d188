# backend/app/core/health_checks.py
# Vérifications unitaires des dépendances exposées par `/health`.

from app.core.logging_config import get_loggers


async def check_mongodb() -> str:
    """
    Vérifie la connexion MongoDB

    Returns:
        "ok" si connecté, message d'erreur sinon
    """
    try:
        from app.db.mongodb import db

        await db.command("ping")
        return "ok"

    except Exception as e:
        _, error_logger, _ = get_loggers()
        error_logger.error(f"MongoDB health check failed: {e}")
        return f"error: {str(e)}"
