"""Configuration du système de logging centralisé."""

import glob
import json
import logging
import logging.handlers
import os
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from bson import ObjectId

from app.core.settings import get_settings

_DATE_IN_NAME = re.compile(r"\d{4}-\d{2}-\d{2}")


class CustomJSONEncoder(json.JSONEncoder):
    """Encodeur JSON personnalisé pour gérer ObjectId et datetime."""

    def default(self, obj):
        if isinstance(obj, ObjectId):
            return str(obj)
        elif isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class DataLogger:
    """Logger spécialisé pour les données lourdes en JSON (rapports de batch, etc.)."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def log_data(
        self,
        calling_context: str,
        data: Dict[str, Any],
        user_data: Optional[Dict[str, Any]] = None
    ) -> None:
        """Ajoute une entrée au fichier JSON du jour (tableau JSON toujours valide)."""
        today = datetime.now().strftime("%Y-%m-%d")
        json_file = self.logs_dir / f"{today}-data.json"

        entry = {
            "datetime": datetime.now().isoformat(),
            "calling_context": calling_context,
            "user_data": user_data or {},
            "data": data
        }
        serialized = json.dumps(entry, cls=CustomJSONEncoder)

        if not json_file.exists():
            json_file.write_text(f"[{serialized}]", encoding="utf-8")
            return

        content = json_file.read_text(encoding="utf-8").rstrip()
        if content.endswith("]"):
            content = content[:-1].rstrip()
        if content.endswith("}"):
            content += ","
        elif not content:
            content = "["
        json_file.write_text(f"{content}{serialized}]", encoding="utf-8")


def _rotating_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=path,
        when="midnight",
        interval=1,
        encoding="utf-8"
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> tuple[logging.Logger, logging.Logger, DataLogger]:
    """Configure le système de logging avec rotation quotidienne.

    Returns:
        tuple: (logger_generic, logger_errors, data_logger)
    """
    settings = get_settings()
    logs_dir = Path(settings.logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    cleanup_old_logs(logs_dir, settings.log_retention_days)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Logger générique (INFO+)
    generic_logger = logging.getLogger("carbontrack.generic")
    generic_logger.setLevel(logging.INFO)
    if not generic_logger.handlers:  # Éviter les doublons
        generic_logger.addHandler(_rotating_handler(logs_dir / "generic.log", formatter))

    # Logger erreurs (ERROR+)
    error_logger = logging.getLogger("carbontrack.errors")
    error_logger.setLevel(logging.ERROR)
    if not error_logger.handlers:
        error_logger.addHandler(_rotating_handler(logs_dir / "errors.log", formatter))

    data_logger = DataLogger(str(logs_dir))

    return generic_logger, error_logger, data_logger


def cleanup_old_logs(logs_dir: Path, retention_days: int = 30) -> None:
    """Supprime les logs dont la date (dans le nom) précède la période de rétention."""
    cutoff_str = (datetime.now() - timedelta(days=retention_days)).strftime("%Y-%m-%d")

    patterns = [
        f"{logs_dir}/*-data.json",
        f"{logs_dir}/generic.log.*",
        f"{logs_dir}/errors.log.*"
    ]

    for pattern in patterns:
        for file_path in glob.glob(pattern):
            match = _DATE_IN_NAME.search(os.path.basename(file_path))
            if match and match.group(0) < cutoff_str:
                try:
                    os.remove(file_path)
                except OSError:
                    continue


# Instance globale (lazy initialization)
_loggers: Optional[tuple[logging.Logger, logging.Logger, DataLogger]] = None


def get_loggers() -> tuple[logging.Logger, logging.Logger, DataLogger]:
    """Retourne les loggers configurés (singleton)."""
    global _loggers
    if _loggers is None:
        _loggers = setup_logging()
    return _loggers


def extract_user_data(user_id: Optional[ObjectId] = None, request = None) -> Dict[str, Any]:
    """Extrait les données utilisateur pour le logging."""
    user_data = {}

    if user_id:
        user_data["user_id"] = user_id

    if request:
        if hasattr(request, 'client') and request.client:
            user_data["ip"] = request.client.host

        if hasattr(request, 'headers'):
            user_agent = request.headers.get("user-agent")
            if user_agent:
                user_data["user_agent"] = user_agent

    return user_data
