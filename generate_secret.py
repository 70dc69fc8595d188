# backend/generate_secret.py
# Génère la clé de vérification des JWT (JWT_SECRET_KEY) dans le .env, sans écraser une clé existante.

import secrets
from pathlib import Path

from rich import print

ENV_PATH = Path(".env")
SECRET_KEY_NAME = "JWT_SECRET_KEY"
ANCHOR_COMMENT = "# Auth"


def generate_secret_key(bits: int = 512) -> str:
    return secrets.token_hex(bits // 8)


def read_env_lines(path: Path) -> list[str]:
    return path.read_text().splitlines(keepends=True) if path.exists() else []


def upsert_secret(path: Path, key: str, value: str, anchor: str) -> str:
    """Ajoute `key=value` après l'ancre (ou en fin de fichier).

    Returns:
        str: "exists", "anchored" ou "appended".
    """
    lines = read_env_lines(path)
    if any(line.strip().startswith(f"{key}=") for line in lines):
        return "exists"

    for index, line in enumerate(lines):
        if line.strip() == anchor:
            lines.insert(index + 1, f"{key}={value}\n")
            path.write_text("".join(lines))
            return "anchored"

    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    lines.append(f"{anchor}\n{key}={value}\n")
    path.write_text("".join(lines))
    return "appended"


if __name__ == "__main__":
    outcome = upsert_secret(ENV_PATH, SECRET_KEY_NAME, generate_secret_key(), ANCHOR_COMMENT)
    if outcome == "exists":
        print(f"[yellow]Clé {SECRET_KEY_NAME} déjà définie dans {ENV_PATH}. Aucune modification.[/yellow]")
    elif outcome == "anchored":
        print(f"[green]Clé {SECRET_KEY_NAME} ajoutée après '{ANCHOR_COMMENT}' dans {ENV_PATH}.[/green]")
    else:
        print(f"[green]Clé {SECRET_KEY_NAME} ajoutée en fin de {ENV_PATH} (section '{ANCHOR_COMMENT}').[/green]")
