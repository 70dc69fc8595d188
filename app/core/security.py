# backend/app/core/security.py
# Validation JWT (jetons émis par le service d'authentification) et dépendances FastAPI utilisateur/admin.

from typing import Annotated

from bson import ObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.bson_utils import PyObjectId
from app.core.settings import get_settings
from app.db.mongodb import get_db
from app.models.user import User

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", scopes={})


def decode_subject(token: str) -> ObjectId:
    """Décode un JWT et retourne l'identifiant utilisateur (`sub`).

    Args:
        token (str): Jeton Bearer.

    Returns:
        ObjectId: Identifiant utilisateur.

    Raises:
        JWTError: Si le jeton est invalide, expiré ou si `sub` n'est pas un ObjectId.
    """
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    user_id_raw = payload.get("sub")
    if not isinstance(user_id_raw, str) or not ObjectId.is_valid(user_id_raw):
        raise JWTError("Invalid subject")
    return ObjectId(user_id_raw)


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncIOMotorDatabase, Depends(get_db)],
) -> User:
    """Dépendance FastAPI: charge l’utilisateur courant depuis le JWT.

    Description:
        - Décode le JWT reçu via le schéma OAuth2 Bearer
        - Extrait `sub` (id utilisateur) puis charge l’utilisateur en base
        - Lève 401 si le token est invalide ou si l’utilisateur n’existe pas

    Raises:
        HTTPException: 401 si jeton invalide/inexistant ou utilisateur introuvable.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = decode_subject(token)
    except JWTError as e:
        raise credentials_exception from e

    raw_user = await db.users.find_one({"_id": user_id})
    if raw_user is None:
        raise credentials_exception

    return User(**raw_user)


def get_current_user_id(current_user: Annotated[User, Depends(get_current_user)]) -> PyObjectId:
    user_id = current_user.id
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user without id",
        )
    return user_id


def require_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if current_user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return current_user


# Type aliases pour faciliter l'usage
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentUserId = Annotated[PyObjectId, Depends(get_current_user_id)]
AdminUser = Annotated[User, Depends(require_admin)]
