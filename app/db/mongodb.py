# backend/app/db/mongodb.py
# Initialise le client MongoDB à partir des settings et expose des helpers simples d’accès aux collections.

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase

from app.core.settings import get_settings

settings = get_settings()

# tz_aware : les dates relues sont des datetimes UTC aware, comparables à `utcnow()`.
client: AsyncIOMotorClient = AsyncIOMotorClient(settings.mongodb_uri, tz_aware=True)
db: AsyncIOMotorDatabase = client[settings.mongodb_db]


async def get_collection(name: str) -> AsyncIOMotorCollection:
    """Retourne une collection MongoDB par son nom.

    Description:
        Accède à `db[name]` et renvoie l'objet collection. Si la collection n'existe pas
        encore côté serveur, MongoDB la créera à la première insertion.

    Args:
        name (str): Nom de la collection (ex. "users", "activities").

    Returns:
        AsyncIOMotorCollection: Instance de collection MongoDB asynchrone.
    """
    return db[name]


def get_db() -> AsyncIOMotorDatabase:
    """Dépendance FastAPI : base MongoDB injectée dans les services.

    Description:
        Point unique d'injection de la base ; les tests la remplacent via
        `app.dependency_overrides[get_db]`.

    Returns:
        AsyncIOMotorDatabase: Base configurée dans les settings.
    """
    return db
