# backend/app/core/bson_utils.py
# Helpers Pydantic v2 pour ObjectId + base model Mongo, avec JSON Schema propre pour OpenAPI.
from __future__ import annotations

from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic.json_schema import GetJsonSchemaHandler, JsonSchemaValue
from pydantic_core import core_schema


class PyObjectId(ObjectId):
    """ObjectId compatible Pydantic v2 et OpenAPI.

    Description:
        Étend `bson.ObjectId` avec les hooks Pydantic v2 pour:
        - accepter une chaîne hex de 24 caractères **ou** un `ObjectId`
        - sérialiser en chaîne dans les réponses
        - exposer un schéma OpenAPI clair (`type: string`, `format: objectid`)
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: GetCoreSchemaHandler) -> core_schema.CoreSchema:
        validator = core_schema.no_info_plain_validator_function(cls._validate)
        return core_schema.json_or_python_schema(
            json_schema=core_schema.chain_schema([core_schema.str_schema(), validator]),
            python_schema=validator,
            serialization=core_schema.plain_serializer_function_ser_schema(str, when_used="json"),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, core_schema_obj: core_schema.CoreSchema, handler: GetJsonSchemaHandler) -> JsonSchemaValue:
        return {
            "type": "string",
            "format": "objectid",
            "pattern": "^[a-fA-F0-9]{24}$",
            "examples": ["507f1f77bcf86cd799439011"],
        }

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        """Valide et convertit en ObjectId.

        Raises:
            ValueError: Si la valeur n’est pas un ObjectId valide (remonté en 422 par FastAPI).
        """
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


class MongoBaseModel(BaseModel):
    """BaseModel Pydantic pour documents Mongo.

    Description:
        - Champ `_id` exposé via l’alias `id` (type `PyObjectId`)
        - Sérialisation des ObjectId en chaîne pour les réponses JSON
    """
    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


def dump_mongo(model: BaseModel, *, exclude_none: bool = True) -> dict:
    """Dump d’un modèle pour Mongo (dict).

    Description:
        Sérialise en dict prêt pour Mongo, en respectant les alias (`_id`). Les ObjectId
        restent des ObjectId (mode python) afin que les références soient requêtables.

    Args:
        model (BaseModel): Modèle Pydantic à sérialiser.
        exclude_none (bool): Exclure les champs None.

    Returns:
        dict: Document sérialisé prêt à insérer/mettre à jour.
    """
    return model.model_dump(by_alias=True, exclude_none=exclude_none)
