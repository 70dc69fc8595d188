# backend/app/services/quizzes/quiz_service.py
# Gestion des quiz : création/MAJ/suppression en cascade, vue « à passer » et liste avec délai de réessai.

from __future__ import annotations

import datetime as dt
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from app.core.bson_utils import dump_mongo
from app.core.errors import InvalidInputError, NotFoundError
from app.core.logging_config import get_loggers
from app.core.settings import get_settings
from app.core.utils import as_utc, utcnow
from app.models.quiz import (
    Question,
    QuestionForTaking,
    Quiz,
    QuizCreate,
    QuizForTaking,
    QuizSummary,
    QuizUpdate,
)


class QuizService:
    """Service de gestion des quiz.

    Description:
        CRUD admin des quiz (totaux recalculés à chaque sauvegarde), suppression en
        cascade des tentatives, et vues utilisateur sans les bonnes réponses.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialiser le service.

        Args:
            db: Instance de base de données MongoDB.
        """
        self.db = db
        self.logger, _, _ = get_loggers()
        self.cooldown_days = get_settings().quiz_cooldown_days

    async def get_quiz(self, quiz_id: ObjectId) -> Quiz:
        """Charger un quiz.

        Raises:
            NotFoundError: Quiz inconnu.
        """
        doc = await self.db.quizzes.find_one({"_id": quiz_id})
        if doc is None:
            raise NotFoundError("Quiz not found")
        return Quiz(**doc)

    async def create_quiz(self, payload: QuizCreate, created_by: ObjectId) -> Quiz:
        """Créer un quiz ; chaque question reçoit son propre identifiant."""
        quiz = Quiz(
            **payload.model_dump(exclude={"questions"}),
            questions=[Question(**q.model_dump()) for q in payload.questions],
            created_by=created_by,
        )
        doc = dump_mongo(quiz)
        result = await self.db.quizzes.insert_one(doc)
        quiz.id = result.inserted_id
        self.logger.info(f"Quiz created id={quiz.id} title={quiz.title!r} by={created_by}")
        return quiz

    async def update_quiz(self, quiz_id: ObjectId, payload: QuizUpdate) -> Quiz:
        """Mettre à jour un quiz (les totaux sont recalculés sur la nouvelle liste de questions).

        Raises:
            NotFoundError: Quiz inconnu.
            InvalidInputError: Résultat de fusion invalide.
        """
        current = await self.get_quiz(quiz_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"questions"})
        merged = current.model_dump(exclude={"id"})
        merged.update(changes)
        if payload.questions is not None:
            merged["questions"] = [Question(**q.model_dump()) for q in payload.questions]

        try:
            updated = Quiz(**merged, _id=quiz_id)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid quiz update: {e.errors()[0]['msg']}") from e
        updated.updated_at = utcnow()

        doc = dump_mongo(updated)
        doc.pop("_id", None)
        await self.db.quizzes.update_one({"_id": quiz_id}, {"$set": doc})
        return updated

    async def delete_quiz(self, quiz_id: ObjectId) -> int:
        """Supprimer un quiz et toutes ses tentatives.

        Returns:
            int: Nombre de tentatives supprimées.

        Raises:
            NotFoundError: Quiz inconnu.
        """
        result = await self.db.quizzes.delete_one({"_id": quiz_id})
        if result.deleted_count == 0:
            raise NotFoundError("Quiz not found")
        attempts = await self.db.quiz_attempts.delete_many({"quiz_id": quiz_id})
        self.logger.info(f"Quiz deleted id={quiz_id} attempts_removed={attempts.deleted_count}")
        return attempts.deleted_count

    async def get_quiz_for_taking(self, quiz_id: ObjectId, user_id: ObjectId) -> dict[str, Any]:
        """Quiz sans réponses + éventuelle tentative finalisée de l'utilisateur.

        Raises:
            NotFoundError: Quiz inconnu ou inactif.
        """
        quiz = await self.get_quiz(quiz_id)
        if not quiz.is_active:
            raise NotFoundError("Quiz is not available")

        previous = await self.db.quiz_attempts.find_one(
            {"user_id": user_id, "quiz_id": quiz_id, "status": "completed"}
        )

        taking = QuizForTaking(
            **quiz.model_dump(exclude={"questions"}),
            questions=[
                QuestionForTaking(
                    id=q.id, question=q.question, options=q.options, points=q.points, category=q.category
                )
                for q in quiz.questions
            ],
        )
        response: dict[str, Any] = {
            "quiz": taking,
            "has_attempted": previous is not None,
            "previous_attempt": None,
        }
        if previous is not None:
            response["previous_attempt"] = {
                "score": previous.get("score", 0),
                "percentage": previous.get("percentage", 0),
                "grade": previous.get("grade"),
                "completed_at": previous.get("completed_at"),
            }
        return response

    async def list_available_quizzes(
        self, user_id: ObjectId, now: dt.datetime | None = None
    ) -> dict[str, Any]:
        """Quiz actifs non finalisés par l'utilisateur pendant la période de réessai.

        Description:
            Les quiz complétés il y a moins de `quiz_cooldown_days` jours sont masqués ;
            `cooldown_info` indique quand le plus récent redevient disponible.

        Returns:
            dict: `quizzes` (list[QuizSummary]) et `cooldown_info` (dict | None).
        """
        now = now or utcnow()
        since = now - dt.timedelta(days=self.cooldown_days)
        recent_filter = {"user_id": user_id, "status": "completed", "completed_at": {"$gte": since}}
        recent_ids = await self.db.quiz_attempts.distinct("quiz_id", recent_filter)

        cursor = self.db.quizzes.find({"is_active": True, "_id": {"$nin": recent_ids}}).sort(
            "created_at", -1
        )
        docs = await cursor.to_list(length=None)
        quizzes = [QuizSummary(**doc) for doc in docs]

        cooldown_info = None
        if recent_ids:
            latest = await (
                self.db.quiz_attempts.find(recent_filter).sort("completed_at", -1).limit(1).to_list(length=1)
            )
            next_available = None
            if latest and latest[0].get("completed_at"):
                next_available = as_utc(latest[0]["completed_at"]) + dt.timedelta(days=self.cooldown_days)
            cooldown_info = {
                "recently_completed": len(recent_ids),
                "next_available_date": next_available,
                "cooldown_days": self.cooldown_days,
            }

        return {"quizzes": quizzes, "cooldown_info": cooldown_info}
