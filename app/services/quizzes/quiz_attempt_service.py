# backend/app/services/quizzes/quiz_attempt_service.py
# Cycle de vie des tentatives : démarrage idempotent, soumission notée une seule fois, résultats et statistiques.

from __future__ import annotations

from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.core.bson_utils import dump_mongo
from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.core.logging_config import get_loggers
from app.core.utils import utcnow
from app.models.quiz import Quiz
from app.models.quiz_attempt import AnswerDetail, QuizAttempt, QuizResult, QuizSubmission

from .quiz_scorer import PASSING_PERCENTAGE, QuizScorer
from .quiz_service import QuizService


class QuizAttemptService:
    """Service des tentatives de quiz.

    Description:
        Une seule tentative par (utilisateur, quiz). Une tentative `in_progress` est
        reprise ; une tentative `completed` est terminale. La finalisation est une
        écriture conditionnelle (`status != completed`) : une double soumission
        concurrente ne peut pas noter deux fois.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        """Initialiser le service.

        Args:
            db: Instance de base de données MongoDB.
        """
        self.db = db
        self.quizzes = QuizService(db)
        self.scorer = QuizScorer()
        self.logger, self.error_logger, _ = get_loggers()

    async def _find_attempt(self, user_id: ObjectId, quiz_id: ObjectId) -> QuizAttempt | None:
        doc = await self.db.quiz_attempts.find_one({"user_id": user_id, "quiz_id": quiz_id})
        return QuizAttempt(**doc) if doc else None

    async def start_attempt(self, quiz_id: ObjectId, user_id: ObjectId) -> QuizAttempt:
        """Démarrer (ou reprendre) la tentative de l'utilisateur.

        Returns:
            QuizAttempt: Tentative `in_progress`.

        Raises:
            NotFoundError: Quiz inconnu.
            InvalidInputError: Quiz inactif.
            ConflictError: Quiz déjà complété.
        """
        quiz = await self.quizzes.get_quiz(quiz_id)
        if not quiz.is_active:
            raise InvalidInputError("Quiz is not available")

        attempt = await self._find_attempt(user_id, quiz_id)
        if attempt is None:
            attempt = self.scorer.apply(QuizAttempt(user_id=user_id, quiz_id=quiz_id), quiz)
            try:
                result = await self.db.quiz_attempts.insert_one(dump_mongo(attempt))
                attempt.id = result.inserted_id
            except DuplicateKeyError:
                # Démarrage concurrent : l'index unique (user_id, quiz_id) a tranché
                attempt = await self._find_attempt(user_id, quiz_id)
                if attempt is None:
                    raise
        if attempt.status == "completed":
            raise ConflictError("Quiz already completed. Cannot retake.")
        return attempt

    async def submit_quiz(
        self, quiz_id: ObjectId, user_id: ObjectId, submission: QuizSubmission
    ) -> QuizAttempt:
        """Noter et finaliser la tentative de l'utilisateur.

        Description:
            Tout ou rien : une question inconnue rejette la soumission sans rien écrire.
            L'écriture finale ne matche que si la tentative n'est pas déjà complétée.

        Raises:
            NotFoundError: Quiz inconnu.
            InvalidInputError: Aucune tentative démarrée ou question inconnue.
            ConflictError: Tentative déjà complétée (y compris par une requête concurrente).
        """
        quiz = await self.quizzes.get_quiz(quiz_id)
        attempt = await self._find_attempt(user_id, quiz_id)
        if attempt is None:
            raise InvalidInputError("No active quiz attempt found")

        finalized = self.score_quiz_submission(attempt, quiz, submission)

        doc = dump_mongo(finalized, exclude_none=False)
        doc.pop("_id", None)
        doc["updated_at"] = utcnow()
        result = await self.db.quiz_attempts.update_one(
            {"_id": attempt.id, "status": {"$ne": "completed"}}, {"$set": doc}
        )
        if result.matched_count == 0:
            raise ConflictError("Quiz already completed")

        self.logger.info(
            f"Quiz submitted quiz={quiz_id} user={user_id} score={finalized.score} grade={finalized.grade}"
        )
        return finalized

    def score_quiz_submission(self, attempt: QuizAttempt, quiz: Quiz, submission: QuizSubmission) -> QuizAttempt:
        """Notation en mémoire (sans écriture) d'une soumission."""
        return self.scorer.score_submission(
            attempt,
            quiz,
            submission.answers,
            time_spent=submission.time_spent,
            completed_at=utcnow(),
        )

    @staticmethod
    def to_result(attempt: QuizAttempt) -> QuizResult:
        """Projection publique des agrégats d'une tentative."""
        return QuizResult(
            attempt_id=attempt.id,
            score=attempt.score,
            total_points=attempt.total_points,
            percentage=attempt.percentage,
            correct_answers=attempt.correct_answers,
            total_questions=attempt.total_questions,
            grade=attempt.grade,
            time_spent=attempt.time_spent,
            is_passed=attempt.is_passed,
            completed_at=attempt.completed_at,
        )

    async def get_results(self, quiz_id: ObjectId, attempt_id: ObjectId, user_id: ObjectId) -> dict[str, Any]:
        """Résultats détaillés d'une tentative complétée de l'utilisateur.

        Raises:
            NotFoundError: Tentative introuvable (autre utilisateur, non complétée...) ou quiz supprimé.
        """
        doc = await self.db.quiz_attempts.find_one(
            {"_id": attempt_id, "quiz_id": quiz_id, "user_id": user_id, "status": "completed"}
        )
        if doc is None:
            raise NotFoundError("Quiz attempt not found")
        attempt = QuizAttempt(**doc)
        quiz = await self.quizzes.get_quiz(quiz_id)
        questions = quiz.question_map()

        details: list[AnswerDetail] = []
        for answer in attempt.answers:
            question = questions.get(str(answer.question_id))
            if question is None:
                details.append(
                    AnswerDetail(
                        question="Question not found",
                        selected_answer=answer.selected_answer,
                        correct_answer=None,
                        selected_answer_text="Unknown",
                        correct_answer_text="Unknown",
                        is_correct=answer.is_correct,
                        points_earned=answer.points_earned,
                        points_possible=0,
                        time_spent=answer.time_spent,
                    )
                )
                continue
            options = question.options
            details.append(
                AnswerDetail(
                    question=question.question,
                    selected_answer=answer.selected_answer,
                    correct_answer=question.correct_answer,
                    selected_answer_text=(
                        options[answer.selected_answer] if answer.selected_answer < len(options) else "Invalid option"
                    ),
                    correct_answer_text=options[question.correct_answer],
                    is_correct=answer.is_correct,
                    points_earned=answer.points_earned,
                    points_possible=question.points,
                    explanation=question.explanation,
                    time_spent=answer.time_spent,
                )
            )

        return {
            "quiz": {
                "title": quiz.title,
                "description": quiz.description,
                "category": quiz.category,
                "difficulty": quiz.difficulty,
            },
            "results": self.to_result(attempt),
            "answers": details,
        }

    async def get_user_stats(self, user_id: ObjectId) -> dict[str, Any]:
        """Statistiques des tentatives complétées d'un utilisateur + 5 plus récentes."""
        match = {"user_id": user_id, "status": "completed"}
        pipeline = [
            {"$match": match},
            {
                "$group": {
                    "_id": "$user_id",
                    "total_attempts": {"$sum": 1},
                    "average_score": {"$avg": "$score"},
                    "average_percentage": {"$avg": "$percentage"},
                    "highest_score": {"$max": "$score"},
                    "total_time_spent": {"$sum": "$time_spent"},
                }
            },
        ]
        rows = await self.db.quiz_attempts.aggregate(pipeline).to_list(length=None)
        stats = {
            "total_attempts": 0,
            "average_score": 0,
            "average_percentage": 0,
            "highest_score": 0,
            "total_time_spent": 0,
            "passed_count": 0,
        }
        if rows:
            row = rows[0]
            stats.update({key: row.get(key) or 0 for key in stats if key != "passed_count"})
            stats["passed_count"] = await self.db.quiz_attempts.count_documents(
                {**match, "percentage": {"$gte": PASSING_PERCENTAGE}}
            )

        recent_docs = await self.db.quiz_attempts.find(match).sort("completed_at", -1).limit(5).to_list(length=5)
        recent = [
            {
                "attempt_id": str(doc["_id"]),
                "quiz_id": str(doc["quiz_id"]),
                "score": doc.get("score", 0),
                "percentage": doc.get("percentage", 0),
                "grade": doc.get("grade"),
                "correct_answers": doc.get("correct_answers", 0),
                "total_questions": doc.get("total_questions", 0),
                "completed_at": doc.get("completed_at"),
            }
            for doc in recent_docs
        ]
        return {"statistics": stats, "recent_attempts": recent}

    async def get_quiz_stats(self, quiz_id: ObjectId) -> dict[str, Any]:
        """Statistiques globales d'un quiz (admin).

        Raises:
            NotFoundError: Quiz inconnu.
        """
        quiz = await self.quizzes.get_quiz(quiz_id)
        pipeline = [
            {"$match": {"quiz_id": quiz_id, "status": "completed"}},
            {
                "$group": {
                    "_id": "$quiz_id",
                    "total_attempts": {"$sum": 1},
                    "average_score": {"$avg": "$score"},
                    "average_percentage": {"$avg": "$percentage"},
                    "highest_score": {"$max": "$score"},
                    "average_time_spent": {"$avg": "$time_spent"},
                }
            },
        ]
        rows = await self.db.quiz_attempts.aggregate(pipeline).to_list(length=None)
        keys = ("total_attempts", "average_score", "average_percentage", "highest_score", "average_time_spent")
        stats = {key: (rows[0].get(key) or 0) if rows else 0 for key in keys}
        return {
            "quiz": {
                "id": str(quiz.id),
                "title": quiz.title,
                "category": quiz.category,
                "difficulty": quiz.difficulty,
            },
            "statistics": stats,
        }
